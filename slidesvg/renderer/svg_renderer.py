"""
svg_renderer.py — SVG generation from a normalized document.

The renderer walks the element tree depth-first and builds a MarkupNode
tree: one shared defs section (contours, paint servers, markers, filters)
plus nested groups carrying each element's transform.

Images are fetched concurrently before the walk. Fill resolution and
sibling subtrees are converted concurrently too, but every fan-out is
joined in document order, so the output never depends on which image
fetch finishes first.

Used for:
1. Export of whole documents (slides stacked vertically)
2. Standalone export of a single element with its own view box
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import httpx
from lxml import etree

from slidesvg.dsl.schema import Document, Element, normalize_document, normalize_element
from slidesvg.engine.image_loader import ImageLoader
from slidesvg.engine.text_measure import PillowTextMeasurer, TextMeasurer
from slidesvg.renderer.effect_renderer import (
    build_outer_shadow_filter,
    build_soft_edge_filter,
    shadow_transform,
    soft_edge_transform,
)
from slidesvg.renderer.fill_renderer import FillResolver
from slidesvg.renderer.marker_renderer import register_marker
from slidesvg.renderer.markup import (
    SVG_NS,
    XLINK_NS,
    Defs,
    MarkupNode,
    format_number as fmt,
    parse_markup,
    serialize_markup,
)
from slidesvg.renderer.text_renderer import TextRenderer
from slidesvg.renderer.viewbox import ViewBox, document_view_box, element_view_box

logger = logging.getLogger(__name__)

SVG_MIME_TYPE = "image/svg+xml"

DocumentInput = Union[Document, Mapping[str, Any]]
ElementInput = Union[Element, Mapping[str, Any]]


@dataclass
class RendererOptions:
    """Renderer configuration."""
    embed_image: bool = True      # Inline images as data URIs
    embed_text: bool = True       # Glyph-outline paths instead of text runs when available
    id_prefix: str = "el"         # Prefix of every generated id
    image_timeout: float = 30.0   # Seconds, for image fetches
    allow_local_files: bool = False  # Read non-http image sources from disk


@dataclass
class RenderContext:
    """Per-element conversion context, passed down the tree."""
    defs: Optional[Defs] = None
    path: str = "0"
    parent: Optional[Element] = None


@dataclass
class SvgBlob:
    """Binary SVG output tagged with its MIME type."""
    data: bytes
    mime_type: str = SVG_MIME_TYPE

    @property
    def size(self) -> int:
        return len(self.data)


# =============================================================================
# SVG RENDERER
# =============================================================================

class SVGRenderer:
    """
    Renders a normalized document to SVG.

    Ids are derived from each element's position in the tree, so rendering
    the same document twice yields identical output. Use ``id_prefix`` to
    keep ids distinct when several renders end up in one page.
    """

    def __init__(
        self,
        doc: Optional[DocumentInput] = None,
        options: Optional[RendererOptions] = None,
        measurer: Optional[TextMeasurer] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize renderer.

        Args:
            doc: Document (or raw mapping, normalized here) to render
            options: Renderer options
            measurer: Text measurer (defaults to PillowTextMeasurer)
            http_client: Shared client for image fetches
        """
        self.doc = normalize_document(doc if doc is not None else {})
        self.options = options or RendererOptions()
        self.fill_resolver = FillResolver(
            ImageLoader(
                http_client,
                timeout=self.options.image_timeout,
                allow_local_files=self.options.allow_local_files,
            ),
            embed_image=self.options.embed_image,
        )
        self.text_renderer = TextRenderer(
            measurer or PillowTextMeasurer(),
            self.fill_resolver,
            embed_text=self.options.embed_text,
        )

    # =========================================================================
    # ELEMENT CONVERSION
    # =========================================================================

    def _shape_paths(self, element: Element, uuid: str) -> List[MarkupNode]:
        """One contour resource per shape path, or a full-size rectangle."""
        if element.shape is not None and element.shape.paths:
            return [
                MarkupNode("path", {
                    "id": f"{uuid}_shape_{index}",
                    "d": path.data,
                    "fill": path.fill,
                    "fill-rule": path.fill_rule,
                    "stroke": path.stroke,
                    "stroke-width": path.stroke_width,
                })
                for index, path in enumerate(element.shape.paths)
            ]
        return [
            MarkupNode("rect", {
                "id": f"{uuid}_shape_0",
                "width": element.style.width,
                "height": element.style.height,
            }),
        ]

    async def _background(self, element: Element, defs: Defs, uuid: str) -> List[MarkupNode]:
        if element.background is None:
            return []
        style = element.style
        return await self.fill_resolver.paint_nodes(
            element.background, defs, f"{uuid}_bg", style.width, style.height, style.rotate,
        )

    async def _foreground(
        self,
        element: Element,
        defs: Defs,
        uuid: str,
        shape_paths: List[MarkupNode],
    ) -> List[MarkupNode]:
        if element.foreground is None:
            return []
        style = element.style
        return await self.fill_resolver.paint_nodes(
            element.foreground, defs, f"{uuid}_foreground", style.width, style.height, style.rotate,
            shape_paths=shape_paths,
        )

    async def _shape_attrs(self, element: Element, defs: Defs, uuid: str) -> Dict[str, Any]:
        """Paint attributes of the element's own contours."""
        style = element.style
        attrs: Dict[str, Any] = {"fill": "none", "stroke": "none"}

        if element.fill is not None:
            attrs["fill"] = await self.fill_resolver.resolve(
                element.fill, defs, f"{uuid}_fill", style.width, style.height, style.rotate,
            )

        outline = element.outline
        if outline is not None:
            attrs["stroke-width"] = outline.width or 1
            if outline.color:
                attrs["stroke"] = outline.color
            if outline.head_end is not None:
                marker_id = await register_marker(
                    defs, outline.head_end, attrs["stroke"], attrs["stroke-width"], f"{uuid}_headEnd",
                )
                attrs["marker-start"] = f"url(#{marker_id})"
            if outline.tail_end is not None:
                marker_id = await register_marker(
                    defs, outline.tail_end, attrs["stroke"], attrs["stroke-width"], f"{uuid}_tailEnd",
                )
                attrs["marker-end"] = f"url(#{marker_id})"

        soft_edge = element.effect.soft_edge
        if soft_edge is not None:
            await defs.append(build_soft_edge_filter(f"{uuid}_soft_edge", soft_edge.radius))
            attrs["filter"] = f"url(#{uuid}_soft_edge)"
            attrs["transform"] = soft_edge_transform(style.width, style.height)

        return attrs

    async def element_to_nodes(
        self,
        element: ElementInput,
        ctx: Optional[RenderContext] = None,
    ) -> List[MarkupNode]:
        """
        Convert one element and its subtree to markup nodes.

        Without a defs accumulator in ``ctx`` the element owns one and emits
        it as the first node of its output.
        """
        element = normalize_element(element)
        ctx = ctx or RenderContext()
        uuid = f"{self.options.id_prefix}{ctx.path}"
        style = element.style
        width, height, rotate = style.width, style.height, style.rotate

        owns_defs = ctx.defs is None
        defs = ctx.defs if ctx.defs is not None else Defs()
        if owns_defs:
            await self.fill_resolver.prefetch([element], defs)

        shape_paths = self._shape_paths(element, uuid)
        await defs.append(*shape_paths)

        background_nodes, shape_attrs, foreground_nodes = await asyncio.gather(
            self._background(element, defs, uuid),
            self._shape_attrs(element, defs, uuid),
            self._foreground(element, defs, uuid, shape_paths),
        )

        shape_nodes = []
        for path in shape_paths:
            attrs = dict(shape_attrs)
            if path.attrs.get("stroke") == "none":
                attrs.pop("marker-start", None)
                attrs.pop("marker-end", None)
            shape_nodes.append(MarkupNode("use", {"xlink:href": f"#{path.attrs['id']}", **attrs}))

        shape_children: List[MarkupNode] = list(background_nodes)

        shadow = element.effect.outer_shadow
        if shadow is not None:
            await defs.append(build_outer_shadow_filter(f"{uuid}_outerShadow", shadow, width, height))
            # Same contours, drawn first so the shadow renders underneath
            shape_children.append(MarkupNode("g", {
                "filter": f"url(#{uuid}_outerShadow)",
                "transform": shadow_transform(shadow, height),
            }, shape_nodes))

        shape_children.extend(shape_nodes)
        shape_children.extend(foreground_nodes)

        text_nodes, child_nodes = await asyncio.gather(
            self.text_renderer.render(element, defs, uuid, self.doc.fonts),
            self._children_nodes(element, defs, ctx.path),
        )
        shape_children.extend(child_nodes)

        # Text goes after the shape group and children so it paints on top of them
        container_children: List[MarkupNode] = list(text_nodes)

        shape_transform = []
        if style.scale_x != 1 or style.scale_y != 1 or rotate != 0:
            if rotate != 0:
                shape_transform.append(f"rotate({fmt(rotate)} {fmt(width / 2)} {fmt(height / 2)})")
            shape_transform.append(f"scale({fmt(style.scale_x)}, {fmt(style.scale_y)})")
        if shape_transform or style.visibility:
            container_children.insert(0, MarkupNode("g", {
                "transform": " ".join(shape_transform) or None,
                "visibility": style.visibility,
            }, shape_children))
        else:
            container_children[0:0] = shape_children

        if owns_defs and defs.children:
            container_children.insert(0, defs.to_node())

        if style.left != 0 or style.top != 0 or style.visibility:
            translate = f"translate({fmt(style.left)}, {fmt(style.top)})" if style.left or style.top else None
            return [MarkupNode("g", {
                "transform": translate,
                "visibility": style.visibility,
            }, container_children)]

        return container_children

    async def _children_nodes(self, element: Element, defs: Defs, path: str) -> List[MarkupNode]:
        results = await asyncio.gather(*(
            self.element_to_nodes(child, RenderContext(defs=defs, path=f"{path}-{index}", parent=element))
            for index, child in enumerate(element.children)
        ))
        return [node for nodes in results for node in nodes]

    # =========================================================================
    # DOCUMENT CONVERSION
    # =========================================================================

    async def doc_to_node(self, doc: Optional[DocumentInput] = None) -> MarkupNode:
        """Convert a whole document to the root ``svg`` node."""
        doc = normalize_document(doc) if doc is not None else self.doc
        view_box = document_view_box(doc)
        defs = Defs()
        await self.fill_resolver.prefetch(doc.children, defs)

        results = await asyncio.gather(*(
            self.element_to_nodes(element, RenderContext(defs=defs, path=str(index)))
            for index, element in enumerate(doc.children)
        ))
        logger.debug(f"Rendered {len(doc.children)} elements, {len(defs.children)} resources")

        return MarkupNode("svg", {
            "width": view_box.width,
            "height": view_box.height,
            "viewBox": view_box.to_attr(),
            "fill": "none",
            "xmlns": SVG_NS,
            "xmlns:xlink": XLINK_NS,
        }, [node for nodes in results for node in nodes] + [defs.to_node()])

    async def element_to_string(
        self,
        element: ElementInput,
        on_view_box: Optional[Callable[[ViewBox], None]] = None,
    ) -> str:
        """
        Render a single element as a standalone SVG.

        The element is placed at the origin and the view box grows to fit
        its outline, markers and outer shadow.
        """
        element = normalize_element(element)
        view_box = element_view_box(element)
        if on_view_box is not None:
            on_view_box(view_box)

        placed = element.model_copy(update={
            "style": element.style.model_copy(update={"left": 0.0, "top": 0.0}),
        })
        nodes = await self.element_to_nodes(placed)

        return serialize_markup(MarkupNode("svg", {
            "xmlns": SVG_NS,
            "xmlns:xlink": XLINK_NS,
            "width": view_box.width,
            "height": view_box.height,
            "viewBox": view_box.to_attr(),
        }, nodes))

    # =========================================================================
    # OUTPUTS
    # =========================================================================

    async def to_string(self) -> str:
        return serialize_markup(await self.doc_to_node(self.doc))

    async def to_element(self) -> etree._Element:
        """
        Render and parse into a live element.

        Raises:
            MalformedOutputError: if the generated markup does not parse
        """
        return parse_markup(await self.to_string())

    async def to_blob(self) -> SvgBlob:
        return SvgBlob(data=(await self.to_string()).encode("utf-8"))

    async def to_data_uri(self) -> str:
        """Render to an SVG data URI (for img src or CSS background)."""
        b64 = base64.b64encode((await self.to_string()).encode("utf-8")).decode("ascii")
        return f"data:{SVG_MIME_TYPE};base64,{b64}"


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

async def doc_to_svg(doc: DocumentInput, options: Optional[RendererOptions] = None) -> etree._Element:
    """Render a document to a parsed SVG element."""
    return await SVGRenderer(doc, options).to_element()


async def doc_to_svg_string(doc: DocumentInput, options: Optional[RendererOptions] = None) -> str:
    """Render a document to an SVG string."""
    return await SVGRenderer(doc, options).to_string()


async def doc_to_svg_blob(doc: DocumentInput, options: Optional[RendererOptions] = None) -> SvgBlob:
    """Render a document to SVG bytes tagged with the SVG MIME type."""
    return await SVGRenderer(doc, options).to_blob()


async def element_to_svg_string(element: ElementInput, options: Optional[RendererOptions] = None) -> str:
    """Render a single element to a standalone SVG string."""
    return await SVGRenderer(options=options).element_to_string(element)


def render_to_svg_string(doc: DocumentInput, **options: Any) -> str:
    """
    Render a document to an SVG string from synchronous code.

    Args:
        doc: Document or raw mapping
        **options: RendererOptions fields (embed_image, embed_text, ...)
    """
    return asyncio.run(doc_to_svg_string(doc, RendererOptions(**options)))


def render_to_data_uri(doc: DocumentInput, **options: Any) -> str:
    """Render a document to an SVG data URI from synchronous code."""
    return asyncio.run(SVGRenderer(doc, RendererOptions(**options)).to_data_uri())
