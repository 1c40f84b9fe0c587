"""Resolve fills into SVG paints.

A fill resolves to a literal color, a ``url(#id)`` reference to a paint
server registered in the defs accumulator, or ``"none"``.
"""

import asyncio
import json
import logging
import math
from typing import Any, Iterable, Optional, Union

from slidesvg.dsl.schema import (
    ColorFill,
    Element,
    Fill,
    ImageFill,
    LinearGradientFill,
    RadialGradientFill,
    RectOffsets,
)
from slidesvg.engine.image_loader import ImageLoader
from slidesvg.errors import FillResolutionError
from slidesvg.renderer.markup import Defs, MarkupNode, format_number as fmt

logger = logging.getLogger(__name__)


def fill_key(fill: Fill) -> str:
    """Canonical structural key of a fill definition."""
    return json.dumps(fill.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))


def _element_fills(element: Element) -> list[Optional[Fill]]:
    fills = [element.background, element.fill, element.foreground]
    if element.text is not None:
        fills.append(element.text.fill)
        for paragraph in element.text.content:
            fills.append(paragraph.fill)
            fills.extend(fragment.fill for fragment in paragraph.fragments)
    return fills


def image_sources(elements: Iterable[Element]) -> list[str]:
    """Distinct image fill sources of an element forest, in document order."""
    sources: dict[str, None] = {}

    def visit(element: Element) -> None:
        for fill in _element_fills(element):
            if isinstance(fill, ImageFill) and not fill.image.startswith("data:"):
                sources.setdefault(fill.image)
        for child in element.children:
            visit(child)

    for element in elements:
        visit(element)
    return list(sources)


def _trunc_percent(value: float) -> float:
    # Two-decimal percentage, truncated toward zero
    return math.trunc(value * 10000) / 100


def linear_gradient_points(angle: float) -> tuple[float, float, float, float]:
    """
    Gradient line endpoints (x1, y1, x2, y2) in percent for an angle in degrees.

    The start point is truncated to two decimals and the end point mirrors it
    through the center, so x1 + x2 == 100 and y1 + y2 == 100.
    """
    radian = angle * math.pi / 180
    offset_x = 0.5 * math.sin(radian)
    offset_y = 0.5 * math.cos(radian)
    x1 = _trunc_percent(0.5 - offset_x)
    y1 = _trunc_percent(0.5 + offset_y)
    return x1, y1, round(100 - x1, 2), round(100 - y1, 2)


def _stops(fill: Any) -> list[MarkupNode]:
    return [
        MarkupNode("stop", {"offset": stop.offset, "stop-color": stop.color})
        for stop in fill.stops
    ]


def build_linear_gradient(gradient_id: str, fill: LinearGradientFill) -> MarkupNode:
    x1, y1, x2, y2 = linear_gradient_points(fill.angle)
    return MarkupNode(
        "linearGradient",
        {"id": gradient_id, "x1": f"{fmt(x1)}%", "y1": f"{fmt(y1)}%", "x2": f"{fmt(x2)}%", "y2": f"{fmt(y2)}%"},
        _stops(fill),
    )


def build_radial_gradient(gradient_id: str, fill: RadialGradientFill) -> MarkupNode:
    return MarkupNode(
        "radialGradient",
        {"id": gradient_id, "cx": "50%", "cy": "50%", "r": "50%", "fx": "50%", "fy": "50%"},
        _stops(fill),
    )


def crop_transform(crop: RectOffsets, width: float, height: float) -> Optional[str]:
    """
    Map the visible area onto the cropped region of the source image.

    Returns None when the shape or the visible span is empty, leaving the
    image uncropped.
    """
    span_x = 1 - crop.right - crop.left
    span_y = 1 - crop.top - crop.bottom
    if width <= 0 or height <= 0 or span_x <= 0 or span_y <= 0:
        return None
    src_width = width / span_x
    src_height = height / span_y
    tx = ((crop.right - crop.left) / 2) * src_width
    ty = ((crop.bottom - crop.top) / 2) * src_height
    return f"translate({fmt(tx)},{fmt(ty)}) scale({fmt(src_width / width)}, {fmt(src_height / height)})"


def stretch_transform(stretch: RectOffsets, width: float, height: float) -> str:
    """Place the image inside the stretch rectangle of the shape."""
    sx = 1 - stretch.right - stretch.left
    sy = 1 - stretch.top - stretch.bottom
    return f"scale({fmt(sx)}, {fmt(sy)}) translate({fmt(stretch.left * width)},{fmt(stretch.top * height)})"


def build_image_pattern(
    pattern_id: str,
    fill: ImageFill,
    href: str,
    width: float,
    height: float,
    rotate: float = 0.0,
) -> MarkupNode:
    """
    Build the repeating pattern wrapping an image fill.

    When the image does not rotate with its shape, the content box becomes
    the bounding box of the shape counter-rotated by ``rotate`` and the
    content is rotated back about its own center.
    """
    counter_rotate = not fill.rotate_with_shape and rotate != 0
    if counter_rotate:
        radian = -rotate * math.pi / 180
        sin = abs(math.sin(radian))
        cos = abs(math.cos(radian))
        width, height = cos * width + sin * height, sin * width + cos * height

    crop_attrs = {}
    if fill.crop_rect is not None:
        crop_attrs["transform"] = crop_transform(fill.crop_rect, width, height)

    stretch_attrs: dict[str, Any] = {"style": {"transform-origin": "left top"}}
    if fill.stretch_rect is not None:
        stretch_attrs["transform"] = stretch_transform(fill.stretch_rect, width, height)

    image = MarkupNode("image", {
        "href": href,
        "width": width,
        "height": height,
        "opacity": fill.opacity,
        "preserveAspectRatio": "none",
    })

    return MarkupNode("pattern", {"id": pattern_id, "width": "200%", "height": "200%"}, [
        MarkupNode(
            "g",
            {"transform": f"rotate({fmt(-rotate)} {fmt(width / 2)} {fmt(height / 2)})" if counter_rotate else None},
            [MarkupNode("g", crop_attrs, [MarkupNode("g", stretch_attrs, [image])])],
        ),
    ])


class FillResolver:
    """Resolves fills to paints, registering paint servers in the defs."""

    def __init__(self, image_loader: ImageLoader, embed_image: bool = True):
        """
        Initialize resolver.

        Args:
            image_loader: Loader used to embed image fills
            embed_image: Inline images as data URIs instead of keeping the reference
        """
        self.image_loader = image_loader
        self.embed_image = embed_image

    async def _load(self, source: str) -> Union[str, Exception]:
        try:
            return await self.image_loader.to_data_uri(source)
        except FillResolutionError as e:
            return e

    async def prefetch(self, elements: Iterable[Element], defs: Defs) -> None:
        """
        Load every image of ``elements`` into ``defs.images``.

        All sources are fetched concurrently before the tree is walked, so
        the walk itself never waits on the network and resources are
        registered in the same order whatever the fetch timings.
        """
        if not self.embed_image:
            return
        sources = [source for source in image_sources(elements) if source not in defs.images]
        if not sources:
            return
        results = await asyncio.gather(*(self._load(source) for source in sources))
        defs.images.update(zip(sources, results))
        logger.debug(f"Prefetched {len(sources)} images")

    async def _href(self, source: str, defs: Defs) -> str:
        if not self.embed_image:
            return source
        loaded = defs.images.get(source)
        if loaded is None:
            loaded = await self._load(source)
        if isinstance(loaded, Exception):
            raise loaded
        return loaded

    async def resolve(
        self,
        fill: Optional[Fill],
        defs: Defs,
        prefix: str,
        width: float,
        height: float,
        rotate: float = 0.0,
    ) -> str:
        """
        Resolve a fill to a paint value.

        Args:
            fill: The fill to resolve (None paints nothing)
            defs: Defs accumulator of the current conversion
            prefix: Id prefix for resources created for this paint use
            width, height, rotate: Geometry of the painted shape

        Returns:
            A color, ``url(#id)`` or ``"none"``
        """
        if fill is None:
            return "none"

        if isinstance(fill, ColorFill):
            return fill.color

        if isinstance(fill, LinearGradientFill):
            async def build_linear() -> MarkupNode:
                return build_linear_gradient(f"{prefix}_grad", fill)

            return f"url(#{await defs.share(fill_key(fill), build_linear)})"

        if isinstance(fill, RadialGradientFill):
            async def build_radial() -> MarkupNode:
                return build_radial_gradient(f"{prefix}_grad", fill)

            return f"url(#{await defs.share(fill_key(fill), build_radial)})"

        if isinstance(fill, ImageFill):
            return await self._resolve_image(fill, defs, prefix, width, height, rotate)

        return "none"

    async def _resolve_image(
        self,
        fill: ImageFill,
        defs: Defs,
        prefix: str,
        width: float,
        height: float,
        rotate: float,
    ) -> str:
        # Pattern content depends on the painted geometry
        key = f"{fill_key(fill)}|{fmt(width)}|{fmt(height)}|{fmt(rotate)}"

        async def build_pattern() -> MarkupNode:
            href = await self._href(fill.image, defs)
            return build_image_pattern(f"{prefix}_img", fill, href, width, height, rotate)

        try:
            pattern_id = await defs.share(key, build_pattern)
        except FillResolutionError as e:
            logger.warning(f"Image fill degraded to none: {e}")
            return "none"
        except (ArithmeticError, ValueError) as e:
            # Geometry the pattern cannot be built for; only this paint use is lost
            logger.warning(f"Image fill {fill.image!r} degraded to none: {e!r}")
            return "none"
        return f"url(#{pattern_id})"

    async def paint_nodes(
        self,
        fill: Fill,
        defs: Defs,
        prefix: str,
        width: float,
        height: float,
        rotate: float = 0.0,
        shape_paths: Optional[list[MarkupNode]] = None,
    ) -> list[MarkupNode]:
        """
        Build a paint layer for a background or foreground fill.

        With ``shape_paths`` the layer reuses each contour by reference;
        otherwise it is a plain rectangle covering the element.
        """
        paint = await self.resolve(fill, defs, prefix, width, height, rotate)

        if shape_paths:
            return [
                MarkupNode("use", {
                    "xlink:href": f"#{path.attrs['id']}",
                    "stroke": "none",
                    "fill": paint,
                })
                for path in shape_paths
            ]

        return [
            MarkupNode("rect", {"width": width, "height": height, "stroke": "none", "fill": paint}),
        ]
