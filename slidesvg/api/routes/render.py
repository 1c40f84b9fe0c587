"""Render routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from slidesvg.api.config import Settings, get_settings
from slidesvg.dsl.schema import Document, Element
from slidesvg.renderer.svg_renderer import SVG_MIME_TYPE, SVGRenderer
from slidesvg.renderer.viewbox import ViewBox

router = APIRouter()

SVG_RESPONSE = {200: {"content": {SVG_MIME_TYPE: {}}, "description": "Rendered SVG"}}


@router.post("/svg", response_class=Response, responses=SVG_RESPONSE)
async def render_document(
    document: Document,
    embed_image: Optional[bool] = Query(default=None, description="Inline images as data URIs"),
    embed_text: Optional[bool] = Query(default=None, description="Emit glyph outlines when available"),
    id_prefix: Optional[str] = Query(default=None, pattern=r"^[A-Za-z_][\w.-]*$"),
    settings: Settings = Depends(get_settings),
):
    """Render a whole document, top-level elements stacked vertically."""
    options = settings.renderer_options(
        embed_image=embed_image,
        embed_text=embed_text,
        id_prefix=id_prefix,
    )
    svg = await SVGRenderer(document, options).to_string()
    return Response(content=svg, media_type=SVG_MIME_TYPE)


@router.post("/element", response_class=Response, responses=SVG_RESPONSE)
async def render_element(
    element: Element,
    embed_image: Optional[bool] = Query(default=None),
    embed_text: Optional[bool] = Query(default=None),
    settings: Settings = Depends(get_settings),
):
    """Render one element as a standalone SVG.

    The computed view box is returned in the ``X-View-Box`` header.
    """
    options = settings.renderer_options(embed_image=embed_image, embed_text=embed_text)
    view_boxes: list[ViewBox] = []
    svg = await SVGRenderer(options=options).element_to_string(element, on_view_box=view_boxes.append)
    return Response(
        content=svg,
        media_type=SVG_MIME_TYPE,
        headers={"X-View-Box": view_boxes[0].to_attr()},
    )
