"""SVG renderer - converts normalized documents to SVG markup.

Converts element trees into a MarkupNode tree, including:
- Solid, gradient and image-pattern fills
- Outlines with line-end markers
- Soft-edge and outer-shadow filters
- Text as positioned runs or glyph outlines
- Document and element view boxes
"""

from slidesvg.renderer.fill_renderer import FillResolver
from slidesvg.renderer.markup import Defs, MarkupNode, parse_markup, serialize_markup
from slidesvg.renderer.svg_renderer import RendererOptions, SVGRenderer, SvgBlob
from slidesvg.renderer.text_renderer import TextRenderer
from slidesvg.renderer.viewbox import ViewBox, document_view_box, element_view_box

__all__ = [
    "Defs",
    "FillResolver",
    "MarkupNode",
    "RendererOptions",
    "SVGRenderer",
    "SvgBlob",
    "TextRenderer",
    "ViewBox",
    "document_view_box",
    "element_view_box",
    "parse_markup",
    "serialize_markup",
]
