"""slidesvg - render normalized slide documents to SVG."""

from slidesvg.dsl.schema import Document, Element, normalize_document
from slidesvg.errors import (
    FillResolutionError,
    MalformedOutputError,
    SlideSvgError,
    TextMeasurementError,
)
from slidesvg.renderer.svg_renderer import (
    RendererOptions,
    SVGRenderer,
    SvgBlob,
    doc_to_svg,
    doc_to_svg_blob,
    doc_to_svg_string,
    element_to_svg_string,
    render_to_data_uri,
    render_to_svg_string,
)

__version__ = "0.1.0"

__all__ = [
    "Document",
    "Element",
    "normalize_document",
    "FillResolutionError",
    "MalformedOutputError",
    "SlideSvgError",
    "TextMeasurementError",
    "RendererOptions",
    "SVGRenderer",
    "SvgBlob",
    "doc_to_svg",
    "doc_to_svg_blob",
    "doc_to_svg_string",
    "element_to_svg_string",
    "render_to_data_uri",
    "render_to_svg_string",
]
