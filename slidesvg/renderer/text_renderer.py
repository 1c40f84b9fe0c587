"""Turn measured text into glyph-outline paths or positioned text runs."""

import asyncio
import inspect
import logging
from typing import Dict, List, Optional

from slidesvg.dsl.schema import Element, Text
from slidesvg.engine.text_measure import (
    MeasuredFragment,
    MeasuredParagraph,
    MeasureRequest,
    MeasuredText,
    TextMeasurer,
)
from slidesvg.engine.units import BASELINE_RATIO, TEXT_PADDING_X, TEXT_PADDING_Y
from slidesvg.errors import TextMeasurementError
from slidesvg.renderer.fill_renderer import FillResolver
from slidesvg.renderer.markup import Defs, MarkupNode, format_number as fmt

logger = logging.getLogger(__name__)


def _padded_line_height(line_height: Optional[float], font_size: Optional[float]) -> Optional[float]:
    # Grow the line box by the vertical padding, keeping it relative to the font size
    if line_height and font_size:
        return ((line_height * font_size) + TEXT_PADDING_Y) / font_size
    return line_height


def pad_line_heights(text: Text) -> Text:
    """Return a copy of ``text`` with line heights enlarged by the vertical padding."""
    paragraphs = []
    for paragraph in text.content:
        p_font_size = max((f.font_size or 0 for f in paragraph.fragments), default=0)
        fragments = [
            f.model_copy(update={"line_height": _padded_line_height(f.line_height, f.font_size)})
            for f in paragraph.fragments
        ]
        paragraphs.append(paragraph.model_copy(update={
            "fragments": fragments,
            "line_height": _padded_line_height(paragraph.line_height, p_font_size),
        }))
    return text.model_copy(update={"content": paragraphs})


class TextRenderer:
    """Assembles the text nodes of an element."""

    def __init__(self, measurer: TextMeasurer, fill_resolver: FillResolver, embed_text: bool = True):
        self.measurer = measurer
        self.fill_resolver = fill_resolver
        self.embed_text = embed_text

    async def measure(self, element: Element, fonts: Dict[str, str]) -> MeasuredText:
        style = element.style
        request = MeasureRequest(
            text=pad_line_heights(element.text),
            width=style.width,
            height=style.height,
            padding_left=TEXT_PADDING_X,
            padding_right=TEXT_PADDING_X,
            padding_top=TEXT_PADDING_Y,
            padding_bottom=TEXT_PADDING_Y,
            fonts=fonts,
        )
        result = self.measurer.measure(request)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def render(
        self,
        element: Element,
        defs: Defs,
        prefix: str,
        fonts: Dict[str, str],
    ) -> List[MarkupNode]:
        """
        Render an element's text.

        A measurement failure drops the text of this element only.

        Returns:
            Text nodes, wrapped in a rotation group when the element is rotated
        """
        if element.text is None:
            return []

        try:
            measured = await self.measure(element, fonts)
        except TextMeasurementError as e:
            logger.warning(f"Text of {prefix} skipped: {e}")
            return []

        jobs = [
            self._fragment_node(paragraph, fragment, element, defs, f"{prefix}_text_{p_index}_{f_index}")
            for p_index, paragraph in enumerate(measured.paragraphs)
            if paragraph.content
            for f_index, fragment in enumerate(paragraph.fragments)
        ]
        nodes = [node for node in await asyncio.gather(*jobs) if node is not None]
        if not nodes:
            return []

        style = element.style
        if style.rotate != 0:
            return [MarkupNode("g", {
                "transform": f"rotate({fmt(style.rotate)} {fmt(style.width / 2)} {fmt(style.height / 2)})",
            }, nodes)]
        return nodes

    async def _fragment_node(
        self,
        paragraph: MeasuredParagraph,
        fragment: MeasuredFragment,
        element: Element,
        defs: Defs,
        prefix: str,
    ) -> Optional[MarkupNode]:
        if not fragment.characters:
            return None

        f_style = fragment.computed_style
        style = element.style

        if f_style.fill is not None:
            fill = await self.fill_resolver.resolve(
                f_style.fill, defs, prefix, style.width, style.height, style.rotate,
            )
        elif f_style.color and f_style.color != "none":
            fill = f_style.color
        else:
            fill = None

        if self.embed_text and fragment.characters[0].glyph_box is not None:
            return MarkupNode("path", {
                "d": " ".join(c.path_data for c in fragment.characters if c.path_data),
                "fill": fill,
            })

        return MarkupNode("text", {
            "fill": fill,
            "font-size": f_style.font_size,
            "font-family": f_style.font_family,
            "letter-spacing": f_style.letter_spacing,
            "font-weight": f_style.font_weight,
            "font-style": f_style.font_style,
            "text-transform": f_style.text_transform,
            "text-decoration": f_style.text_decoration,
            "dominant-baseline": "alphabetic",
            "style": {"text-indent": paragraph.computed_style.text_indent},
        }, [
            MarkupNode("tspan", {
                "x": c.inline_box.left,
                "y": c.inline_box.top + c.font_size * BASELINE_RATIO,
            }, [c.content])
            for c in fragment.characters
        ])
