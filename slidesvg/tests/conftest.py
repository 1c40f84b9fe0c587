"""Pytest configuration and fixtures."""

from io import BytesIO

import pytest
from PIL import Image

from slidesvg.engine.text_measure import (
    Box,
    MeasuredCharacter,
    MeasuredFragment,
    MeasuredParagraph,
    MeasureRequest,
    MeasuredText,
)
from slidesvg.errors import TextMeasurementError

SVG = "{http://www.w3.org/2000/svg}"
XLINK_HREF = "{http://www.w3.org/1999/xlink}href"


class FakeMeasurer:
    """Places every character on one line, 10 units apart.

    With ``glyphs`` each character also gets a glyph box and outline.
    """

    def __init__(self, glyphs: bool = False, fail: bool = False):
        self.glyphs = glyphs
        self.fail = fail
        self.requests: list[MeasureRequest] = []

    def measure(self, request: MeasureRequest) -> MeasuredText:
        self.requests.append(request)
        if self.fail:
            raise TextMeasurementError("no fonts available")

        base = request.text.text_style()
        measured = MeasuredText()
        y = request.padding_top
        for paragraph in request.text.content:
            p_style = base.merged(paragraph)
            m_paragraph = MeasuredParagraph(computed_style=p_style)
            x = request.padding_left
            for fragment in paragraph.fragments:
                f_style = p_style.merged(fragment)
                font_size = f_style.font_size or 10
                m_fragment = MeasuredFragment(computed_style=f_style)
                for char in fragment.content:
                    box = Box(x, y, 10, font_size)
                    m_fragment.characters.append(MeasuredCharacter(
                        content=char,
                        font_size=font_size,
                        inline_box=box,
                        glyph_box=box if self.glyphs else None,
                        path_data=f"M{x:g} {y:g}h5v5z" if self.glyphs else None,
                    ))
                    x += 10
                m_paragraph.fragments.append(m_fragment)
            measured.paragraphs.append(m_paragraph)
            y += 20
        return measured


class AsyncFakeMeasurer(FakeMeasurer):
    """Same layout, returned from a coroutine."""

    async def measure(self, request: MeasureRequest) -> MeasuredText:
        return FakeMeasurer.measure(self, request)


@pytest.fixture
def measurer() -> FakeMeasurer:
    return FakeMeasurer()


@pytest.fixture
def png_bytes() -> bytes:
    """A 2x2 red PNG."""
    buffer = BytesIO()
    Image.new("RGB", (2, 2), (255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sample_document() -> dict:
    """A two-slide document in raw camelCase form."""
    return {
        "style": {"width": 960},
        "children": [
            {
                "style": {"width": 960, "height": 540},
                "background": "#FFFFFF",
                "children": [
                    {
                        "style": {"left": 100, "top": 50, "width": 200, "height": 100},
                        "fill": {"linearGradient": {
                            "angle": 90,
                            "stops": [
                                {"offset": 0, "color": "#0D9488"},
                                {"offset": 1, "color": "#CCFBF1"},
                            ],
                        }},
                        "outline": {"color": "#000000", "width": 2},
                    },
                    {
                        "style": {"left": 400, "top": 50, "width": 200, "height": 100, "rotate": 45},
                        "fill": "#14B8A6",
                        "effect": {"outerShadow": {"color": "#00000080", "offsetX": 4, "offsetY": 4, "blurRadius": 12}},
                    },
                ],
            },
            {
                "style": {"width": 960, "height": 540},
                "background": {"color": "#F5F5F5"},
            },
        ],
    }
