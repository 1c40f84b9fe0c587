"""
text_measure.py — Measure text into positioned character boxes.

The renderer never lays out text itself. It hands the element's text to a
TextMeasurer and receives per-character inline boxes (and, when the measurer
can provide them, glyph outlines as SVG path data).

PillowTextMeasurer is the default measurer: it uses Pillow font metrics for
character advances and fills lines greedily, one paragraph after another.
It produces no glyph outlines, so its text always renders as text runs.
"""

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Dict, List, Optional, Protocol, Union

from PIL import ImageFont

from slidesvg.dsl.schema import Text, TextStyle
from slidesvg.engine.units import DEFAULT_FONT_FAMILY, DEFAULT_FONT_SIZE, DEFAULT_LINE_HEIGHT
from slidesvg.errors import TextMeasurementError


# =============================================================================
# MEASURED TEXT
# =============================================================================

@dataclass
class Box:
    """Axis-aligned box in element coordinates."""
    left: float
    top: float
    width: float
    height: float


@dataclass
class MeasuredCharacter:
    """A single character with its measured placement."""
    content: str
    font_size: float
    inline_box: Box
    glyph_box: Optional[Box] = None        # Set when a glyph outline is available
    path_data: Optional[str] = None        # Glyph outline as SVG path data


@dataclass
class MeasuredFragment:
    computed_style: TextStyle
    characters: List[MeasuredCharacter] = field(default_factory=list)

    @property
    def content(self) -> str:
        return "".join(c.content for c in self.characters)


@dataclass
class MeasuredParagraph:
    computed_style: TextStyle
    fragments: List[MeasuredFragment] = field(default_factory=list)

    @property
    def content(self) -> str:
        return "".join(f.content for f in self.fragments)


@dataclass
class MeasuredText:
    paragraphs: List[MeasuredParagraph] = field(default_factory=list)


@dataclass
class MeasureRequest:
    """Everything a measurer needs to lay out one element's text."""
    text: Text
    width: float
    height: float
    padding_left: float = 0.0
    padding_right: float = 0.0
    padding_top: float = 0.0
    padding_bottom: float = 0.0
    fonts: Dict[str, str] = field(default_factory=dict)


class TextMeasurer(Protocol):
    """Turns text plus style and fonts into positioned character boxes.

    Implementations may be synchronous or return an awaitable. They raise
    TextMeasurementError when the text cannot be measured.
    """

    def measure(self, request: MeasureRequest) -> Union[MeasuredText, Awaitable[MeasuredText]]:
        ...


# =============================================================================
# FONT LOADING
# =============================================================================

# Fonts are loaded once at this size and advances scaled to the requested size
REFERENCE_SIZE = 64

SYSTEM_FONTS = [
    Path('/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf'),
    Path('/usr/share/fonts/TTF/DejaVuSans.ttf'),
    Path('/Library/Fonts/Arial.ttf'),
]

FontType = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

# Cache loaded fonts to avoid repeated disk access
_font_cache: Dict[Optional[str], FontType] = {}


def _system_font() -> Optional[Path]:
    candidates = list(SYSTEM_FONTS)
    if platform.system() == 'Windows':
        windows_fonts = Path(os.environ.get('WINDIR', 'C:/Windows')) / 'Fonts'
        candidates = [windows_fonts / 'calibri.ttf', windows_fonts / 'arial.ttf']
    for path in candidates:
        if path.exists():
            return path
    return None


def get_font(font_path: Optional[str]) -> FontType:
    """
    Load a font for measurement. Falls back gracefully if not found.

    Args:
        font_path: Font file for the family, or None for the system fallback

    Raises:
        TextMeasurementError: if an explicitly configured font cannot be read
    """
    if font_path in _font_cache:
        return _font_cache[font_path]

    if font_path is not None:
        try:
            font = ImageFont.truetype(font_path, REFERENCE_SIZE)
        except OSError as e:
            raise TextMeasurementError(f"Could not load font {font_path}: {e}") from e
    else:
        fallback = _system_font()
        try:
            font = ImageFont.truetype(str(fallback), REFERENCE_SIZE) if fallback else None
        except OSError:
            font = None
        if font is None:
            # Pillow's bundled font as last resort
            font = ImageFont.load_default(size=REFERENCE_SIZE)

    _font_cache[font_path] = font
    return font


def clear_font_cache():
    """Clear the font cache (useful for testing)."""
    _font_cache.clear()


# =============================================================================
# DEFAULT MEASURER
# =============================================================================

class PillowTextMeasurer:
    """Measures character advances with Pillow and fills lines greedily."""

    def measure(self, request: MeasureRequest) -> MeasuredText:
        base = request.text.text_style()
        line_start = request.padding_left
        line_end = request.width - request.padding_right
        y = request.padding_top
        measured = MeasuredText()

        for paragraph in request.text.content:
            p_style = base.merged(paragraph)
            styles = [p_style.merged(fragment) for fragment in paragraph.fragments]
            line_height = max(
                [
                    (s.font_size or DEFAULT_FONT_SIZE) * (s.line_height or DEFAULT_LINE_HEIGHT)
                    for s in styles
                ] or [(p_style.font_size or DEFAULT_FONT_SIZE) * (p_style.line_height or DEFAULT_LINE_HEIGHT)]
            )
            x = line_start + (p_style.text_indent or 0)
            m_paragraph = MeasuredParagraph(computed_style=p_style)

            for fragment, f_style in zip(paragraph.fragments, styles):
                font_size = f_style.font_size or DEFAULT_FONT_SIZE
                family = f_style.font_family or DEFAULT_FONT_FAMILY
                font = get_font(request.fonts.get(family))
                scale = font_size / REFERENCE_SIZE
                spacing = f_style.letter_spacing or 0
                m_fragment = MeasuredFragment(computed_style=f_style)

                for char in fragment.content:
                    if char == '\n':
                        x = line_start
                        y += line_height
                        continue
                    advance = font.getlength(char) * scale + spacing
                    if x + advance > line_end and x > line_start:
                        x = line_start
                        y += line_height
                    m_fragment.characters.append(MeasuredCharacter(
                        content=char,
                        font_size=font_size,
                        inline_box=Box(x, y, advance, line_height),
                    ))
                    x += advance

                m_paragraph.fragments.append(m_fragment)

            measured.paragraphs.append(m_paragraph)
            y += line_height

        return measured
