"""
units.py — Unit conversions, layout constants and color parsing.

Document units are points. Never hardcode conversion factors anywhere else
in the codebase; derive them from the constants below.
"""

import re
from typing import Tuple

from pptx.util import Cm

# =============================================================================
# TEXT BOX PADDING (points)
# =============================================================================

# Default body insets of a presentation text box
TEXT_PADDING_X = Cm(0.25).pt
TEXT_PADDING_Y = Cm(0.13).pt

# Distance from the top of a character's inline box to its baseline,
# as a multiple of the font size
BASELINE_RATIO = 1.15

DEFAULT_FONT_FAMILY = "Calibri"
DEFAULT_FONT_SIZE = 14.0
DEFAULT_LINE_HEIGHT = 1.2

# =============================================================================
# COLORS
# =============================================================================

NAMED_COLORS = {
    "black": (0, 0, 0, 1.0),
    "white": (255, 255, 255, 1.0),
    "red": (255, 0, 0, 1.0),
    "green": (0, 128, 0, 1.0),
    "blue": (0, 0, 255, 1.0),
    "gray": (128, 128, 128, 1.0),
    "grey": (128, 128, 128, 1.0),
    "transparent": (0, 0, 0, 0.0),
}

_RGB_FUNC = re.compile(r"^rgba?\(\s*([^)]*)\)$")


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value between min and max."""
    return max(min_val, min(max_val, value))


def parse_color(color: str) -> Tuple[int, int, int, float]:
    """
    Parse a CSS color into an (r, g, b, alpha) tuple.

    Supports #rgb, #rgba, #rrggbb, #rrggbbaa, rgb(), rgba() and a handful
    of named colors. Channels are 0-255, alpha is 0-1.

    Raises:
        ValueError: if the color cannot be parsed
    """
    value = color.strip().lower()

    if value in NAMED_COLORS:
        return NAMED_COLORS[value]

    if value.startswith('#'):
        hex_color = value[1:]
        if len(hex_color) in (3, 4):
            hex_color = ''.join(c * 2 for c in hex_color)
        if len(hex_color) not in (6, 8) or not re.fullmatch(r"[0-9a-f]+", hex_color):
            raise ValueError(f"Invalid hex color: {color!r}")
        r, g, b = (int(hex_color[i:i + 2], 16) for i in (0, 2, 4))
        alpha = int(hex_color[6:8], 16) / 255 if len(hex_color) == 8 else 1.0
        return r, g, b, alpha

    match = _RGB_FUNC.match(value)
    if match:
        parts = [p.strip() for p in re.split(r"[,\s/]+", match.group(1)) if p.strip()]
        if len(parts) not in (3, 4):
            raise ValueError(f"Invalid rgb color: {color!r}")
        channels = []
        for part in parts[:3]:
            if part.endswith('%'):
                channels.append(round(float(part[:-1]) * 255 / 100))
            else:
                channels.append(round(float(part)))
        alpha = 1.0
        if len(parts) == 4:
            alpha = float(parts[3][:-1]) / 100 if parts[3].endswith('%') else float(parts[3])
        r, g, b = (int(clamp(c, 0, 255)) for c in channels)
        return r, g, b, clamp(alpha, 0.0, 1.0)

    raise ValueError(f"Unsupported color: {color!r}")
