"""Build line-end markers for stroked contours."""

import json
from typing import Optional

from slidesvg.dsl.schema import LineEnd, LineEndSize
from slidesvg.renderer.markup import Defs, MarkupNode

# Marker box multiplier per size bucket
SIZE_SCALE: dict[str, float] = {
    "sm": 0.8,
    "md": 1.0,
    "lg": 1.6,
}

# Closed marker shapes in the 10x10 marker viewBox
MARKER_PATHS = {
    "stealth": "M 0 0 L 10 5 L 0 10 L 3 5",
    "triangle": "M 0 0 L 10 5 L 0 10",
    "diamond": "M 5 0 L 10 5 L 5 10 L 0 5 Z",
}


def size_scale(size: Optional[LineEndSize]) -> float:
    return SIZE_SCALE.get(size or "md", 1.0)


def marker_box(line_end: LineEnd, stroke_width: float) -> tuple[float, float]:
    """Marker width and height for a line end on a stroke of the given width."""
    thin = stroke_width <= 1
    if line_end.type == "arrow":
        base = 8 if thin else 4
    else:
        base = 5 if thin else 3
    return base * size_scale(line_end.width), base * size_scale(line_end.height)


def build_marker(
    line_end: LineEnd,
    stroke: Optional[str],
    stroke_width: float,
    marker_id: Optional[str] = None,
) -> MarkupNode:
    """Build a marker node painted with the stroke color."""
    width, height = marker_box(line_end, stroke_width)

    if line_end.type == "oval":
        shape = MarkupNode("circle", {"cx": 5, "cy": 5, "r": 5, "fill": stroke})
    elif line_end.type == "arrow":
        # Open chevron, drawn rather than filled
        shape = MarkupNode("polyline", {
            "points": "1 1 5 5 1 9",
            "stroke-linejoin": "miter",
            "stroke-linecap": "round",
            "stroke": stroke,
            "stroke-width": 1.5,
            "fill": "none",
        })
    else:
        shape = MarkupNode("path", {"d": MARKER_PATHS[line_end.type], "fill": stroke})

    return MarkupNode("marker", {
        "id": marker_id,
        "viewBox": "0 0 10 10",
        "refX": 5,
        "refY": 5,
        "markerWidth": width,
        "markerHeight": height,
        "orient": "auto-start-reverse",
    }, [shape])


async def register_marker(
    defs: Defs,
    line_end: LineEnd,
    stroke: Optional[str],
    stroke_width: float,
    marker_id: str,
) -> str:
    """Emit the marker once per distinct end style and return its id."""
    key = json.dumps(
        ["marker", line_end.model_dump(mode="json"), stroke, stroke_width],
        sort_keys=True,
    )

    async def build() -> MarkupNode:
        return build_marker(line_end, stroke, stroke_width, marker_id)

    return await defs.share(key, build)
