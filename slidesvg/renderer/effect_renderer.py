"""Soft-edge and outer-shadow filters."""

from slidesvg.dsl.schema import OuterShadow
from slidesvg.engine.units import parse_color
from slidesvg.renderer.markup import MarkupNode, format_number as fmt

# Content scale applied under a soft edge so the blurred silhouette keeps its size
SOFT_EDGE_SCALE = 0.8


def build_soft_edge_filter(filter_id: str, radius: float) -> MarkupNode:
    return MarkupNode("filter", {"id": filter_id}, [
        MarkupNode("feGaussianBlur", {"in": "SourceGraphic", "stdDeviation": radius / 3}),
    ])


def soft_edge_transform(width: float, height: float) -> str:
    """Shrink to 80% and re-center to offset the growth caused by the blur."""
    margin = (1 - SOFT_EDGE_SCALE) / 2
    return (
        f"matrix({fmt(SOFT_EDGE_SCALE)},0,0,{fmt(SOFT_EDGE_SCALE)},"
        f"{fmt(width * margin)},{fmt(height * margin)})"
    )


def shadow_matrix(shadow: OuterShadow, height: float) -> tuple[float, float, float, float, float, float]:
    """
    Affine placement (a, b, c, d, e, f) of the shadow copy.

    The vertical translation is shifted by ``height - height * scale_y`` so a
    vertically scaled shadow stays anchored at the shape's bottom edge.
    """
    return (
        shadow.scale_x,
        0,
        0,
        shadow.scale_y,
        shadow.offset_x,
        (height - height * shadow.scale_y) + shadow.offset_y,
    )


def shadow_transform(shadow: OuterShadow, height: float) -> str:
    return "matrix({})".format(",".join(fmt(v) for v in shadow_matrix(shadow, height)))


def build_outer_shadow_filter(
    filter_id: str,
    shadow: OuterShadow,
    width: float,
    height: float,
) -> MarkupNode:
    """
    Build the outer-shadow filter.

    The filter region is the element box grown by the blur radius on every
    side, in user space so large offsets or scales are never clipped. The
    alpha channel is blurred, every color channel is set to the shadow color
    and alpha is scaled by the shadow opacity.
    """
    r, g, b, a = parse_color(shadow.color)
    blur = shadow.blur_radius

    return MarkupNode("filter", {
        "id": filter_id,
        "filterUnits": "userSpaceOnUse",
        "x": -blur,
        "y": -blur,
        "width": width + blur * 2,
        "height": height + blur * 2,
    }, [
        MarkupNode("feGaussianBlur", {
            "in": "SourceAlpha",
            "result": "blur",
            "stdDeviation": int(blur // 6),
        }),
        MarkupNode("feComponentTransfer", {"color-interpolation-filters": "sRGB"}, [
            MarkupNode("feFuncR", {"type": "linear", "slope": "0", "intercept": r / 255}),
            MarkupNode("feFuncG", {"type": "linear", "slope": "0", "intercept": g / 255}),
            MarkupNode("feFuncB", {"type": "linear", "slope": "0", "intercept": b / 255}),
            MarkupNode("feFuncA", {"type": "linear", "slope": a, "intercept": 0}),
        ]),
    ])
