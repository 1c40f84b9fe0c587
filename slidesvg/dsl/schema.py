"""Pydantic v2 models for the normalized slide document.

This module defines the element tree consumed by the SVG renderer. Models are
frozen: the renderer reads the tree and never mutates it. All lengths are in
document units (points), angles in degrees.

Raw documents may use either snake_case or camelCase keys (``scaleX`` and
``scale_x`` are both accepted), and fills may be given in shorthand form::

    "#ff0000"                                   -> ColorFill
    {"color": "#ff0000"}                        -> ColorFill
    {"linearGradient": {"angle": 90, ...}}      -> LinearGradientFill
    {"image": "https://example.com/a.png"}      -> ImageFill
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from slidesvg.engine.units import parse_color


class _Model(BaseModel):
    """Frozen model accepting both field names and camelCase aliases."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


# ============================================================================
# Fill Models
# ============================================================================


class GradientStop(_Model):
    """A gradient color stop."""

    offset: float = Field(ge=0.0, le=1.0, description="Position along the gradient (0-1)")
    color: str = Field(description="Stop color")


class ColorFill(_Model):
    """Solid color fill."""

    type: Literal["color"] = "color"
    color: str = Field(description="Any SVG color value (e.g. '#0D9488')")


class LinearGradientFill(_Model):
    """Linear gradient fill."""

    type: Literal["linearGradient"] = "linearGradient"
    angle: float = Field(default=0.0, description="Gradient angle in degrees")
    stops: list[GradientStop] = Field(default_factory=list, description="Color stops, in order")


class RadialGradientFill(_Model):
    """Radial gradient fill centered on the shape."""

    type: Literal["radialGradient"] = "radialGradient"
    stops: list[GradientStop] = Field(default_factory=list, description="Color stops, in order")


class RectOffsets(_Model):
    """Fractional insets of a rectangle (0 = edge of the box)."""

    left: float = 0.0
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0


class ImageFill(_Model):
    """Image fill rendered as a pattern."""

    type: Literal["image"] = "image"
    image: str = Field(description="Image URL, file path or data URI")
    crop_rect: Optional[RectOffsets] = Field(default=None, description="Visible source region")
    stretch_rect: Optional[RectOffsets] = Field(default=None, description="Target region in the shape")
    rotate_with_shape: bool = Field(default=True, description="Rotate the image with its shape")
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)


Fill = Annotated[
    Union[ColorFill, LinearGradientFill, RadialGradientFill, ImageFill],
    Field(discriminator="type"),
]


def coerce_fill(value: Any) -> Any:
    """Turn shorthand fill input into the tagged form.

    Returns None for "none" and for mappings that carry no paint at all.
    """
    if value is None or isinstance(value, BaseModel):
        return value
    if isinstance(value, str):
        return None if value == "none" else {"type": "color", "color": value}
    if isinstance(value, dict) and "type" not in value:
        if "image" in value:
            return {**value, "type": "image"}
        for tag in ("linearGradient", "radialGradient"):
            if tag in value:
                rest = {k: v for k, v in value.items() if k != tag}
                return {**rest, **value[tag], "type": tag}
        if "color" in value:
            return {**value, "type": "color"}
        return None
    return value


# ============================================================================
# Outline & Effect Models
# ============================================================================


LineEndType = Literal["oval", "stealth", "triangle", "arrow", "diamond"]
LineEndSize = Literal["sm", "md", "lg"]


class LineEnd(_Model):
    """Decorative terminator on a stroked contour."""

    type: LineEndType
    width: LineEndSize = "md"
    height: LineEndSize = "md"


class Outline(_Model):
    """Stroke of an element's contours."""

    color: Optional[str] = Field(default=None, description="Stroke color")
    width: float = Field(default=1.0, ge=0.0, description="Stroke width")
    head_end: Optional[LineEnd] = None
    tail_end: Optional[LineEnd] = None


class SoftEdge(_Model):
    """Blur-based edge feathering."""

    radius: float = Field(default=0.0, ge=0.0)


class OuterShadow(_Model):
    """Offset, scaled, blurred and recolored copy of the silhouette."""

    color: str = "#000000"
    offset_x: float = 0.0
    offset_y: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    blur_radius: float = Field(default=0.0, ge=0.0)

    @field_validator("color")
    @classmethod
    def validate_color(cls, value: str) -> str:
        parse_color(value)
        return value


class Effect(_Model):
    """Visual effects of an element."""

    soft_edge: Optional[SoftEdge] = None
    outer_shadow: Optional[OuterShadow] = None


# ============================================================================
# Text Models
# ============================================================================


class TextStyle(_Model):
    """Text style, cascading text -> paragraph -> fragment."""

    font_size: Optional[float] = None
    font_family: Optional[str] = None
    font_weight: Optional[Union[int, str]] = None
    font_style: Optional[str] = None
    letter_spacing: Optional[float] = None
    line_height: Optional[float] = None
    color: Optional[str] = None
    fill: Optional[Fill] = None
    text_transform: Optional[str] = None
    text_decoration: Optional[str] = None
    text_indent: Optional[float] = None

    @field_validator("fill", mode="before")
    @classmethod
    def coerce_fills(cls, value: Any) -> Any:
        return coerce_fill(value)

    def text_style(self) -> "TextStyle":
        """Return only the style part of this model."""
        return TextStyle(**{name: getattr(self, name) for name in TextStyle.model_fields})

    def merged(self, other: "TextStyle") -> "TextStyle":
        """Return this style overridden by the values set in ``other``."""
        updates = {
            name: getattr(other, name)
            for name in TextStyle.model_fields
            if getattr(other, name) is not None
        }
        return self.text_style().model_copy(update=updates)


class Fragment(TextStyle):
    """A run of text with consistent formatting."""

    content: str = ""


class Paragraph(TextStyle):
    """An ordered list of fragments."""

    fragments: list[Fragment] = Field(default_factory=list)

    @field_validator("fragments", mode="before")
    @classmethod
    def coerce_fragments(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [{"content": value}]
        return [{"content": item} if isinstance(item, str) else item for item in value]


class Text(TextStyle):
    """Text content of an element."""

    content: list[Paragraph] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def coerce_content(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [{"fragments": [{"content": line}]} for line in value.split("\n")]
        return [{"fragments": item} if isinstance(item, str) else item for item in value]


# ============================================================================
# Element Models
# ============================================================================


class ShapePath(_Model):
    """A single contour of an element's shape."""

    data: str = Field(description="SVG path data")
    fill: Optional[str] = None
    fill_rule: Optional[Literal["nonzero", "evenodd"]] = None
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None


class Shape(_Model):
    """Explicit contour data. Elements without it render as a rectangle."""

    paths: list[ShapePath] = Field(default_factory=list)


class ElementStyle(_Model):
    """Geometry of an element. Missing values default to identity/zero."""

    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    rotate: float = Field(default=0.0, description="Rotation in degrees")
    visibility: Optional[Literal["visible", "hidden"]] = None


class Element(_Model):
    """A node of the normalized element tree."""

    style: ElementStyle = Field(default_factory=ElementStyle)
    shape: Optional[Shape] = None
    background: Optional[Fill] = None
    foreground: Optional[Fill] = None
    fill: Optional[Fill] = None
    outline: Optional[Outline] = None
    effect: Effect = Field(default_factory=Effect)
    text: Optional[Text] = None
    children: list["Element"] = Field(default_factory=list)

    @field_validator("background", "foreground", "fill", mode="before")
    @classmethod
    def coerce_fills(cls, value: Any) -> Any:
        return coerce_fill(value)

    @property
    def has_line_ends(self) -> bool:
        """Whether the outline carries a head or tail marker."""
        return self.outline is not None and (
            self.outline.head_end is not None or self.outline.tail_end is not None
        )


class DocumentStyle(_Model):
    """Declared document size. Undeclared values fall back to the first child."""

    width: Optional[float] = None
    height: Optional[float] = None


class Document(_Model):
    """A normalized document: an ordered list of top-level elements."""

    style: DocumentStyle = Field(default_factory=DocumentStyle)
    children: list[Element] = Field(default_factory=list)
    fonts: dict[str, str] = Field(
        default_factory=dict,
        description="Font family -> font file path, handed to the text measurer",
    )


def normalize_document(raw: Union[Document, dict[str, Any]]) -> Document:
    """Validate a raw document mapping, filling in every default."""
    if isinstance(raw, Document):
        return raw
    return Document.model_validate(raw)


def normalize_element(raw: Union[Element, dict[str, Any]]) -> Element:
    """Validate a raw element mapping, filling in every default."""
    if isinstance(raw, Element):
        return raw
    return Element.model_validate(raw)
