"""Document and element view boxes."""

from dataclasses import dataclass

from slidesvg.dsl.schema import Document, Element
from slidesvg.renderer.effect_renderer import shadow_matrix
from slidesvg.renderer.markup import format_number as fmt


@dataclass
class ViewBox:
    """Rectangle in document units."""
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    def to_attr(self) -> str:
        return f"{fmt(self.x1)} {fmt(self.y1)} {fmt(self.x2)} {fmt(self.y2)}"


def document_view_box(doc: Document) -> ViewBox:
    """
    View box of a whole document.

    Top-level elements are laid out as stacked bands, so the height is one
    element's height times the number of top-level elements.
    """
    first = doc.children[0].style if doc.children else None
    width = doc.style.width if doc.style.width is not None else (first.width if first else 0)
    height = doc.style.height if doc.style.height is not None else (first.height if first else 0)
    return ViewBox(0, 0, width, height * len(doc.children))


def element_view_box(element: Element) -> ViewBox:
    """
    View box for exporting one element on its own.

    Grows the declared box by the outline width, by the outline width again
    when line-end markers are present, and to the union with the outer
    shadow's offset, scaled and blur-expanded box.
    """
    width = element.style.width
    height = element.style.height
    view_box = ViewBox(0, 0, width, height)

    def add_outline(size: float) -> None:
        view_box.x1 -= size / 2
        view_box.y1 -= size / 2
        view_box.x2 += size
        view_box.y2 += size

    if element.outline is not None:
        outline_width = element.outline.width
        add_outline(outline_width)
        if element.has_line_ends:
            # Fixed allowance for marker overshoot
            add_outline(outline_width)

    shadow = element.effect.outer_shadow
    if shadow is not None:
        blur = shadow.blur_radius
        sx, _, _, sy, e, f = shadow_matrix(shadow, height)
        x1 = (view_box.x1 - blur) * sx + e
        y1 = (view_box.y1 - blur) * sy + f
        x2 = (view_box.x2 + blur) * sx + e
        y2 = (view_box.y2 + blur) * sy + f

        old = ViewBox(view_box.x1, view_box.y1, view_box.x2, view_box.y2)
        view_box.x1 = min(old.x1, x1)
        view_box.y1 = min(old.y1, y1)
        diff_x = view_box.x1 - old.x1
        diff_y = view_box.y1 - old.y1
        view_box.x2 = max(old.x2, x2) + (0 if diff_x > 0 else -diff_x)
        view_box.y2 = max(old.y2, y2) + (0 if diff_y > 0 else -diff_y)

    return view_box
