"""Template layout: canvas, header band and cell rectangles.

Three fixed post templates:

  4-grid                header-single           header-4-images
  ┌─────────┬─────────┐ ┌───────────────────┐   ┌───────────────────┐
  │    0    │    1    │ │   header band     │   │   header band     │
  ├─────────┼─────────┤ ├───────────────────┤   ├─────────┬─────────┤
  │    2    │    3    │ │         0         │   │    0    │    1    │
  └─────────┴─────────┘ │                   │   ├─────────┼─────────┤
                        └───────────────────┘   │    2    │    3    │
                                                └─────────┴─────────┘

Cells are indexed row-major from the top-left (index = row * cols + col).
The header band height is an input here; it is derived from the wrapped
header text by text_layout.header_height().
"""

from dataclasses import dataclass
from enum import Enum

from .common import BLACK, WHITE


class Template(Enum):
    FOUR_GRID = "4-grid"
    HEADER_SINGLE = "header-single"
    HEADER_4_IMAGES = "header-4-images"

    @property
    def has_header(self) -> bool:
        return self is not Template.FOUR_GRID

    @property
    def grid(self) -> tuple[int, int]:
        """(cols, rows) of the media area."""
        if self is Template.HEADER_SINGLE:
            return (1, 1)
        return (2, 2)

    @property
    def slot_count(self) -> int:
        cols, rows = self.grid
        return cols * rows

    @property
    def background(self) -> tuple[int, int, int]:
        return BLACK if self.has_header else WHITE


class AspectRatio(Enum):
    SQUARE = "1:1"
    PORTRAIT_4X5 = "4:5"

    @property
    def size(self) -> tuple[int, int]:
        """Logical canvas (width, height) in pixels."""
        if self is AspectRatio.PORTRAIT_4X5:
            return (1080, 1350)
        return (1080, 1080)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in logical canvas coordinates (floats)."""

    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.w / 2, self.y + self.h / 2)

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px < self.right and self.y <= py < self.bottom

    def box(self) -> tuple[int, int, int, int]:
        """Integer pixel box (left, top, right, bottom), edges rounded.

        Adjacent rects share rounded edges, so boxes tile the canvas with
        no gaps or overlaps.
        """
        return (round(self.x), round(self.y), round(self.right), round(self.bottom))


@dataclass(frozen=True)
class TemplateLayout:
    canvas_w: int
    canvas_h: int
    header: Rect | None
    cells: tuple[Rect, ...]

    @property
    def media_top(self) -> float:
        return self.header.h if self.header is not None else 0.0


def compute_layout(
    template: Template,
    canvas_w: int,
    canvas_h: int,
    header_h: float = 0.0,
) -> TemplateLayout:
    """Compute header and cell rectangles for a template.

    Args:
        template: Which post template to lay out.
        canvas_w, canvas_h: Logical canvas size.
        header_h: Header band height. Ignored for templates without a
            header.

    Returns:
        TemplateLayout with cells in slot-index order.
    """
    header = None
    top = 0.0
    if template.has_header:
        header = Rect(0.0, 0.0, float(canvas_w), float(header_h))
        top = float(header_h)

    cols, rows = template.grid
    cell_w = canvas_w / cols
    cell_h = (canvas_h - top) / rows

    cells = []
    for row in range(rows):
        for col in range(cols):
            cells.append(Rect(col * cell_w, top + row * cell_h, cell_w, cell_h))

    return TemplateLayout(
        canvas_w=canvas_w,
        canvas_h=canvas_h,
        header=header,
        cells=tuple(cells),
    )
