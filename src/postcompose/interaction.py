"""Pointer interaction: hit-testing, selection, pan and zoom.

The preview is usually displayed at a different size than the logical
canvas (1080 wide). Pointer positions are first mapped to logical canvas
coordinates with independent X and Y scale factors, then tested against
the same layout the renderer draws.

Hit-test rule: cells are found by floor division, so a point exactly on
a shared edge belongs to the cell below / to the right of it. Points in
the header band (y <= header height) or outside the canvas hit nothing.
"""

import math

from .state import RenderState


def to_logical(
    px: float,
    py: float,
    display_size: tuple[float, float] | None,
    canvas_size: tuple[int, int],
) -> tuple[float, float]:
    """Map a pointer position on the displayed preview to canvas coordinates.

    Args:
        px, py: Pointer position relative to the preview's top-left.
        display_size: (width, height) the preview is displayed at. None
            means the preview is shown at logical size.
        canvas_size: Logical canvas (width, height).
    """
    if display_size is None:
        return float(px), float(py)
    disp_w, disp_h = display_size
    canvas_w, canvas_h = canvas_size
    return px * (canvas_w / disp_w), py * (canvas_h / disp_h)


def hit_test(state: RenderState, x: float, y: float) -> int | None:
    """Return the slot index under logical point (x, y), or None.

    Pure geometry: the slot may be empty. See InteractionController.click
    for the populated-only selection rule.
    """
    w, h = state.canvas_size
    if not (0 <= x < w and 0 <= y < h):
        return None

    layout = state.layout()
    if layout.header is not None and y <= layout.header.h:
        return None

    cols, rows = state.template.grid
    first = layout.cells[0]
    col = min(cols - 1, math.floor(x / first.w))
    row = min(rows - 1, math.floor((y - first.y) / first.h))
    return row * cols + col


class InteractionController:
    """Owns the live RenderState of an editing session.

    Every interaction replaces ``state`` with a new snapshot; renders
    and exports started earlier keep the snapshot they were given.

    Args:
        state: Initial snapshot.
        display_size: Size the preview is displayed at, used to map
            pointer positions. None means 1:1 with the canvas.
    """

    def __init__(self, state: RenderState | None = None, display_size=None):
        self.state = state if state is not None else RenderState()
        self.display_size = display_size
        self._dragging: int | None = None
        self._last_pointer: tuple[float, float] | None = None

    @property
    def dragging(self) -> int | None:
        return self._dragging

    def edit(self, fn, *args, **kwargs) -> RenderState:
        """Apply an edit such as ``RenderState.with_caption`` to the live state.

        Example: ``controller.edit(RenderState.with_header_text, "Hello")``.
        """
        self.state = fn(self.state, *args, **kwargs)
        return self.state

    def _logical(self, px: float, py: float) -> tuple[float, float]:
        return to_logical(px, py, self.display_size, self.state.canvas_size)

    def click(self, px: float, py: float) -> int | None:
        """Select the populated slot under the pointer.

        Returns the newly selected index, or None if nothing selectable
        was hit (the current selection is then left unchanged).
        """
        index = hit_test(self.state, *self._logical(px, py))
        if index is None or self.state.slots[index].is_empty:
            return None
        self.state = self.state.select(index)
        return index

    def press(self, px: float, py: float) -> bool:
        """Begin dragging the selected slot. Returns True if a drag started."""
        index = self.state.selected
        if index is None or self.state.slots[index].is_empty:
            return False
        self._dragging = index
        self._last_pointer = self._logical(px, py)
        return True

    def move(self, px: float, py: float) -> RenderState:
        """Pan the dragged slot by the delta since the previous pointer event."""
        if self._dragging is None:
            return self.state
        x, y = self._logical(px, py)
        last_x, last_y = self._last_pointer
        self.state = self.state.nudged(self._dragging, x - last_x, y - last_y)
        self._last_pointer = (x, y)
        return self.state

    def release(self) -> None:
        self._dragging = None
        self._last_pointer = None

    def set_zoom(self, zoom: float) -> RenderState:
        """Zoom the selected slot; offsets are re-clamped for the new zoom."""
        if self.state.selected is None:
            return self.state
        self.state = self.state.with_zoom(self.state.selected, zoom)
        return self.state
