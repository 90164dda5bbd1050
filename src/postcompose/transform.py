"""Media transform constraints: aspect-fill, zoom and pan bounds.

Media is scaled to *cover* its cell (aspect-fill): the shorter side
relative to the cell matches the cell exactly and the other side
overflows. Zoom multiplies that base size, and the overflow on each axis
is the room available for panning:

    max_offset_x = (scaled_w - cell_w) / 2
    max_offset_y = (scaled_h - cell_h) / 2

With zoom >= 1 both bounds are non-negative, so clamping the offsets to
[-max, max] guarantees the media always covers the cell and no
background shows around it.
"""

from dataclasses import dataclass, replace

from .layout import Rect


ZOOM_MIN = 1.0
ZOOM_MAX = 3.0

# Float tolerance for the coverage invariant.
_EPS = 1e-6


@dataclass(frozen=True)
class Transform:
    """Zoom and pan of media inside its cell, offsets in canvas pixels."""

    zoom: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0


IDENTITY = Transform()


def clamp_zoom(zoom: float) -> float:
    return max(ZOOM_MIN, min(ZOOM_MAX, float(zoom)))


def cover_size(
    media_w: float, media_h: float, cell_w: float, cell_h: float,
) -> tuple[float, float]:
    """Base (width, height) at which the media exactly covers the cell."""
    media_aspect = media_w / media_h
    cell_aspect = cell_w / cell_h
    if media_aspect > cell_aspect:
        base_h = cell_h
        base_w = base_h * media_aspect
    else:
        base_w = cell_w
        base_h = base_w / media_aspect
    return base_w, base_h


def scaled_size(
    media_w: float, media_h: float, cell_w: float, cell_h: float, zoom: float,
) -> tuple[float, float]:
    """Cover size multiplied by the (clamped) zoom."""
    base_w, base_h = cover_size(media_w, media_h, cell_w, cell_h)
    z = clamp_zoom(zoom)
    return base_w * z, base_h * z


def offset_bounds(
    media_w: float, media_h: float, cell_w: float, cell_h: float, zoom: float,
) -> tuple[float, float]:
    """Maximum absolute (offset_x, offset_y) for the given zoom."""
    scaled_w, scaled_h = scaled_size(media_w, media_h, cell_w, cell_h, zoom)
    return max(0.0, (scaled_w - cell_w) / 2), max(0.0, (scaled_h - cell_h) / 2)


def clamp_transform(
    transform: Transform,
    media_w: float,
    media_h: float,
    cell_w: float,
    cell_h: float,
) -> Transform:
    """Clamp zoom into [1, 3] and both offsets into their legal bounds.

    Idempotent: clamping an already clamped transform returns it
    unchanged.
    """
    zoom = clamp_zoom(transform.zoom)
    max_x, max_y = offset_bounds(media_w, media_h, cell_w, cell_h, zoom)
    return replace(
        transform,
        zoom=zoom,
        offset_x=max(-max_x, min(max_x, transform.offset_x)),
        offset_y=max(-max_y, min(max_y, transform.offset_y)),
    )


def placement(
    transform: Transform, media_w: float, media_h: float, cell: Rect,
) -> Rect:
    """Where the scaled media is drawn: centred in the cell, then offset.

    The returned rect always contains the cell when *transform* is
    clamped for this cell.
    """
    scaled_w, scaled_h = scaled_size(media_w, media_h, cell.w, cell.h, transform.zoom)
    cx, cy = cell.center
    return Rect(
        cx - scaled_w / 2 + transform.offset_x,
        cy - scaled_h / 2 + transform.offset_y,
        scaled_w,
        scaled_h,
    )


def covers(draw: Rect, cell: Rect) -> bool:
    """True if *draw* fully covers *cell* (within float tolerance)."""
    return (
        draw.x <= cell.x + _EPS
        and draw.y <= cell.y + _EPS
        and draw.right >= cell.right - _EPS
        and draw.bottom >= cell.bottom - _EPS
    )
