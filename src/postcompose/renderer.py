"""Composite renderer: one RenderState + opacity → one RGB frame.

Draw order:
  1. Background fill (white for 4-grid, black for header templates).
  2. Header band (header templates): white band, wrapped black header
     text centred in it. Header text never fades.
  3. Media layer: each populated slot's media aspect-filled into its cell
     at the slot's zoom/pan, plus its label (white text with a dark
     outline) centred in the cell. On header templates this layer is
     blended in at the frame's opacity.
  4. Selection highlight (preview only), drawn at full opacity.
  5. Main caption (4-grid only), outlined text centred on the canvas.

render_frame is pure with respect to the state: it reads the snapshot
and the decode cache and returns a new numpy frame.
"""

import numpy as np
from PIL import Image, ImageDraw

from .common import BLACK, WHITE, load_font, parse_hex_color
from .layout import Rect, Template
from .state import MediaSlot, RenderState
from .text_layout import line_height, text_block_origin
from .transform import covers, placement


HIGHLIGHT_COLOR = parse_hex_color("#3B82F6")
HIGHLIGHT_WIDTH = 6

LABEL_FONT_SIZE = 48
# Outline stroke around label/caption glyphs (6px line, half outside).
TEXT_STROKE_WIDTH = 3

HEADER_TEXT_COLOR = BLACK
HEADER_BAND_COLOR = WHITE


def render_frame(
    state: RenderState,
    cache,
    opacity: float = 1.0,
    t: float = 0.0,
    highlight: bool = True,
) -> np.ndarray:
    """Render one frame of a post.

    Args:
        state: Snapshot to draw. Never modified.
        cache: MediaCache providing decoded assets. Slots whose media is
            not decoded yet (or failed to decode) are drawn empty.
        opacity: Media + label opacity in [0, 1]. Only header templates
            honour it; 4-grid always renders at full opacity.
        t: Time in seconds, used to pick frames from video media.
        highlight: Draw the selection border around the selected slot.

    Returns:
        numpy array of shape (height, width, 3), dtype uint8.
    """
    w, h = state.canvas_size
    layout = state.layout()
    template = state.template

    img = Image.new("RGB", (w, h), template.background)
    draw = ImageDraw.Draw(img)

    if layout.header is not None:
        _draw_header(draw, state, layout.header)

    alpha = max(0.0, min(1.0, float(opacity))) if template.has_header else 1.0

    for slot in state.active_slots:
        if slot.is_empty:
            continue
        asset = cache.get(slot.media)
        if asset is None:
            continue
        cell = layout.cells[slot.index]
        tile = _render_slot_tile(slot, asset.frame_at(t), cell, state.font.family)
        box = cell.box()
        if alpha >= 1.0:
            img.paste(tile, box[:2])
        elif alpha > 0.0:
            base = img.crop(box)
            img.paste(Image.blend(base, tile, alpha), box[:2])

        if highlight and state.selected == slot.index:
            x0, y0, x1, y1 = box
            draw.rectangle(
                [(x0, y0), (x1 - 1, y1 - 1)],
                outline=HIGHLIGHT_COLOR,
                width=HIGHLIGHT_WIDTH,
            )

    if template is Template.FOUR_GRID and state.caption:
        _draw_caption(draw, state)

    return np.array(img)


# ── Header ───────────────────────────────────────────────────────


def _draw_header(draw: ImageDraw.ImageDraw, state: RenderState, band: Rect) -> None:
    """Fill the header band and draw its wrapped text, centred."""
    x0, y0, x1, y1 = band.box()
    draw.rectangle([(x0, y0), (x1 - 1, y1 - 1)], fill=HEADER_BAND_COLOR)

    lines = state.header.lines(state.canvas_size[0])
    if not lines:
        return
    font = load_font(state.font.family, state.font.size)
    lh = line_height(state.font.size)
    y = text_block_origin(band.y, band.h, len(lines), state.font.size)
    cx = band.x + band.w / 2
    for i, line in enumerate(lines):
        draw.text(
            (cx, y + i * lh), line,
            fill=HEADER_TEXT_COLOR, font=font, anchor="mm",
        )


# ── Media tiles ──────────────────────────────────────────────────


def _render_slot_tile(
    slot: MediaSlot, frame: Image.Image, cell: Rect, family: str,
) -> Image.Image:
    """Render one cell: the visible crop of the scaled media plus label.

    Instead of scaling the whole media up (up to 3x zoom) and clipping,
    the visible part of the source is mapped back into source pixels and
    resized straight to the cell's pixel box.
    """
    media = slot.media
    draw_rect = placement(slot.transform, media.width, media.height, cell)
    assert covers(draw_rect, cell), (
        f"Slot {slot.index}: media {draw_rect} does not cover cell {cell}"
    )

    x0, y0, x1, y1 = cell.box()
    src_w, src_h = frame.size
    sx = src_w / draw_rect.w
    sy = src_h / draw_rect.h
    src_box = (
        _clip((x0 - draw_rect.x) * sx, src_w),
        _clip((y0 - draw_rect.y) * sy, src_h),
        _clip((x1 - draw_rect.x) * sx, src_w),
        _clip((y1 - draw_rect.y) * sy, src_h),
    )
    tile = frame.resize(
        (x1 - x0, y1 - y0), Image.Resampling.BILINEAR, box=src_box,
    )

    if slot.label:
        tile_draw = ImageDraw.Draw(tile)
        _draw_outlined_lines(
            tile_draw,
            [(((x1 - x0) / 2, (y1 - y0) / 2), slot.label)],
            load_font(family, LABEL_FONT_SIZE),
        )
    return tile


def _clip(value: float, upper: float) -> float:
    return max(0.0, min(upper, value))


# ── Text ─────────────────────────────────────────────────────────


def _draw_outlined_lines(draw, placed_lines, font) -> None:
    """White text over a dark outline.

    All outlines are stroked first and all fills drawn second, so one
    line's outline never covers the fill of its neighbour.
    """
    for center, text in placed_lines:
        draw.text(
            center, text,
            fill=BLACK, font=font, anchor="mm",
            stroke_width=TEXT_STROKE_WIDTH, stroke_fill=BLACK,
        )
    for center, text in placed_lines:
        draw.text(center, text, fill=WHITE, font=font, anchor="mm")


def _draw_caption(draw: ImageDraw.ImageDraw, state: RenderState) -> None:
    """Main caption, wrapped and centred vertically across the canvas."""
    lines = state.caption_lines()
    if not lines:
        return
    w, h = state.canvas_size
    font = load_font(state.font.family, state.font.size)
    lh = line_height(state.font.size)
    y = text_block_origin(0.0, h, len(lines), state.font.size)
    placed = [((w / 2, y + i * lh), line) for i, line in enumerate(lines)]
    _draw_outlined_lines(draw, placed, font)
