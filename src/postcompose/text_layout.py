"""Text layout: greedy word wrap and header band sizing.

All text in a post (header, main caption) is wrapped with the same greedy
algorithm: words are added to the current line while its measured width
stays within max_width. A word that would overflow starts a new line. A
single word wider than max_width still gets a line of its own; it is never
clipped or hyphenated.

The header band grows with the wrapped header text:

    header_h = max(HEADER_MIN_H, n_lines * font_size * LINE_HEIGHT_FACTOR
                                 + HEADER_PADDING)

Rendering and hit-testing both go through header_height(), which is
backed by a cache keyed on (text, family, size, max_width), so the band
the user sees is exactly the band clicks are tested against.
"""

from functools import lru_cache
from typing import Callable

from .common import measure_text


LINE_HEIGHT_FACTOR = 1.2
HEADER_MIN_H = 150
HEADER_PADDING = 60          # total vertical padding around the header text
HEADER_SIDE_MARGIN = 40      # header max width = canvas width - 40
CAPTION_SIDE_MARGIN = 80     # caption max width = canvas width - 80


def wrap_words(
    text: str,
    max_width: float,
    measure: Callable[[str], float],
) -> list[str]:
    """Greedy word wrap of *text* using *measure* for line widths.

    Args:
        text: Text to wrap. Split on any whitespace.
        max_width: Maximum line width in pixels.
        measure: Returns the pixel width of a string.

    Returns:
        Wrapped lines. Empty or whitespace-only text gives no lines.
    """
    lines = []
    current = ""

    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and measure(candidate) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate

    if current:
        lines.append(current)
    return lines


@lru_cache(maxsize=512)
def wrap_text(text: str, family: str, size: int, max_width: float) -> tuple[str, ...]:
    """Wrap *text* for the bold face of *family* at *size* px.

    Memoised on all four inputs; the result is a tuple so callers cannot
    mutate a cached entry.
    """
    return tuple(
        wrap_words(text, max_width, lambda s: measure_text(s, family, size))
    )


def line_height(font_size: int) -> float:
    """Distance between consecutive baselines for *font_size*."""
    return font_size * LINE_HEIGHT_FACTOR


def header_height_for_lines(line_count: int, font_size: int) -> float:
    """Header band height for a block of *line_count* wrapped lines."""
    return max(HEADER_MIN_H, line_count * line_height(font_size) + HEADER_PADDING)


def header_lines(text: str, family: str, size: int, canvas_width: int) -> tuple[str, ...]:
    """Wrapped header lines for a canvas of *canvas_width*."""
    return wrap_text(text, family, size, canvas_width - HEADER_SIDE_MARGIN)


def caption_lines(text: str, family: str, size: int, canvas_width: int) -> tuple[str, ...]:
    """Wrapped main-caption lines for a canvas of *canvas_width*."""
    return wrap_text(text, family, size, canvas_width - CAPTION_SIDE_MARGIN)


def header_height(text: str, family: str, size: int, canvas_width: int) -> float:
    """Height of the header band holding *text* on a *canvas_width* canvas."""
    lines = header_lines(text, family, size, canvas_width)
    return header_height_for_lines(len(lines), size)


def text_block_origin(band_top: float, band_h: float, n_lines: int, font_size: int) -> float:
    """Y of the first line's vertical centre for a block centred in a band.

    Lines are drawn middle-anchored, one line_height apart.
    """
    lh = line_height(font_size)
    return band_top + (band_h - n_lines * lh) / 2 + lh / 2
