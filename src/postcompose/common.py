"""postcompose.common — shared utilities for post composition.

Contains: color parsing, path variable resolution, and font loading
by family name.
"""

import re
from functools import lru_cache
from pathlib import Path

from PIL import ImageFont


# ── Font families ──────────────────────────────────────────────────
# Each family maps to candidate bold font files, tried in order. Bare
# filenames are resolved by Pillow against the system font directories.
# DejaVu Sans Bold is the shared last-resort fallback on Linux.

_FALLBACK_BOLD = [
    Path.home() / ".local/share/fonts/Inter.ttc",
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
    "DejaVuSans-Bold.ttf",
]

FONT_FAMILIES = {
    "Arial": ["Arial Bold.ttf", "arialbd.ttf", "LiberationSans-Bold.ttf"],
    "Helvetica": ["Helvetica-Bold.ttf", "arialbd.ttf", "LiberationSans-Bold.ttf"],
    "Times New Roman": [
        "Times New Roman Bold.ttf", "timesbd.ttf", "LiberationSerif-Bold.ttf",
    ],
    "Georgia": ["Georgia Bold.ttf", "georgiab.ttf", "DejaVuSerif-Bold.ttf"],
    "Verdana": ["Verdana Bold.ttf", "verdanab.ttf", "DejaVuSans-Bold.ttf"],
    "Courier New": [
        "Courier New Bold.ttf", "courbd.ttf", "LiberationMono-Bold.ttf",
    ],
    "Impact": ["Impact.ttf", "impact.ttf"],
    "Comic Sans MS": ["Comic Sans MS Bold.ttf", "comicbd.ttf"],
}


# ── Color utilities ────────────────────────────────────────────────

def parse_hex_color(hex_str: str) -> tuple[int, int, int]:
    """Convert '#RRGGBB' or 'RRGGBB' string to (R, G, B) tuple."""
    hex_str = hex_str.lstrip("#")
    return (int(hex_str[0:2], 16), int(hex_str[2:4], 16), int(hex_str[4:6], 16))


WHITE = (255, 255, 255)
BLACK = (0, 0, 0)


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return paths[key]
    return re.sub(r"\$\{(\w+)\}", _replace, text)


# ── Font loading ───────────────────────────────────────────────────

@lru_cache(maxsize=64)
def load_font(family: str, size: int) -> ImageFont.FreeTypeFont:
    """Load the bold face of *family* at the given pixel size.

    Unknown families go straight to the fallback list. Fonts are cached
    per (family, size) since text layout measures the same font for
    every frame.
    """
    candidates = FONT_FAMILIES.get(family, []) + _FALLBACK_BOLD
    for candidate in candidates:
        if isinstance(candidate, Path) and not candidate.exists():
            continue
        try:
            return ImageFont.truetype(str(candidate), size=size)
        except OSError:
            continue
    # Last resort: Pillow's bundled scalable default font.
    return ImageFont.load_default(size=size)


def measure_text(text: str, family: str, size: int) -> float:
    """Return the advance width of *text* in pixels for the bold face."""
    return load_font(family, size).getlength(text)
