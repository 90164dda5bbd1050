#!/usr/bin/env python3
"""Generate synthetic media and a demo manifest for postcompose.

Creates two still images and two short video clips in
examples/demo-media/, plus examples/demo-post.yaml using all four as a
header-4-images post. Stills are deliberately off-square (wide and tall)
so the aspect-fill crop and pan limits are easy to see.

Usage:
    python examples/generate_demo_clips.py
    # Then render:
    postcompose render --manifest examples/demo-post.yaml \
        --output examples/demo-post.mp4
"""

import numpy as np
import yaml
from moviepy import ColorClip, CompositeVideoClip, ImageClip
from pathlib import Path
from PIL import Image, ImageDraw, ImageFont

EXAMPLES_DIR = Path(__file__).resolve().parent
OUTPUT_DIR = EXAMPLES_DIR / "demo-media"
FPS = 30

# (name, color, size)
STILLS = [
    ("wide", (180, 60, 60), (1600, 900)),    # red, landscape
    ("tall", (60, 60, 180), (900, 1600)),    # blue, portrait
]

# (name, color, duration); 640x480 clips, looped by the renderer.
CLIPS = [
    ("clip-a", (60, 160, 60), 2.0),   # green
    ("clip-b", (200, 130, 40), 3.0),  # orange
]
CLIP_SIZE = (640, 480)


def _font(size: int):
    try:
        return ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", size
        )
    except OSError:
        return ImageFont.load_default(size=size)


def _make_still(color: tuple[int, int, int], size: tuple[int, int], text: str) -> Image.Image:
    """Solid color with a centred name and a frame, so crops are visible."""
    img = Image.new("RGB", size, color)
    draw = ImageDraw.Draw(img)
    draw.rectangle([(0, 0), (size[0] - 1, size[1] - 1)], outline=(255, 255, 255), width=20)
    draw.text(
        (size[0] / 2, size[1] / 2), text.upper(),
        fill=(255, 255, 255), font=_font(120), anchor="mm",
    )
    return img


def _make_end_frame(bg_color: tuple[int, int, int]) -> np.ndarray:
    """White 'END' text on a dimmed version of the clip color."""
    dim = tuple(max(c // 3, 20) for c in bg_color)
    img = Image.new("RGB", CLIP_SIZE, dim)
    draw = ImageDraw.Draw(img)
    draw.text(
        (CLIP_SIZE[0] / 2, CLIP_SIZE[1] / 2), "END",
        fill=(255, 255, 255), font=_font(72), anchor="mm",
    )
    return np.array(img)


def _write_manifest(path: Path) -> None:
    manifest = {
        "template": "header-4-images",
        "aspect_ratio": "4:5",
        "font": {"family": "Arial", "size": 60},
        "header": "Four things we shipped this week",
        "paths": {"media": str(OUTPUT_DIR)},
        "slots": [
            {"path": "${media}/wide.png", "label": "Before", "zoom": 1.2},
            {"path": "${media}/tall.png", "label": "After", "offset": [0, -40]},
            {"path": "${media}/clip-a.mp4"},
            {"path": "${media}/clip-b.mp4", "zoom": 1.5},
        ],
    }
    with open(path, "w") as f:
        yaml.safe_dump(manifest, f, sort_keys=False)


def main():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

    for name, color, size in STILLS:
        out = OUTPUT_DIR / f"{name}.png"
        if out.exists():
            print(f"  skip {name} (exists)")
            continue
        _make_still(color, size, name).save(out)
        print(f"  wrote {name} ({size[0]}x{size[1]})")

    for name, color, duration in CLIPS:
        out = OUTPUT_DIR / f"{name}.mp4"
        if out.exists():
            print(f"  skip {name} (exists)")
            continue

        # Main color body (all but last 0.5s)
        body_dur = max(duration - 0.5, 0.5)
        body = ColorClip(size=CLIP_SIZE, color=color, duration=body_dur)

        # END frame (last 0.5s) marks the loop point.
        end_clip = ImageClip(_make_end_frame(color), duration=0.5).with_start(body_dur)

        final = CompositeVideoClip([body, end_clip], size=CLIP_SIZE)
        final.write_videofile(str(out), fps=FPS, logger=None)
        print(f"  wrote {name} ({duration}s)")

    manifest_path = EXAMPLES_DIR / "demo-post.yaml"
    _write_manifest(manifest_path)
    print(f"\nDone. Media in {OUTPUT_DIR}, manifest at {manifest_path}")


if __name__ == "__main__":
    main()
