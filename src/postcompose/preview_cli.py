"""CLI for previewing one frame of a post as PNG.

Renders exactly what the interactive preview shows: the selection
highlight is drawn when --select is given, and --frame picks the fade
opacity (and video time) of that export frame.

Usage:
    python -m postcompose.preview_cli \
        --manifest post.yaml --output /tmp/frame.png --frame 15 --select 0
"""

import argparse
import logging
import sys
from pathlib import Path

from PIL import Image

from .export import DURATION_SECONDS, FADE_FRAMES, FRAME_RATE, fade_opacity
from .manifest import build_state, load_manifest, validate_paths
from .media import MediaCache
from .renderer import render_frame


def preview(
    manifest_path: str,
    output_path: str,
    frame: int = FRAME_RATE * DURATION_SECONDS - 1,
    select: int | None = None,
    decode_timeout: float = 30.0,
) -> Path:
    """Render frame *frame* of the post described by *manifest_path*.

    Args:
        manifest_path: Path to YAML manifest.
        output_path: Output PNG path.
        frame: Export frame index; sets fade opacity and video time.
            Defaults to the last frame (full opacity).
        select: Slot index to highlight, or None.
        decode_timeout: Seconds to wait for media decodes.

    Returns:
        Path of the written PNG.
    """
    total = FRAME_RATE * DURATION_SECONDS
    if not 0 <= frame < total:
        raise ValueError(f"--frame {frame} out of range (0-{total - 1})")

    config = load_manifest(manifest_path)
    validate_paths(config)
    state = build_state(config)
    if select is not None:
        state = state.select(select)

    cache = MediaCache()
    try:
        cache.resolve([s.media for s in state.populated_slots()], timeout=decode_timeout)
        pixels = render_frame(
            state, cache,
            opacity=fade_opacity(state.template, frame, FADE_FRAMES),
            t=frame / FRAME_RATE,
            highlight=select is not None,
        )
    finally:
        cache.close()

    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(pixels).save(out)
    return out


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render one frame of a post manifest to PNG.",
    )
    parser.add_argument(
        "--manifest", required=True,
        help="Path to YAML manifest file",
    )
    parser.add_argument(
        "--output", required=True,
        help="Output PNG path",
    )
    parser.add_argument(
        "--frame", type=int, default=FRAME_RATE * DURATION_SECONDS - 1,
        help="Export frame index to preview (default: last frame)",
    )
    parser.add_argument(
        "--select", type=int, default=None,
        help="Highlight this slot index (0-based)",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    try:
        out = preview(args.manifest, args.output, frame=args.frame, select=args.select)
    except (ValueError, FileNotFoundError) as exc:
        print(f"Preview failed: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"Wrote {out}")


if __name__ == "__main__":
    main()
