"""CLI for rendering a post to video.

Reads a YAML post manifest, validates all media paths, renders the fixed
10 s frame sequence and writes it as mp4.

Usage:
    # Render the post
    python -m postcompose.cli \
        --manifest post.yaml --output /tmp/post.mp4

    # Validate only (no rendering)
    python -m postcompose.cli \
        --manifest post.yaml --validate
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from .export import ExportError, FrameSequenceExporter
from .manifest import build_state, load_manifest, validate_paths
from .media import MediaCache


def _progress_printer():
    """Return a progress callback that prints once per 10% and per stage."""
    last = {"stage": None, "decile": -1}

    def _report(fraction: float, stage: str) -> None:
        decile = int(fraction * 10)
        if stage == last["stage"] and decile == last["decile"]:
            return
        last["stage"], last["decile"] = stage, decile
        print(f"  {stage:<17} {int(fraction * 100):3d}%", flush=True)

    return _report


def _describe(config: dict) -> None:
    template = config["template"]
    w, h = config["aspect_ratio"].size
    print(f"Template: {template.value}, {w}x{h}")
    if template.has_header and config["header"]:
        print(f"  Header: {config['header'][:60]}")
    for i, slot in enumerate(config["slots"]):
        if slot is None:
            print(f"  {i}: (empty)")
            continue
        tag = f" [{slot['label']}]" if slot["label"] else ""
        print(f"  {i}: {slot['path']}{tag} zoom={slot['zoom']:g}")
    if config["audio"]:
        print(f"  Audio: {config['audio']}")


# ── Main render ──────────────────────────────────────────────────


def render(manifest_path: str, output_path: str) -> None:
    """Load manifest, validate, render and export the post to mp4.

    Args:
        manifest_path: Path to YAML manifest.
        output_path: Output mp4 path.

    Raises:
        ExportError: Rendering or encoding failed (with its stage).
    """
    config = load_manifest(manifest_path)
    validate_paths(config)
    state = build_state(config)
    _describe(config)

    cache = MediaCache()
    exporter = FrameSequenceExporter(cache)
    try:
        print(
            f"\nRendering {exporter.total_frames} frames "
            f"({exporter.duration_seconds:g}s @ {exporter.fps}fps)",
            flush=True,
        )
        t0 = time.monotonic()
        data = exporter.export(
            state, audio_path=config["audio"], progress=_progress_printer(),
        )
        elapsed = time.monotonic() - t0
    finally:
        exporter.shutdown()
        cache.close()

    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(data)
    print(f"\nDone: {output_path} ({len(data) / 1024:.0f} KiB, {elapsed:.1f}s wall)")


# ── CLI entry point ───────────────────────────────────────────────


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Post compositor — render a YAML post manifest to mp4.",
    )
    parser.add_argument(
        "--manifest", required=True,
        help="Path to YAML manifest file",
    )
    parser.add_argument(
        "--output",
        help="Output mp4 path",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate manifest only — check paths, don't render",
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

    if not args.validate and not args.output:
        parser.error("--output is required (unless using --validate)")

    try:
        if args.validate:
            _validate(args.manifest)
        else:
            render(args.manifest, args.output)
    except ExportError as exc:
        print(f"Export failed {exc}", file=sys.stderr)
        sys.exit(1)
    except (ValueError, FileNotFoundError) as exc:
        print(f"Invalid manifest: {exc}", file=sys.stderr)
        sys.exit(1)


def _validate(manifest_path: str) -> None:
    config = load_manifest(manifest_path)
    validate_paths(config)
    filled = sum(1 for s in config["slots"] if s is not None)
    print(f"Manifest valid: {filled} of {config['template'].slot_count} slot(s) filled")
    _describe(config)
    print("All paths verified.")


if __name__ == "__main__":
    main()
