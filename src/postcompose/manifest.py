"""Manifest loader for post composition.

Parses a YAML post manifest, resolves ${path} variables, validates the
template, aspect ratio, font and per-slot fields, and turns the result
into a clamped RenderState.

Schema:
  - template: "4-grid", "header-single" or "header-4-images".
  - aspect_ratio: "1:1" or "4:5" (default "1:1").
  - font: {family, size} (default Arial, 60).
  - header: header text (header templates).
  - caption: main caption (4-grid only).
  - audio: optional audio track muxed into the export.
  - paths: variables for ${name} substitution.
  - slots: up to one entry per template slot. Each entry is null (empty
    slot) or {path, label?, zoom?, offset?: [x, y]}.
"""

from pathlib import Path

import yaml

from .common import resolve_path_vars
from .layout import AspectRatio, Template
from .media import IMAGE_SUFFIXES, VIDEO_SUFFIXES, probe_media
from .state import RenderState
from .transform import ZOOM_MAX, ZOOM_MIN


VALID_TEMPLATES = {t.value for t in Template}

VALID_ASPECT_RATIOS = {a.value for a in AspectRatio}

MEDIA_SUFFIXES = IMAGE_SUFFIXES | VIDEO_SUFFIXES


# ── Manifest loading ──────────────────────────────────────────────


def load_manifest(manifest_path: str | Path) -> dict:
    """Load, validate, and normalize a post manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Resolve ${path} variables in audio and slot paths.
      3. Validate template, aspect ratio and font.
      4. Validate each slot against the template's slot count.

    Args:
        manifest_path: Path to the YAML manifest file.

    Returns:
        Normalized config dict. ``template`` and ``aspect_ratio`` are
        enum members; ``slots`` is a list with one entry (dict or None)
        per manifest slot.

    Raises:
        ValueError: Invalid template, aspect ratio, font or slot field.
        FileNotFoundError: Missing manifest file.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError("Manifest must be a mapping")

    paths = raw.get("paths") or {}

    template = raw.get("template")
    if template not in VALID_TEMPLATES:
        raise ValueError(
            f"Unknown template '{template}'. Valid: {sorted(VALID_TEMPLATES)}"
        )
    template = Template(template)

    aspect = raw.get("aspect_ratio", AspectRatio.SQUARE.value)
    if isinstance(aspect, int):
        # YAML 1.1 reads unquoted 4:5 as a base-60 integer.
        raise ValueError(
            f"aspect_ratio parsed as the number {aspect}; quote it, e.g. \"4:5\""
        )
    if aspect not in VALID_ASPECT_RATIOS:
        raise ValueError(
            f"Unknown aspect_ratio '{aspect}'. Valid: {sorted(VALID_ASPECT_RATIOS)}"
        )

    config = {
        "template": template,
        "aspect_ratio": AspectRatio(aspect),
        "font": _parse_font(raw.get("font")),
        "header": str(raw.get("header") or ""),
        "caption": str(raw.get("caption") or ""),
        "audio": None,
        "slots": [],
    }

    audio = raw.get("audio")
    if audio:
        config["audio"] = resolve_path_vars(str(audio), paths)

    slots = raw.get("slots") or []
    if not isinstance(slots, list):
        raise ValueError("'slots' must be a list")
    if len(slots) > template.slot_count:
        raise ValueError(
            f"Template '{template.value}' holds {template.slot_count} "
            f"slot(s), got {len(slots)}"
        )
    for i, slot in enumerate(slots):
        config["slots"].append(_parse_slot(slot, i, paths, template))

    return config


def _parse_font(font) -> dict:
    """Validate the optional font block, filling in defaults."""
    font = font or {}
    if not isinstance(font, dict):
        raise ValueError("'font' must be a mapping with 'family' and 'size'")
    family = font.get("family", "Arial")
    if not isinstance(family, str) or not family.strip():
        raise ValueError("font: 'family' must be a non-empty string")
    size = font.get("size", 60)
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise ValueError(f"font: size must be a positive integer, got {size!r}")
    return {"family": family, "size": size}


def _parse_slot(slot, index: int, paths: dict, template: Template) -> dict | None:
    """Validate one slot entry. None means the slot stays empty."""
    if slot is None:
        return None

    prefix = f"Slot {index} ({template.value})"
    if not isinstance(slot, dict):
        raise ValueError(f"{prefix}: must be a mapping or null")

    if "path" not in slot:
        raise ValueError(f"{prefix}: missing required field 'path'")
    path = resolve_path_vars(str(slot["path"]), paths)
    if Path(path).suffix.lower() not in MEDIA_SUFFIXES:
        raise ValueError(
            f"{prefix}: unsupported media type '{path}'. "
            f"Valid: {sorted(MEDIA_SUFFIXES)}"
        )

    label = slot.get("label", "")
    if not isinstance(label, str):
        raise ValueError(f"{prefix}: 'label' must be a string")

    zoom = slot.get("zoom", 1.0)
    if isinstance(zoom, bool) or not isinstance(zoom, (int, float)):
        raise ValueError(f"{prefix}: zoom must be a number, got {zoom!r}")
    if not ZOOM_MIN <= zoom <= ZOOM_MAX:
        raise ValueError(
            f"{prefix}: zoom must be within [{ZOOM_MIN:g}, {ZOOM_MAX:g}], got {zoom}"
        )

    offset = slot.get("offset", [0, 0])
    if (
        not isinstance(offset, list)
        or len(offset) != 2
        or not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in offset)
    ):
        raise ValueError(f"{prefix}: offset must be a list of 2 numbers, got {offset!r}")

    return {
        "path": path,
        "label": label,
        "zoom": float(zoom),
        "offset": (float(offset[0]), float(offset[1])),
    }


# ── Path validation ───────────────────────────────────────────────


def validate_paths(config: dict) -> None:
    """Check that every slot file and the audio track exist on disk.

    Reports all missing paths at once.

    Raises:
        FileNotFoundError: Lists all missing files.
    """
    wanted = [s["path"] for s in config["slots"] if s is not None]
    if config.get("audio"):
        wanted.append(config["audio"])

    missing = [p for p in wanted if not Path(p).exists()]
    if missing:
        msg = f"Missing {len(missing)} file(s):\n"
        for p in missing:
            msg += f"  - {p}\n"
        raise FileNotFoundError(msg)


# ── State building ────────────────────────────────────────────────


def build_state(config: dict, probe=probe_media) -> RenderState:
    """Turn a loaded manifest into a RenderState.

    Each slot's media is probed for its natural size; zoom and offset
    are then applied through the normal edits, so the resulting state is
    clamped exactly as an interactive session would clamp it.

    Args:
        config: Output of load_manifest.
        probe: Callable mapping a file path to a MediaRef.
    """
    font = config["font"]
    state = RenderState(
        template=config["template"],
        aspect_ratio=config["aspect_ratio"],
    )
    state = state.with_font(family=font["family"], size=font["size"])
    state = state.with_header_text(config["header"])
    state = state.with_caption(config["caption"])

    for i, slot in enumerate(config["slots"]):
        if slot is None:
            continue
        state = state.with_media(i, probe(slot["path"]))
        state = state.with_label(i, slot["label"])
        state = state.with_zoom(i, slot["zoom"])
        state = state.with_offset(i, *slot["offset"])
    return state
