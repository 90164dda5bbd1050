"""Render state: the immutable snapshot every render reads from.

A RenderState holds everything needed to draw one post: template,
aspect ratio, four media slots, header text + font, main caption and the
selected slot. It is a frozen dataclass; every edit returns a new
snapshot, so an export can keep rendering from the snapshot it started
with while the live editing state moves on.

Edits that change cell geometry (header text, font, template, aspect
ratio) re-clamp every active slot's transform, so the cover invariant
from transform.py holds for every snapshot that exists.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from .layout import AspectRatio, Rect, Template, TemplateLayout, compute_layout
from .text_layout import caption_lines, header_height, header_lines
from .transform import IDENTITY, Transform, clamp_transform, clamp_zoom


MAX_SLOTS = 4


class MediaKind(Enum):
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class MediaRef:
    """Reference to a source asset plus its natural size.

    ``key`` identifies the asset for decoding and caching (typically a
    file path). Pixels are never stored here; see media.MediaCache.
    """

    key: str
    width: int
    height: int
    kind: MediaKind = MediaKind.IMAGE

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Media '{self.key}': natural size must be positive, "
                f"got {self.width}x{self.height}"
            )


@dataclass(frozen=True)
class MediaSlot:
    index: int
    media: MediaRef | None = None
    transform: Transform = IDENTITY
    label: str = ""

    @property
    def is_empty(self) -> bool:
        return self.media is None


@dataclass(frozen=True)
class FontSettings:
    family: str = "Arial"
    size: int = 60

    def __post_init__(self):
        if self.size <= 0:
            raise ValueError(f"Font size must be positive, got {self.size}")


@dataclass(frozen=True)
class HeaderSpec:
    text: str = ""
    font: FontSettings = field(default_factory=FontSettings)

    def lines(self, canvas_w: int) -> tuple[str, ...]:
        return header_lines(self.text, self.font.family, self.font.size, canvas_w)

    def height(self, canvas_w: int) -> float:
        return header_height(self.text, self.font.family, self.font.size, canvas_w)


def _empty_slots() -> tuple[MediaSlot, ...]:
    return tuple(MediaSlot(index=i) for i in range(MAX_SLOTS))


@dataclass(frozen=True)
class RenderState:
    template: Template = Template.FOUR_GRID
    aspect_ratio: AspectRatio = AspectRatio.SQUARE
    slots: tuple[MediaSlot, ...] = field(default_factory=_empty_slots)
    header: HeaderSpec = field(default_factory=HeaderSpec)
    caption: str = ""
    selected: int | None = None

    # ── Derived geometry ─────────────────────────────────────────

    @property
    def font(self) -> FontSettings:
        return self.header.font

    @property
    def canvas_size(self) -> tuple[int, int]:
        return self.aspect_ratio.size

    def header_height(self) -> float:
        """Header band height, or 0 for templates without a header."""
        if not self.template.has_header:
            return 0.0
        return self.header.height(self.canvas_size[0])

    def layout(self) -> TemplateLayout:
        w, h = self.canvas_size
        return compute_layout(self.template, w, h, self.header_height())

    def cell(self, index: int) -> Rect:
        return self.layout().cells[index]

    def caption_lines(self) -> tuple[str, ...]:
        return caption_lines(
            self.caption, self.font.family, self.font.size, self.canvas_size[0],
        )

    @property
    def active_slots(self) -> tuple[MediaSlot, ...]:
        """Slots shown by the current template (the first N)."""
        return self.slots[: self.template.slot_count]

    def populated_slots(self) -> list[MediaSlot]:
        return [s for s in self.active_slots if not s.is_empty]

    def is_active(self, index: int) -> bool:
        return 0 <= index < self.template.slot_count

    # ── Edits (each returns a new snapshot) ──────────────────────

    def with_media(self, index: int, media: MediaRef) -> "RenderState":
        """Upload: replace the slot's content and reset its transform."""
        self._check_index(index)
        slot = replace(self.slots[index], media=media, transform=IDENTITY)
        return self._with_slot(slot)

    def clear_media(self, index: int) -> "RenderState":
        self._check_index(index)
        slot = replace(self.slots[index], media=None, transform=IDENTITY)
        state = self._with_slot(slot)
        if state.selected == index:
            state = replace(state, selected=None)
        return state

    def with_label(self, index: int, label: str) -> "RenderState":
        self._check_index(index)
        return self._with_slot(replace(self.slots[index], label=label))

    def with_zoom(self, index: int, zoom: float) -> "RenderState":
        self._check_index(index)
        slot = self.slots[index]
        transform = replace(slot.transform, zoom=clamp_zoom(zoom))
        return self._with_slot(replace(slot, transform=transform))

    def with_offset(self, index: int, offset_x: float, offset_y: float) -> "RenderState":
        self._check_index(index)
        slot = self.slots[index]
        transform = replace(slot.transform, offset_x=offset_x, offset_y=offset_y)
        return self._with_slot(replace(slot, transform=transform))

    def nudged(self, index: int, dx: float, dy: float) -> "RenderState":
        """Pan a slot by (dx, dy) canvas pixels, clamped to its bounds."""
        t = self.slots[index].transform
        return self.with_offset(index, t.offset_x + dx, t.offset_y + dy)

    def with_caption(self, caption: str) -> "RenderState":
        return replace(self, caption=caption)

    def with_header_text(self, text: str) -> "RenderState":
        return replace(self, header=replace(self.header, text=text))._reclamped()

    def with_font(self, family: str | None = None, size: int | None = None) -> "RenderState":
        font = FontSettings(
            family=family if family is not None else self.font.family,
            size=size if size is not None else self.font.size,
        )
        return replace(self, header=replace(self.header, font=font))._reclamped()

    def with_template(self, template: Template) -> "RenderState":
        state = replace(self, template=template)
        if state.selected is not None and not state.is_active(state.selected):
            state = replace(state, selected=None)
        return state._reclamped()

    def with_aspect_ratio(self, aspect_ratio: AspectRatio) -> "RenderState":
        return replace(self, aspect_ratio=aspect_ratio)._reclamped()

    def select(self, index: int | None) -> "RenderState":
        if index is not None and not self.is_active(index):
            raise ValueError(
                f"Slot {index} is not active in template '{self.template.value}'"
            )
        return replace(self, selected=index)

    # ── Internals ────────────────────────────────────────────────

    def _check_index(self, index: int) -> None:
        if not 0 <= index < MAX_SLOTS:
            raise ValueError(f"Slot index {index} out of range (0-{MAX_SLOTS - 1})")

    def _with_slot(self, slot: MediaSlot) -> "RenderState":
        """Store *slot*, clamping its transform if it is active and populated."""
        if slot.media is not None and self.is_active(slot.index):
            cell = self.cell(slot.index)
            slot = replace(slot, transform=clamp_transform(
                slot.transform, slot.media.width, slot.media.height, cell.w, cell.h,
            ))
        slots = list(self.slots)
        slots[slot.index] = slot
        return replace(self, slots=tuple(slots))

    def _reclamped(self) -> "RenderState":
        """Re-clamp every active, populated slot against the current layout."""
        layout = self.layout()
        slots = list(self.slots)
        for slot in self.active_slots:
            if slot.media is None:
                continue
            cell = layout.cells[slot.index]
            slots[slot.index] = replace(slot, transform=clamp_transform(
                slot.transform, slot.media.width, slot.media.height, cell.w, cell.h,
            ))
        return replace(self, slots=tuple(slots))
