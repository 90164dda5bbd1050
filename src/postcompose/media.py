"""Media probing, decoding and the decode cache.

Decoding is the only asynchronous step in the pipeline. MediaCache issues
one decode per distinct MediaRef.key on a small thread pool and keeps the
result; every later layout or draw call for the same key reuses it.
get() never blocks: while a decode is in flight it returns None and the
slot renders blank. A failed decode is logged once and remembered, and
the slot stays blank for all later renders.

Decoded assets expose a common interface:
  - size: (width, height) of the decoded pixels.
  - frame_at(t): PIL RGB image for time t in seconds. Still images
    ignore t; videos loop over their duration.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable

from PIL import Image
from moviepy import VideoFileClip

from .state import MediaKind, MediaRef


logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp", ".tif", ".tiff"}
VIDEO_SUFFIXES = {".mp4", ".mov", ".m4v", ".webm", ".mkv", ".avi"}


# ── Decoded assets ────────────────────────────────────────────────


class StillImage:
    """A decoded raster image."""

    def __init__(self, image: Image.Image):
        self.image = image.convert("RGB")

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def frame_at(self, t: float = 0.0) -> Image.Image:
        return self.image

    def close(self) -> None:
        self.image.close()


class VideoFrames:
    """A decoded video clip, read frame by frame through moviepy.

    Frame reads are serialised: moviepy's reader is not safe to share
    between the preview and an export running on another thread.
    """

    def __init__(self, clip: VideoFileClip):
        self.clip = clip
        self._lock = threading.Lock()

    @property
    def size(self) -> tuple[int, int]:
        return tuple(self.clip.size)

    @property
    def duration(self) -> float:
        return self.clip.duration

    def frame_at(self, t: float = 0.0) -> Image.Image:
        # Loop over the clip; stay a hair before the end so the reader
        # never seeks past the last decodable frame.
        duration = self.clip.duration or 0.0
        local_t = t % duration if duration > 0 else 0.0
        local_t = min(local_t, max(0.0, duration - 1.0 / (self.clip.fps or 30)))
        with self._lock:
            frame = self.clip.get_frame(local_t)
        return Image.fromarray(frame).convert("RGB")

    def close(self) -> None:
        self.clip.close()


# ── Probing and decoding files ────────────────────────────────────


def media_kind(path: str | Path) -> MediaKind:
    """Classify a file as image or video from its suffix."""
    suffix = Path(path).suffix.lower()
    if suffix in VIDEO_SUFFIXES:
        return MediaKind.VIDEO
    if suffix in IMAGE_SUFFIXES:
        return MediaKind.IMAGE
    raise ValueError(f"Unsupported media type: '{path}'")


def probe_media(path: str | Path) -> MediaRef:
    """Build a MediaRef for a file, reading only its header.

    Pillow opens images lazily, so this reads the size without decoding
    pixel data. Videos are opened with moviepy and closed immediately.
    """
    kind = media_kind(path)
    if kind is MediaKind.IMAGE:
        with Image.open(path) as img:
            width, height = img.size
    else:
        clip = VideoFileClip(str(path), audio=False)
        try:
            width, height = clip.size
        finally:
            clip.close()
    return MediaRef(key=str(path), width=width, height=height, kind=kind)


def decode_media(ref: MediaRef) -> StillImage | VideoFrames:
    """Default decoder: load the file behind *ref* fully into memory."""
    if ref.kind is MediaKind.VIDEO:
        return VideoFrames(VideoFileClip(ref.key, audio=False))
    with Image.open(ref.key) as img:
        img.load()
        return StillImage(img)


# ── Decode cache ──────────────────────────────────────────────────


class MediaCache:
    """Decode-once cache of media assets, keyed by MediaRef.key.

    Args:
        decoder: Callable turning a MediaRef into a decoded asset. Runs
            on a worker thread. Exceptions mark the key as failed.
        max_workers: Size of the decode thread pool.
    """

    def __init__(
        self,
        decoder: Callable[[MediaRef], object] = decode_media,
        max_workers: int = 2,
    ):
        self._decoder = decoder
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="postcompose-decode",
        )
        self._lock = threading.Lock()
        self._pending: dict[str, Future] = {}
        self._assets: dict[str, object] = {}
        self._failed: set[str] = set()

    def put(self, key: str, asset) -> None:
        """Register an already decoded asset under *key*."""
        with self._lock:
            self._assets[key] = asset
            self._failed.discard(key)
            self._pending.pop(key, None)

    def request(self, ref: MediaRef) -> None:
        """Start decoding *ref* unless it is cached, pending or failed."""
        with self._lock:
            key = ref.key
            if key in self._assets or key in self._pending or key in self._failed:
                return
            logger.debug("Decode requested: %s", key)
            self._pending[key] = self._executor.submit(self._decoder, ref)

    def get(self, ref: MediaRef):
        """Return the decoded asset for *ref*, or None if not (yet) usable.

        Never blocks. The first call for a key issues its decode.
        """
        self.request(ref)
        with self._lock:
            return self._collect(ref.key)

    def failed(self, ref: MediaRef) -> bool:
        with self._lock:
            self._collect(ref.key)
            return ref.key in self._failed

    def resolve(self, refs, timeout: float | None = None) -> None:
        """Wait (bounded by *timeout*) for decodes of *refs* to finish."""
        for ref in refs:
            self.request(ref)
        with self._lock:
            futures = [self._pending[r.key] for r in refs if r.key in self._pending]
        if futures:
            wait(futures, timeout=timeout)
        with self._lock:
            for ref in refs:
                self._collect(ref.key)

    def close(self) -> None:
        """Stop the decode pool and release every decoded asset."""
        self._executor.shutdown(wait=True, cancel_futures=True)
        with self._lock:
            for asset in self._assets.values():
                close = getattr(asset, "close", None)
                if close is not None:
                    close()
            self._assets.clear()
            self._pending.clear()

    def _collect(self, key: str):
        """Move a finished decode into the asset table. Caller holds the lock."""
        if key in self._assets:
            return self._assets[key]
        future = self._pending.get(key)
        if future is None or not future.done():
            return None
        del self._pending[key]
        exc = future.exception()
        if exc is not None:
            logger.warning("Decode failed for %s: %s", key, exc)
            self._failed.add(key)
            return None
        self._assets[key] = future.result()
        return self._assets[key]
