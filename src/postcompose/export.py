"""Frame sequence export: render a post to a fixed-length video.

Export renders FRAME_RATE * DURATION_SECONDS frames (300 by default)
from one RenderState snapshot and streams them, in index order, to an
encoder. Header templates fade their media in over the first
FADE_FRAMES frames (opacity i / 30); the 4-grid template never fades.

Only one export runs at a time. Starting a new export cancels every
earlier one, whether running or still waiting for the worker, and waits
until the running one has released its encoder (last caller wins,
nothing is queued). Cancellation is cooperative and checked between
frames.

Every failure surfaces as one ExportError carrying a coarse stage label:
  - "preparing-frames": rendering the frame sequence.
  - "encoding": the encoder rejected frames or failed to encode.
  - "finalizing": reading back the encoded output.
"""

import logging
import shutil
import subprocess
import tempfile
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

import imageio_ffmpeg
import numpy as np

from .layout import Template
from .renderer import render_frame
from .state import RenderState


logger = logging.getLogger(__name__)

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()

FRAME_RATE = 30
DURATION_SECONDS = 10
FADE_FRAMES = 30

STAGE_PREPARING = "preparing-frames"
STAGE_ENCODING = "encoding"
STAGE_FINALIZING = "finalizing"


# ── Errors ───────────────────────────────────────────────────────


class ExportError(Exception):
    """Terminal export failure, tagged with the stage it happened in."""

    def __init__(self, message: str, stage: str):
        super().__init__(message)
        self.stage = stage

    def __str__(self):
        return f"[{self.stage}] {super().__str__()}"


class NothingToRenderError(ExportError):
    def __init__(self, message: str = "nothing to render"):
        super().__init__(message, STAGE_PREPARING)


class ExportCancelled(ExportError):
    pass


# ── Frames ───────────────────────────────────────────────────────


@dataclass
class Frame:
    index: int
    opacity: float
    pixels: np.ndarray


def fade_opacity(template: Template, index: int, fade_frames: int = FADE_FRAMES) -> float:
    """Media opacity of frame *index*: i / fade_frames during the fade-in
    window on header templates, 1.0 otherwise."""
    if template.has_header and index < fade_frames:
        return index / fade_frames
    return 1.0


# ── Encoder ──────────────────────────────────────────────────────


class FfmpegEncoder:
    """Stream raw RGB frames into ffmpeg and mux an optional audio track.

    Lifecycle: open() → write() per frame → finish() → read output →
    close(). abort() may be called at any point and discards everything.
    """

    def __init__(self, codec: str = "libx264", crf: int = 20):
        self.codec = codec
        self.crf = crf
        self._proc: subprocess.Popen | None = None
        self._work_dir: Path | None = None
        self._log = None
        self.output_path: Path | None = None

    def build_command(
        self,
        size: tuple[int, int],
        fps: int,
        duration: float,
        audio_path: str | None = None,
    ) -> list[str]:
        w, h = size
        cmd = [
            _FFMPEG, "-y", "-loglevel", "error",
            "-f", "rawvideo", "-pix_fmt", "rgb24",
            "-s", f"{w}x{h}", "-framerate", str(fps),
            "-i", "-",
        ]
        if audio_path:
            cmd += ["-i", str(audio_path), "-shortest"]
        cmd += [
            "-c:v", self.codec, "-pix_fmt", "yuv420p", "-crf", str(self.crf),
        ]
        if audio_path:
            cmd += ["-c:a", "aac"]
        cmd += ["-t", f"{duration:g}", str(self.output_path)]
        return cmd

    def open(
        self,
        size: tuple[int, int],
        fps: int,
        duration: float,
        audio_path: str | None = None,
    ) -> None:
        self._work_dir = Path(tempfile.mkdtemp(prefix="postcompose-"))
        self.output_path = self._work_dir / "output.mp4"
        self._log = open(self._work_dir / "ffmpeg.log", "wb")
        cmd = self.build_command(size, fps, duration, audio_path)
        logger.debug("Encoder command: %s", " ".join(cmd))
        self._proc = subprocess.Popen(
            cmd, stdin=subprocess.PIPE, stdout=subprocess.DEVNULL, stderr=self._log,
        )

    def write(self, pixels: np.ndarray) -> None:
        try:
            self._proc.stdin.write(np.ascontiguousarray(pixels, dtype=np.uint8).tobytes())
        except BrokenPipeError as exc:
            raise RuntimeError(f"ffmpeg exited early: {self._stderr()}") from exc

    def finish(self) -> Path:
        """Close the input stream and wait for ffmpeg to finish encoding."""
        self._proc.stdin.close()
        returncode = self._proc.wait()
        if returncode != 0:
            raise RuntimeError(f"ffmpeg failed ({returncode}): {self._stderr()}")
        return self.output_path

    def abort(self) -> None:
        """Kill ffmpeg (if running) and delete all intermediate files."""
        if self._proc is not None and self._proc.poll() is None:
            self._proc.kill()
            self._proc.wait()
        self.close()

    def close(self) -> None:
        if self._proc is not None and self._proc.stdin and not self._proc.stdin.closed:
            try:
                self._proc.stdin.close()
            except BrokenPipeError:
                pass
        if self._log is not None:
            self._log.close()
            self._log = None
        if self._work_dir is not None:
            shutil.rmtree(self._work_dir, ignore_errors=True)
            self._work_dir = None
        self._proc = None

    def _stderr(self) -> str:
        if self._work_dir is None:
            return ""
        self._log.flush()
        return (self._work_dir / "ffmpeg.log").read_text(errors="replace").strip()


# ── Exporter ─────────────────────────────────────────────────────


class _ExportJob:
    def __init__(self):
        self.cancelled = threading.Event()
        self.released = threading.Event()


class FrameSequenceExporter:
    """Drive the renderer over a fixed frame count and hand frames to an encoder.

    Args:
        cache: MediaCache used by the renderer.
        encoder_factory: Zero-argument callable returning a fresh encoder
            (open/write/finish/abort/close), one per export.
        fps: Declared frame rate.
        duration_seconds: Output duration.
        fade_frames: Length of the fade-in window on header templates.
        decode_timeout: Upper bound in seconds for waiting on pending
            media decodes before the first frame.
    """

    def __init__(
        self,
        cache,
        encoder_factory: Callable[[], object] = FfmpegEncoder,
        fps: int = FRAME_RATE,
        duration_seconds: float = DURATION_SECONDS,
        fade_frames: int = FADE_FRAMES,
        decode_timeout: float = 30.0,
    ):
        self.cache = cache
        self.encoder_factory = encoder_factory
        self.fps = fps
        self.duration_seconds = duration_seconds
        self.fade_frames = fade_frames
        self.decode_timeout = decode_timeout
        self._lock = threading.Lock()
        self._active: _ExportJob | None = None
        self._jobs: set[_ExportJob] = set()
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="postcompose-export",
        )

    @property
    def total_frames(self) -> int:
        return int(round(self.fps * self.duration_seconds))

    # ── Frame generation ─────────────────────────────────────────

    def iter_frames(
        self,
        state: RenderState,
        cancelled: threading.Event | None = None,
    ) -> Iterator[Frame]:
        """Yield every frame of the sequence in ascending index order."""
        for i in range(self.total_frames):
            if cancelled is not None and cancelled.is_set():
                raise ExportCancelled(
                    f"export cancelled at frame {i}/{self.total_frames}",
                    STAGE_PREPARING,
                )
            opacity = fade_opacity(state.template, i, self.fade_frames)
            pixels = render_frame(
                state, self.cache, opacity=opacity, t=i / self.fps, highlight=False,
            )
            yield Frame(index=i, opacity=opacity, pixels=pixels)

    def check_ready(self, state: RenderState) -> None:
        """Fail with NothingToRenderError unless some slot can be drawn.

        Waits (bounded) for pending decodes; slots whose decode failed
        count as empty.
        """
        populated = state.populated_slots()
        if not populated:
            raise NothingToRenderError()
        refs = [s.media for s in populated]
        self.cache.resolve(refs, timeout=self.decode_timeout)
        if all(self.cache.failed(ref) for ref in refs):
            raise NothingToRenderError("nothing to render: no media could be decoded")

    # ── Export ───────────────────────────────────────────────────

    def export(
        self,
        state: RenderState,
        audio_path: str | None = None,
        progress: Callable[[float, str], None] | None = None,
    ) -> bytes:
        """Render and encode *state*, returning the MP4 bytes.

        Cancels every export already submitted or in flight before
        starting.

        Raises:
            NothingToRenderError: No populated slot (checked before any
                frame work).
            ExportCancelled: A newer export or cancel() superseded this one.
            ExportError: Rendering or encoding failed; no partial output.
        """
        if not state.populated_slots():
            raise NothingToRenderError()
        return self._run(self._register(), state, audio_path, progress)

    def submit(
        self,
        state: RenderState,
        audio_path: str | None = None,
        progress: Callable[[float, str], None] | None = None,
    ) -> Future:
        """Run export() on the background worker; returns its Future.

        Every earlier export, running or still waiting for the worker, is
        cancelled before this one is queued. A superseded export that
        never started fails with ExportCancelled without opening an
        encoder.
        """
        if not state.populated_slots():
            future = Future()
            future.set_exception(NothingToRenderError())
            return future
        job = self._register()
        return self._executor.submit(self._run, job, state, audio_path, progress)

    def cancel(self) -> None:
        """Cancel every pending and active export. Returns immediately."""
        with self._lock:
            for job in self._jobs:
                job.cancelled.set()

    def shutdown(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=True)

    def _run(
        self,
        job: _ExportJob,
        state: RenderState,
        audio_path: str | None,
        progress: Callable[[float, str], None] | None,
    ) -> bytes:
        encoder = None
        try:
            self._acquire(job)
            if job.cancelled.is_set():
                raise ExportCancelled("export superseded before it started", STAGE_PREPARING)
            self.check_ready(state)
            encoder = self.encoder_factory()
            total = self.total_frames
            try:
                encoder.open(state.canvas_size, self.fps, self.duration_seconds, audio_path)
            except (OSError, RuntimeError) as exc:
                raise ExportError(f"could not start encoder: {exc}", STAGE_ENCODING) from exc

            frames = self.iter_frames(state, job.cancelled)
            while True:
                try:
                    frame = next(frames)
                except StopIteration:
                    break
                except ExportError:
                    raise
                except Exception as exc:
                    raise ExportError(f"frame render failed: {exc}", STAGE_PREPARING) from exc
                try:
                    encoder.write(frame.pixels)
                except (OSError, RuntimeError) as exc:
                    raise ExportError(
                        f"encoder rejected frame {frame.index}: {exc}", STAGE_ENCODING,
                    ) from exc
                _report(progress, (frame.index + 1) / total, STAGE_PREPARING)
                if frame.index % self.fps == 0:
                    logger.debug("Rendered frame %d/%d", frame.index, total)

            _report(progress, 1.0, STAGE_ENCODING)
            try:
                output_path = encoder.finish()
            except (OSError, RuntimeError) as exc:
                raise ExportError(f"encoding failed: {exc}", STAGE_ENCODING) from exc

            _report(progress, 1.0, STAGE_FINALIZING)
            try:
                data = Path(output_path).read_bytes()
            except OSError as exc:
                raise ExportError(f"could not read output: {exc}", STAGE_FINALIZING) from exc
            encoder.close()
            return data
        except ExportError as exc:
            if isinstance(exc, ExportCancelled):
                logger.warning("Export cancelled: %s", exc)
            if encoder is not None:
                encoder.abort()
            raise
        except BaseException:
            if encoder is not None:
                encoder.abort()
            raise
        finally:
            self._release(job)

    # ── Single active export ─────────────────────────────────────

    def _register(self) -> _ExportJob:
        """Create a job and cancel every job registered before it."""
        job = _ExportJob()
        with self._lock:
            for previous in self._jobs:
                previous.cancelled.set()
            self._jobs.add(job)
        return job

    def _acquire(self, job: _ExportJob) -> None:
        """Wait until the previously active job has released its encoder."""
        with self._lock:
            previous = self._active
            self._active = job
        if previous is not None:
            previous.cancelled.set()
            previous.released.wait()

    def _release(self, job: _ExportJob) -> None:
        with self._lock:
            self._jobs.discard(job)
            if self._active is job:
                self._active = None
        job.released.set()


def _report(progress, fraction: float, stage: str) -> None:
    if progress is None:
        return
    try:
        progress(fraction, stage)
    except Exception as exc:
        raise ExportError(f"progress callback failed: {exc!r}", stage) from exc
