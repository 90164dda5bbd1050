"""Shared test fixtures for postcompose tests."""

import subprocess
from pathlib import Path

import pytest
import imageio_ffmpeg
from PIL import Image

from postcompose.media import MediaCache, StillImage
from postcompose.state import MediaRef

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()

RED = (255, 0, 0)
BLUE = (0, 0, 255)
GREEN = (0, 255, 0)


def _no_decode(ref):
    raise OSError(f"no such media: {ref.key}")


class MediaStore:
    """In-memory media: solid-colour stills registered straight into a cache."""

    def __init__(self, cache: MediaCache):
        self.cache = cache

    def add(self, key: str, color=RED, size=(1920, 1080)) -> MediaRef:
        return self.add_image(key, Image.new("RGB", size, color))

    def add_image(self, key: str, image: Image.Image) -> MediaRef:
        w, h = image.size
        self.cache.put(key, StillImage(image))
        return MediaRef(key=key, width=w, height=h)


@pytest.fixture
def cache():
    """MediaCache whose decoder always fails; tests put() assets directly."""
    c = MediaCache(decoder=_no_decode)
    yield c
    c.close()


@pytest.fixture
def media(cache):
    return MediaStore(cache)


class FakeEncoder:
    """Records frames in memory instead of encoding.

    Args:
        fail_at: Raise from write() on this frame number.
        fail_finish: Raise from finish().
        output: Path returned by finish(); its bytes become the export.
    """

    def __init__(self, output: Path, fail_at=None, fail_finish=False, on_write=None):
        self.output = output
        self.fail_at = fail_at
        self.fail_finish = fail_finish
        self.on_write = on_write
        self.opened_with = None
        self.frames = 0
        self.first_frame = None
        self.last_frame = None
        self.finished = False
        self.aborted = False
        self.closed = False

    def open(self, size, fps, duration, audio_path=None):
        self.opened_with = (size, fps, duration, audio_path)

    def write(self, pixels):
        if self.fail_at is not None and self.frames == self.fail_at:
            raise RuntimeError("encoder rejected frame")
        if self.on_write:
            self.on_write(self)
        if self.first_frame is None:
            self.first_frame = pixels
        self.last_frame = pixels
        self.frames += 1

    def finish(self):
        if self.fail_finish:
            raise RuntimeError("encode failed")
        self.finished = True
        if self.output.parent.exists():
            self.output.write_bytes(b"fake-mp4:%d" % self.frames)
        return self.output

    def abort(self):
        self.aborted = True

    def close(self):
        self.closed = True


@pytest.fixture
def fake_encoder(tmp_path):
    """make(**kwargs) returns an encoder factory; make.created lists encoders built."""
    created = []

    def make(output=None, **kwargs):
        def factory():
            path = output or tmp_path / f"out-{len(created)}.mp4"
            enc = FakeEncoder(path, **kwargs)
            created.append(enc)
            return enc
        return factory

    make.created = created
    return make


@pytest.fixture
def source_video(tmp_path):
    """Create a 2-second test video (320x240, 10fps) using ffmpeg."""
    out = tmp_path / "source.mp4"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "color=c=blue:s=320x240:d=2:r=10",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


@pytest.fixture
def source_image(tmp_path):
    """A 400x300 red PNG on disk."""
    out = tmp_path / "source.png"
    Image.new("RGB", (400, 300), RED).save(out)
    return out
