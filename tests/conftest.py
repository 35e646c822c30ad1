"""Shared fixtures: APNG files generated on the fly with Pillow."""

import io
import shutil
import struct
import zlib
from pathlib import Path

import pytest
from PIL import Image

from stickerlab.models import DecodedFrame, DecodedImage

# Distinct colours per frame
FRAME_COLORS = [
    (255, 0, 0, 255),
    (0, 255, 0, 255),
    (0, 0, 255, 255),
    (255, 255, 0, 255),
    (0, 255, 255, 255),
    (255, 0, 255, 255),
]


def make_frames(count: int, size: tuple[int, int] = (64, 64)) -> list[Image.Image]:
    frames = []
    for i in range(count):
        frame = Image.new("RGBA", size, (0, 0, 0, 0))
        # Opaque block whose position also changes, keeps frames distinct
        block = Image.new("RGBA", (size[0] // 2, size[1] // 2), FRAME_COLORS[i % len(FRAME_COLORS)])
        frame.paste(block, ((i * 3) % (size[0] // 2), (i * 5) % (size[1] // 2)))
        frames.append(frame)
    return frames


def make_apng_bytes(
    count: int = 3,
    size: tuple[int, int] = (64, 64),
    durations: list[int] | int = 100,
    loop: int = 0,
) -> bytes:
    """Encode *count* distinct RGBA frames as an APNG."""
    frames = make_frames(count, size)
    buffer = io.BytesIO()
    frames[0].save(
        buffer,
        format="PNG",
        save_all=True,
        append_images=frames[1:],
        duration=durations,
        loop=loop,
        default_image=False,
    )
    return buffer.getvalue()


def make_static_png_bytes(size: tuple[int, int] = (32, 32)) -> bytes:
    buffer = io.BytesIO()
    make_frames(1, size)[0].save(buffer, format="PNG")
    return buffer.getvalue()


def patch_actl_frame_count(data: bytes, num_frames: int) -> bytes:
    """Rewrite the acTL frame count (and its CRC) of an APNG byte string."""
    index = data.index(b"acTL")
    body_start = index + 4
    body = struct.pack(">I", num_frames) + data[body_start + 4 : body_start + 8]
    crc = struct.pack(">I", zlib.crc32(b"acTL" + body) & 0xFFFFFFFF)
    return data[:body_start] + body + crc + data[body_start + 12 :]


def png_chunk(chunk_type: bytes, body: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + body) & 0xFFFFFFFF
    return struct.pack(">I", len(body)) + chunk_type + body + struct.pack(">I", crc)


def insert_after_ihdr(data: bytes, *chunks: bytes) -> bytes:
    # signature (8) + IHDR length/type (8) + body (13) + CRC (4)
    end = 33
    return data[:end] + b"".join(chunks) + data[end:]


def make_decoded_image(
    count: int = 3,
    width: int = 4,
    height: int = 4,
    duration_ms: int = 100,
    bad_frames: tuple[int, ...] = (),
    identical: bool = False,
) -> DecodedImage:
    """In-memory ``DecodedImage``; frames listed in *bad_frames* get a short buffer.

    With *identical* every frame uses the first colour.
    """
    frames = []
    for i in range(count):
        color = bytes(FRAME_COLORS[0 if identical else i % len(FRAME_COLORS)])
        pixels = color * (width * height)
        if i in bad_frames:
            pixels = pixels[:-4]
        frames.append(DecodedFrame(pixels=pixels, duration_ms=duration_ms))
    return DecodedImage(width=width, height=height, frames=tuple(frames))


@pytest.fixture
def apng_bytes():
    """Three distinct 64x64 frames at 100 ms each."""
    return make_apng_bytes()


@pytest.fixture
def apng_file(tmp_path, apng_bytes):
    path = tmp_path / "stickers" / "foo_animation.png"
    path.parent.mkdir(parents=True)
    path.write_bytes(apng_bytes)
    return path


@pytest.fixture
def static_png_file(tmp_path):
    path = tmp_path / "sticker.png"
    path.write_bytes(make_static_png_bytes())
    return path


@pytest.fixture
def not_png_file(tmp_path):
    path = tmp_path / "broken_animation.png"
    path.write_bytes(b"<html>not a png</html>")
    return path


@pytest.fixture
def no_external_tools(monkeypatch):
    """Hide ffmpeg and ImageMagick so only in-process strategies run."""
    monkeypatch.setattr("stickerlab.system_tools._which", lambda cmd: None)


def _tool_missing(*names: str) -> bool:
    return not any(shutil.which(name) for name in names)


def pytest_collection_modifyitems(config, items):
    skip = pytest.mark.skip(reason="ffmpeg/ImageMagick not installed")
    missing = _tool_missing("ffmpeg") and _tool_missing("magick", "convert")
    for item in items:
        if "external_tools" in item.keywords and missing:
            item.add_marker(skip)


def load_gif(path: Path) -> Image.Image:
    return Image.open(path)
