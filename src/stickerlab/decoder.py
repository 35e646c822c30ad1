"""APNG decoding into a fully materialised list of RGBA frames.

Pillow does the pixel work (blending, disposal, colour conversion). The
animation control chunks are also read directly so the declared frame count
and the raw ``fcTL`` delay fractions are available for validation and for
frames where Pillow reports no duration.
"""

from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from .config import DEFAULT_STATIC_DURATION_MS
from .error_handling import DecodeError, FrameValidationError
from .frame_timing import delay_fraction_to_ms, floor_duration
from .models import DecodedFrame, DecodedImage

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@dataclass(frozen=True)
class AnimationControl:
    """Contents of the ``acTL`` chunk."""

    num_frames: int
    num_plays: int


@dataclass(frozen=True)
class FrameControl:
    """Contents of one ``fcTL`` chunk."""

    sequence_number: int
    width: int
    height: int
    x_offset: int
    y_offset: int
    delay_num: int
    delay_den: int
    dispose_op: int
    blend_op: int

    @property
    def duration_ms(self) -> int | None:
        return delay_fraction_to_ms(self.delay_num, self.delay_den)


def is_png(data: bytes) -> bool:
    return len(data) >= len(PNG_SIGNATURE) and data[: len(PNG_SIGNATURE)] == PNG_SIGNATURE


def read_animation_chunks(data: bytes) -> tuple[AnimationControl | None, list[FrameControl]]:
    """Walk the PNG chunk list and collect ``acTL`` / ``fcTL`` contents.

    Stops quietly at ``IEND`` or at the first truncated chunk; structural
    damage is reported by Pillow when the pixels are decoded.
    """
    actl: AnimationControl | None = None
    fctls: list[FrameControl] = []

    offset = len(PNG_SIGNATURE)
    while offset + 8 <= len(data):
        length, chunk_type = struct.unpack(">I4s", data[offset : offset + 8])
        body_start = offset + 8
        body_end = body_start + length
        if body_end + 4 > len(data):
            break

        body = data[body_start:body_end]
        if chunk_type == b"acTL" and length >= 8:
            actl = AnimationControl(*struct.unpack(">II", body[:8]))
        elif chunk_type == b"fcTL" and length >= 26:
            fctls.append(FrameControl(*struct.unpack(">IIIIIHHBB", body[:26])))
        elif chunk_type == b"IEND":
            break

        offset = body_end + 4  # skip CRC

    return actl, fctls


def _read_frames(image: Image.Image) -> list[tuple[bytes, float | None]]:
    n_frames = getattr(image, "n_frames", 1)
    # An IDAT default image that is not part of the animation is not a frame
    first = 1 if image.info.get("default_image") and n_frames > 1 else 0

    frames: list[tuple[bytes, float | None]] = []
    for index in range(first, n_frames):
        try:
            image.seek(index)
        except EOFError:
            # acTL promised more frames than the file holds
            break
        pixels = image.convert("RGBA").tobytes()
        frames.append((pixels, image.info.get("duration")))
    return frames


def decode(data: bytes) -> DecodedImage:
    """Decode an (A)PNG byte buffer into a ``DecodedImage``.

    Raises:
        DecodeError: missing PNG signature or undecodable data.
        FrameValidationError: declared and decoded frame counts disagree,
            or a frame's pixel buffer has the wrong size.
    """
    if not is_png(data):
        raise DecodeError("Input is not a PNG (signature mismatch)")

    actl, fctls = read_animation_chunks(data)
    declared = actl.num_frames if actl is not None else 0
    # acTL with zero frames leaves the default image as a static PNG
    animated = declared > 0

    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
            raw_frames = _read_frames(image)
    except (OSError, SyntaxError, ValueError, EOFError) as e:
        raise DecodeError(f"Could not decode PNG data: {e}", cause=e) from e

    expected = max(1, declared)
    if len(raw_frames) != expected:
        raise FrameValidationError(
            f"Frame count mismatch: declared={declared} decoded={len(raw_frames)}"
        )
    # Pillow sizes the animation from acTL alone, so also check fcTL chunks
    if animated and len(fctls) != declared:
        raise FrameValidationError(
            f"Frame count mismatch: declared={declared} frame_controls={len(fctls)}"
        )

    frame_size = width * height * 4
    frames: list[DecodedFrame] = []
    for index, (pixels, native_duration) in enumerate(raw_frames):
        if len(pixels) != frame_size:
            raise FrameValidationError(
                f"Frame {index} has {len(pixels)} bytes, expected {frame_size}",
                frame_index=index,
            )

        if not animated:
            duration_ms = DEFAULT_STATIC_DURATION_MS
        else:
            if native_duration is None and index < len(fctls):
                native_duration = fctls[index].duration_ms
            duration_ms = floor_duration(native_duration)

        frames.append(DecodedFrame(pixels=pixels, duration_ms=duration_ms))

    logger.debug(
        f"Decoded {width}x{height} image with {len(frames)} frame(s), "
        f"total {sum(f.duration_ms for f in frames)} ms"
    )
    return DecodedImage(width=width, height=height, frames=tuple(frames))


def decode_file(path: Path) -> DecodedImage:
    """Read *path* and decode it; read errors surface as ``OSError``."""
    return decode(path.read_bytes())
