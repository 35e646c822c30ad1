from __future__ import annotations

"""Concrete conversion strategies.

Two kinds of strategy live here:

1. **In-process encoders** - decode the APNG with :mod:`stickerlab.decoder`
   and re-encode the frames with Pillow (GIF and animated WebP). These are
   the only strategies with per-frame control: malformed frames can be
   skipped or rejected, durations are clamped and converted explicitly, and
   loop count is honoured.
2. **External-tool wrappers** - thin adapters exposing the FFmpeg and
   ImageMagick helpers from :mod:`stickerlab.external_engines` through the
   common :class:`~stickerlab.tool_interfaces.Encoder` interface.
"""

import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image

from .config import DEFAULT_ENGINE_CONFIG, ConversionOptions, EngineConfig
from .decoder import decode
from .error_handling import (
    EncodeError,
    FrameValidationError,
    StickerIOError,
    log_warning_with_context,
)
from .external_engines.ffmpeg import apng_to_gif as ffmpeg_apng_to_gif
from .external_engines.imagemagick import apng_to_gif as imagemagick_apng_to_gif
from .frame_timing import ms_to_centiseconds, output_duration_ms
from .io import atomic_write
from .models import ConversionRequest, DecodedImage, OutputFormat
from .system_tools import ToolInfo, discover_tool
from .tool_interfaces import Encoder

logger = logging.getLogger(__name__)

# GIF transparency is one bit; alpha below this becomes fully transparent
DEFAULT_GIF_ALPHA_THRESHOLD = 128

# Two palette indices stay free for re-indexing repeated frames
MAX_GIF_PALETTE_COLORS = 254

_ENCODER_ERRORS = (OSError, ValueError, TypeError, IndexError, KeyError)


# ---------------------------------------------------------------------------
# Frame preparation
# ---------------------------------------------------------------------------


def _threshold_alpha(pixels: bytes, width: int, height: int, threshold: int) -> bytes:
    rgba = np.frombuffer(pixels, dtype=np.uint8).reshape(height, width, 4).copy()
    transparent = rgba[..., 3] < threshold
    rgba[transparent] = 0
    rgba[~transparent, 3] = 255
    return rgba.tobytes()


def prepare_frames(
    image: DecodedImage,
    options: ConversionOptions,
    *,
    alpha_threshold: int | None = None,
) -> tuple[list[Image.Image], list[int], list[int]]:
    """Validate frames and turn them into Pillow images.

    Returns ``(frames, durations_ms, source_indices)``. Durations are floored
    and clamped but still in milliseconds.

    Raises:
        FrameValidationError: a frame has the wrong pixel buffer size and
            ``on_frame_error`` is ``"fail"``, or no valid frame remains.
    """
    expected = image.expected_frame_size
    frames: list[Image.Image] = []
    durations: list[int] = []
    indices: list[int] = []

    for index, frame in enumerate(image.frames):
        if len(frame.pixels) != expected:
            if options.skip_bad_frames:
                log_warning_with_context(
                    f"Skipping malformed frame {index}",
                    {"bytes": len(frame.pixels), "expected": expected},
                    logger,
                )
                continue
            raise FrameValidationError(
                f"Frame {index} has {len(frame.pixels)} bytes, expected {expected}",
                frame_index=index,
            )

        pixels = frame.pixels
        if alpha_threshold is not None:
            pixels = _threshold_alpha(pixels, image.width, image.height, alpha_threshold)

        frames.append(Image.frombytes("RGBA", (image.width, image.height), pixels))
        durations.append(output_duration_ms(frame.duration_ms, options.max_frame_duration_ms))
        indices.append(index)

    if not frames:
        raise FrameValidationError(
            f"No valid frames to encode ({image.frame_count} malformed)"
        )

    return frames, durations, indices


def _to_palette_frame(frame: Image.Image, color_count: int) -> Image.Image:
    """Quantise one RGBA frame to its own palette, keeping a transparent slot."""
    quantized = frame.quantize(colors=color_count, method=Image.Quantize.FASTOCTREE)
    for color, palette_index in quantized.palette.colors.items():
        if len(color) == 4 and color[3] == 0:
            quantized.info["transparency"] = palette_index
            break
    return quantized


def _same_picture(a: Image.Image, b: Image.Image) -> bool:
    return a.convert("RGBA").tobytes() == b.convert("RGBA").tobytes()


def _reindexed_variants(frame: Image.Image) -> tuple[Image.Image, Image.Image, Image.Image]:
    """Three palette images showing *frame*'s picture with different indices.

    Two free palette indices get a copy of one colour in use. Each variant
    points one pixel at one of them (or, for a fully transparent frame,
    moves the transparent index there). All three share one palette.
    """
    histogram = frame.histogram()[:256]
    spares = [index for index, count in enumerate(histogram) if not count][:2]
    if len(spares) < 2:
        raise EncodeError("No free palette indices left to keep a repeated frame")

    palette = frame.getpalette() or []
    palette += [0] * (768 - len(palette))
    indices = np.asarray(frame)
    transparency = frame.info.get("transparency")
    if transparency is None:
        visible = np.argwhere(np.ones(indices.shape, dtype=bool))
    else:
        visible = np.argwhere(indices != transparency)

    source = int(indices[tuple(visible[0])]) if len(visible) else transparency
    for spare in spares:
        palette[spare * 3 : spare * 3 + 3] = palette[source * 3 : source * 3 + 3]

    base = frame.copy()
    base.putpalette(palette)
    variants = []
    for spare in spares:
        if len(visible):
            y, x = (int(v) for v in visible[0])
            variant = base.copy()
            variant.putpixel((x, y), spare)
        else:
            variant = Image.new("P", frame.size, spare)
            variant.putpalette(palette)
            variant.info["transparency"] = spare
        variants.append(variant)
    return base, variants[0], variants[1]


def _split_repeated_gif_frames(frames: list[Image.Image]) -> list[Image.Image]:
    """Keep runs of identical frames apart for Pillow's GIF writer.

    The writer folds a frame that matches the previous one into it, and
    with disposal 2 it also compares each frame with the background of the
    first frame. Inside a run the first frame stays as it is and the rest
    alternate between two re-indexed variants, so the picture is unchanged
    but no frame equals its neighbour or the run's first frame.
    """
    result: list[Image.Image] = []
    variants: tuple[Image.Image, Image.Image] | None = None
    for frame in frames:
        if result and _same_picture(result[-1], frame):
            if variants is None:
                base, first, second = _reindexed_variants(result[-1])
                result[-1] = base
                variants = (first, second)
                result.append(first)
            else:
                result.append(variants[1] if result[-1] is variants[0] else variants[0])
        else:
            variants = None
            result.append(frame)
    return result


def _split_repeated_webp_frames(frames: list[Image.Image]) -> list[Image.Image]:
    """Nudge one alpha value of a frame that repeats its predecessor.

    libwebp's animation encoder drops a frame equal to the previous canvas.
    Alpha has to match exactly for two pixels to count as equal, so a
    one-step change on the corner pixel is enough.
    """
    result: list[Image.Image] = []
    previous: bytes | None = None
    for frame in frames:
        data = frame.tobytes()
        if data == previous:
            frame = frame.copy()
            r, g, b, a = frame.getpixel((0, 0))
            frame.putpixel((0, 0), (r, g, b, a - 1 if a else 1))
            data = frame.tobytes()
        result.append(frame)
        previous = data
    return result


def _write_checked(data: bytes, destination: Path, expected: int, label: str) -> int:
    """Write *data* to *destination* once it holds exactly *expected* frames."""
    with Image.open(io.BytesIO(data)) as written:
        frame_count = getattr(written, "n_frames", 1)
    if frame_count != expected:
        raise EncodeError(f"{label} writer produced {frame_count} frame(s), expected {expected}")

    with atomic_write(destination, "wb") as fh:
        fh.write(data)
    return frame_count


# ---------------------------------------------------------------------------
# In-process encoders
# ---------------------------------------------------------------------------


def encode_gif(image: DecodedImage, destination: Path, options: ConversionOptions) -> int:
    """Encode decoded frames as an animated GIF; returns the frame count written.

    Frame delays are converted to hundredths of a second (minimum 1) after
    flooring and clamping. The destination is replaced atomically.
    """
    threshold = options.transparency_threshold
    if threshold is None:
        threshold = DEFAULT_GIF_ALPHA_THRESHOLD

    frames, durations, _ = prepare_frames(image, options, alpha_threshold=threshold)
    delays_cs = [ms_to_centiseconds(duration) for duration in durations]
    color_count = min(options.color_count, MAX_GIF_PALETTE_COLORS)

    buffer = io.BytesIO()
    try:
        palette_frames = _split_repeated_gif_frames(
            [_to_palette_frame(frame, color_count) for frame in frames]
        )
        palette_frames[0].save(
            buffer,
            format="GIF",
            save_all=True,
            append_images=palette_frames[1:],
            duration=[delay * 10 for delay in delays_cs],
            loop=options.loop_count,
            disposal=2,
            optimize=False,
        )
    except _ENCODER_ERRORS as e:
        raise EncodeError(f"GIF encode failed: {e}", cause=e) from e

    return _write_checked(buffer.getvalue(), destination, len(frames), "GIF")


def encode_webp(image: DecodedImage, destination: Path, options: ConversionOptions) -> int:
    """Encode decoded frames as an animated (lossy by default) WebP."""
    frames, durations, _ = prepare_frames(image, options)

    buffer = io.BytesIO()
    try:
        frames = _split_repeated_webp_frames(frames)
        frames[0].save(
            buffer,
            format="WEBP",
            save_all=True,
            append_images=frames[1:],
            duration=durations,
            loop=options.loop_count,
            quality=options.webp_quality,
            method=options.webp_method,
            lossless=options.webp_lossless,
        )
    except _ENCODER_ERRORS as e:
        raise EncodeError(f"WebP encode failed: {e}", cause=e) from e

    return _write_checked(buffer.getvalue(), destination, len(frames), "WebP")


def _source_path(request: ConversionRequest) -> Path:
    if request.source_path is None:
        raise StickerIOError(f"No local source file for {request.source_url}")
    return request.source_path


def _log_tool_run(name: str, metadata: dict) -> None:
    logger.debug(
        f"{name}: {metadata.get('render_ms', 0)} ms, {metadata.get('kilobytes', 0)} KB "
        f"({metadata.get('command', '')})"
    )


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class _ExternalToolEncoder(Encoder):
    """Strategy backed by a binary that is looked up once per instance."""

    TOOL_KEY = ""

    def __init__(self, engine_config: EngineConfig | None = None) -> None:
        self.engine_config = engine_config or DEFAULT_ENGINE_CONFIG
        self._tool: ToolInfo | None = None

    @property
    def tool(self) -> ToolInfo:
        if self._tool is None:
            self._tool = discover_tool(self.TOOL_KEY, self.engine_config)
        return self._tool

    def available(self) -> bool:
        return self.tool.available

    def binary(self) -> str:
        """Resolved executable name; raises ``ToolUnavailableError`` when missing."""
        self.tool.require()
        return self.tool.name


class FFmpegPaletteEncoder(_ExternalToolEncoder):
    """Two-pass palettegen/paletteuse through the ffmpeg CLI."""

    NAME = "ffmpeg-palette"
    FORMAT = OutputFormat.GIF
    TOOL_KEY = "ffmpeg"

    def encode(self, request: ConversionRequest) -> None:
        metadata = ffmpeg_apng_to_gif(
            _source_path(request),
            request.destination_path,
            loop_count=request.options.loop_count,
            color_count=request.options.color_count,
            transparency_threshold=request.options.transparency_threshold,
            ffmpeg=self.binary(),
            engine_config=self.engine_config,
        )
        _log_tool_run(self.NAME, metadata)


class PillowGifEncoder(Encoder):
    """Decode with Pillow, validate every frame, re-encode as GIF."""

    NAME = "pillow-gif"
    FORMAT = OutputFormat.GIF

    def encode(self, request: ConversionRequest) -> None:
        image = decode(_source_path(request).read_bytes())
        written = encode_gif(image, request.destination_path, request.options)
        logger.debug(f"{self.NAME}: {written}/{image.frame_count} frames written")


class ImageMagickGifEncoder(_ExternalToolEncoder):
    """Tolerant whole-file conversion; no loop control, last resort."""

    NAME = "imagemagick"
    FORMAT = OutputFormat.GIF
    TOOL_KEY = "imagemagick"

    def encode(self, request: ConversionRequest) -> None:
        metadata = imagemagick_apng_to_gif(
            _source_path(request),
            request.destination_path,
            background_color=request.options.background_color,
            transparency_threshold=request.options.transparency_threshold,
            magick=self.binary(),
            engine_config=self.engine_config,
        )
        _log_tool_run(self.NAME, metadata)


class PillowWebpEncoder(Encoder):
    """Decode with Pillow and recompose as an animated WebP."""

    NAME = "pillow-webp"
    FORMAT = OutputFormat.WEBP

    def encode(self, request: ConversionRequest) -> None:
        image = decode(_source_path(request).read_bytes())
        written = encode_webp(image, request.destination_path, request.options)
        logger.debug(f"{self.NAME}: {written}/{image.frame_count} frames written")
