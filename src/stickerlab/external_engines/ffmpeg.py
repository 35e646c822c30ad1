from __future__ import annotations

import os
from contextlib import suppress
from pathlib import Path
from typing import Any

from ..config import DEFAULT_ENGINE_CONFIG, EngineConfig
from ..error_handling import EncodeError, ToolRejectedInputError, clean_error_message
from ..system_tools import discover_tool
from .common import ToolCommandError, run_command
from .diagnostics import is_rejected_input

__all__ = [
    "apng_to_gif",
    "build_palettegen_command",
    "build_paletteuse_command",
]

PALETTEGEN_FILTER = "format=rgba,palettegen=reserve_transparent=1"
PALETTEUSE_FILTER = "format=rgba,paletteuse=dither=bayer:bayer_scale=5:diff_mode=rectangle"

# palettegen rejects max_colors below this
MIN_PALETTE_COLORS = 4


def _ffmpeg_binary(engine_config: EngineConfig) -> str:
    info = discover_tool("ffmpeg", engine_config)
    info.require()
    return info.name


def _input_args(input_path: Path, engine_config: EngineConfig) -> list[str]:
    return [
        "-hide_banner",
        "-loglevel",
        "error",
        "-probesize",
        engine_config.FFMPEG_PROBESIZE,
        "-analyzeduration",
        engine_config.FFMPEG_ANALYZEDURATION,
        "-f",
        "apng",
        "-i",
        str(input_path),
    ]


def build_palettegen_command(
    ffmpeg: str,
    input_path: Path,
    palette_path: Path,
    engine_config: EngineConfig,
    *,
    color_count: int = 256,
) -> list[str]:
    """First pass: one shared 8-bit palette with a reserved transparent slot."""
    palette_filter = PALETTEGEN_FILTER
    if color_count < 256:
        palette_filter += f":max_colors={color_count}"
    return [
        ffmpeg,
        *_input_args(input_path, engine_config),
        "-vf",
        palette_filter,
        "-y",
        str(palette_path),
    ]


def build_paletteuse_command(
    ffmpeg: str,
    input_path: Path,
    palette_path: Path,
    output_path: Path,
    engine_config: EngineConfig,
    *,
    loop_count: int = 0,
    transparency_threshold: int | None = None,
) -> list[str]:
    """Second pass: map every frame onto the palette with bayer dithering."""
    use_filter = PALETTEUSE_FILTER
    if transparency_threshold is not None:
        use_filter += f":alpha_threshold={transparency_threshold}"
    return [
        ffmpeg,
        *_input_args(input_path, engine_config),
        "-i",
        str(palette_path),
        "-lavfi",
        use_filter,
        "-loop",
        str(loop_count),
        "-f",
        "gif",
        "-y",
        str(output_path),
    ]


def _run_pass(cmd: list[str], stage: str, output_path: Path, timeout: int | None) -> dict[str, Any]:
    try:
        return run_command(cmd, engine="ffmpeg", output_path=output_path, timeout=timeout)
    except ToolCommandError as e:
        detail = clean_error_message(e.stderr or str(e))
        if is_rejected_input(e.stderr):
            raise ToolRejectedInputError(
                f"ffmpeg {stage} rejected input: {detail}",
                context={"stage": stage, "returncode": e.returncode},
            ) from e
        raise EncodeError(
            f"ffmpeg {stage} failed: {detail}",
            context={"stage": stage, "returncode": e.returncode},
        ) from e


def apng_to_gif(
    input_path: Path,
    output_path: Path,
    *,
    loop_count: int = 0,
    color_count: int = 256,
    transparency_threshold: int | None = None,
    ffmpeg: str | None = None,
    engine_config: EngineConfig | None = None,
) -> dict[str, Any]:
    """APNG → GIF via the two-pass FFmpeg palette technique.

    The GIF is rendered to a hidden sibling file and moved over
    *output_path* only when both passes succeed. The intermediate palette
    (``EngineConfig.PALETTE_FILENAME`` in the output directory) is removed
    on every path. *ffmpeg* skips binary discovery when the caller already
    resolved it.

    Raises:
        ToolUnavailableError: ffmpeg is not installed.
        ToolRejectedInputError: ffmpeg's demuxer/decoder refused the input,
            or *color_count* is below what palettegen accepts.
        EncodeError: any other non-zero exit.
    """
    engine_config = engine_config or DEFAULT_ENGINE_CONFIG
    if color_count < MIN_PALETTE_COLORS:
        raise ToolRejectedInputError(
            f"ffmpeg palettegen needs at least {MIN_PALETTE_COLORS} colours, got {color_count}"
        )
    ffmpeg = ffmpeg or _ffmpeg_binary(engine_config)
    timeout = engine_config.TOOL_TIMEOUT_SECONDS

    output_path.parent.mkdir(parents=True, exist_ok=True)
    palette_path = output_path.parent / engine_config.PALETTE_FILENAME
    partial_path = output_path.with_name(f".{output_path.stem}.ffmpeg-partial.gif")

    try:
        meta1 = _run_pass(
            build_palettegen_command(
                ffmpeg, input_path, palette_path, engine_config, color_count=color_count
            ),
            "palettegen",
            palette_path,
            timeout,
        )
        meta2 = _run_pass(
            build_paletteuse_command(
                ffmpeg,
                input_path,
                palette_path,
                partial_path,
                engine_config,
                loop_count=loop_count,
                transparency_threshold=transparency_threshold,
            ),
            "paletteuse",
            partial_path,
            timeout,
        )
        os.replace(partial_path, output_path)
    finally:
        with suppress(OSError):
            palette_path.unlink(missing_ok=True)
        with suppress(OSError):
            partial_path.unlink(missing_ok=True)

    return {
        "render_ms": meta1.get("render_ms", 0) + meta2.get("render_ms", 0),
        "engine": "ffmpeg",
        "command": f"{meta1.get('command', '')}\n{meta2.get('command', '')}",
        "kilobytes": meta2.get("kilobytes", 0),
    }
