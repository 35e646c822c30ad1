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
    "build_convert_command",
]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _magick_binary(engine_config: EngineConfig) -> str:
    """Return the preferred ImageMagick binary (``magick`` or ``convert``)."""
    info = discover_tool("imagemagick", engine_config)
    info.require()
    return info.name


def _alpha_threshold_percent(threshold: int) -> str:
    return f"{threshold / 255 * 100:.1f}%"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_convert_command(
    magick: str,
    input_path: Path,
    output_path: Path,
    *,
    background_color: str | None = None,
    transparency_threshold: int | None = None,
) -> list[str]:
    """Whole-file APNG → GIF conversion.

    Only the background colour and the alpha cut-off are mapped; loop count
    is left to ImageMagick's defaults.
    """
    cmd = [magick, f"apng:{input_path}", "-coalesce"]

    if transparency_threshold is not None:
        cmd += [
            "-channel",
            "A",
            "-threshold",
            _alpha_threshold_percent(transparency_threshold),
            "+channel",
        ]

    if background_color:
        cmd += ["-background", background_color, "-alpha", "remove", "-alpha", "off"]

    cmd.append(f"gif:{output_path}")
    return cmd


def apng_to_gif(
    input_path: Path,
    output_path: Path,
    *,
    background_color: str | None = None,
    transparency_threshold: int | None = None,
    magick: str | None = None,
    engine_config: EngineConfig | None = None,
) -> dict[str, Any]:
    """Tolerant APNG → GIF conversion through ImageMagick.

    *magick* skips binary discovery when the caller already resolved it.

    Raises:
        ToolUnavailableError: ImageMagick is not installed.
        ToolRejectedInputError: ImageMagick reported an unreadable input.
        EncodeError: any other non-zero exit.
    """
    engine_config = engine_config or DEFAULT_ENGINE_CONFIG
    magick = magick or _magick_binary(engine_config)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    partial_path = output_path.with_name(f".{output_path.stem}.magick-partial.gif")

    cmd = build_convert_command(
        magick,
        input_path,
        partial_path,
        background_color=background_color,
        transparency_threshold=transparency_threshold,
    )

    try:
        try:
            metadata = run_command(
                cmd,
                engine="imagemagick",
                output_path=partial_path,
                timeout=engine_config.TOOL_TIMEOUT_SECONDS,
            )
        except ToolCommandError as e:
            detail = clean_error_message(e.stderr or str(e))
            if is_rejected_input(e.stderr):
                raise ToolRejectedInputError(f"imagemagick rejected input: {detail}") from e
            raise EncodeError(f"imagemagick convert failed: {detail}") from e

        if not partial_path.exists() or partial_path.stat().st_size == 0:
            raise EncodeError("imagemagick produced no output")

        os.replace(partial_path, output_path)
    finally:
        with suppress(OSError):
            partial_path.unlink(missing_ok=True)

    return metadata
