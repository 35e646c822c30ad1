from __future__ import annotations

from pathlib import Path
from typing import Any
import os
import subprocess
import time

from ..error_handling import StickerLabError, ToolUnavailableError

__all__ = [
    "ToolCommandError",
    "run_command",
]


class ToolCommandError(StickerLabError):
    """Non-zero exit from an external tool; keeps stderr for classification."""

    def __init__(self, engine: str, returncode: int, stderr: str, command: list[str]):
        super().__init__(
            f"{engine} command failed (exit {returncode}).\n\nSTDERR:\n{stderr.strip()}"
        )
        self.engine = engine
        self.returncode = returncode
        self.stderr = stderr
        self.command = command


def run_command(
    cmd: list[str], *, engine: str, output_path: Path, timeout: int | None = None
) -> dict[str, Any]:
    """Execute *cmd* and return StickerLab-style metadata.

    The helper blocks until *cmd* completes, raises *ToolCommandError* on a
    non-zero exit status and captures the elapsed wall-clock time in
    milliseconds.

    Parameters
    ----------
    cmd
        Full command as a list of strings (never run through a shell).
    engine
        Human-readable engine key, e.g. "ffmpeg", "imagemagick".
    output_path
        Path expected to be produced by the command - used to calculate the
        final file size in kilobytes.
    timeout
        Optional hard timeout (seconds) - *None* disables the limit.

    Returns
    -------
    dict
        Metadata dict with the keys ``render_ms``, ``engine``, ``command``,
        ``kilobytes``.
    """
    start = time.perf_counter()
    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as e:
        raise ToolUnavailableError(f"{engine} binary not found: {cmd[0]}", cause=e) from e
    except subprocess.TimeoutExpired as e:
        stderr = e.stderr if isinstance(e.stderr, str) else ""
        raise ToolCommandError(engine, -1, f"timed out after {timeout}s\n{stderr}", cmd) from e
    duration_ms = int((time.perf_counter() - start) * 1000)

    if completed.returncode != 0:
        raise ToolCommandError(engine, completed.returncode, completed.stderr or "", cmd)

    try:
        size_kb = int(os.path.getsize(output_path) / 1024)
    except OSError:
        size_kb = 0

    return {
        "render_ms": duration_ms,
        "engine": engine,
        "command": " ".join(cmd),
        "kilobytes": size_kb,
    }
