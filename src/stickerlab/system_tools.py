from __future__ import annotations

"""Utility helpers for locating external conversion tools.

FFmpeg and ImageMagick are optional: a missing binary is not fatal, it only
means the corresponding GIF strategy reports ``TOOL_UNAVAILABLE`` and the
orchestrator falls through to the next one.
"""

import re
import subprocess
from dataclasses import dataclass
from shutil import which

from .error_handling import ToolUnavailableError


@dataclass(frozen=True, slots=True)
class ToolInfo:
    """Metadata for an external binary discovered on the system."""

    name: str
    available: bool
    version: str | None = None

    def require(self) -> None:
        """Raise *ToolUnavailableError* if the tool isn't available."""
        if not self.available:
            raise ToolUnavailableError(f"Required tool '{self.name}' not found in PATH.")


# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------


def _which(cmd: str) -> str | None:
    """Return full path if *cmd* is executable in $PATH, else *None*."""
    return which(cmd)


def _extract_version(output: str, pattern: str) -> str | None:
    match = re.search(pattern, output)
    if match:
        return match.group(1)
    return None


def _run_version_cmd(cmd: list[str], regex: str) -> str | None:
    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, timeout=5)
    except (OSError, subprocess.SubprocessError):
        return None

    return _extract_version(completed.stdout, regex) or _extract_version(
        completed.stderr, regex
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

_FALLBACK_TOOLS: dict[str, list[str]] = {
    "imagemagick": ["magick", "convert"],  # try "magick" first (newer) then fallback
    "ffmpeg": ["ffmpeg"],
}

_VERSION_PATTERNS: dict[str, str] = {
    "imagemagick": r"ImageMagick (\S+)",
    "ffmpeg": r"ffmpeg version (\S+)",
}

# Map tool keys to configuration attributes
_CONFIG_MAPPING: dict[str, str] = {
    "imagemagick": "IMAGEMAGICK_PATH",
    "ffmpeg": "FFMPEG_PATH",
}


def discover_tool(tool_key: str, engine_config=None) -> ToolInfo:
    """Return *ToolInfo* for *tool_key* using configuration and PATH discovery.

    Args:
        tool_key: Tool identifier (ffmpeg, imagemagick)
        engine_config: EngineConfig instance (uses DEFAULT_ENGINE_CONFIG if None)

    Returns:
        ToolInfo with availability and version information
    """
    if tool_key not in _FALLBACK_TOOLS:
        raise ValueError(f"Unknown tool: {tool_key}")

    if engine_config is None:
        from .config import DEFAULT_ENGINE_CONFIG

        engine_config = DEFAULT_ENGINE_CONFIG

    version_regex = _VERSION_PATTERNS[tool_key]

    configured_path = getattr(engine_config, _CONFIG_MAPPING[tool_key], None)
    if configured_path and _which(configured_path):
        version = _run_version_cmd([configured_path, "-version"], version_regex)
        return ToolInfo(name=configured_path, available=True, version=version)

    for candidate in _FALLBACK_TOOLS[tool_key]:
        if _which(candidate):
            version = _run_version_cmd([candidate, "-version"], version_regex)
            return ToolInfo(name=candidate, available=True, version=version)

    return ToolInfo(name=_FALLBACK_TOOLS[tool_key][0], available=False, version=None)


def get_available_tools(engine_config=None) -> dict[str, ToolInfo]:
    """Get availability status for all supported tools without requiring them."""
    return {key: discover_tool(key, engine_config) for key in _CONFIG_MAPPING}
