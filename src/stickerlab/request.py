"""Conversion request resolution (pure path algebra, no I/O).

Outputs follow the sibling-file convention: same directory, same stem,
new extension (``.../foo_animation.png`` → ``.../foo_animation.gif``).
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlparse

from .config import DEFAULT_CONVERSION_OPTIONS, ConversionOptions
from .layout import file_name_from_url
from .models import ConversionRequest, OutputFormat


def is_url(source: str | Path) -> bool:
    if isinstance(source, Path):
        return False
    return urlparse(source).scheme in ("http", "https")


def sibling_path(source_path: Path, output_format: OutputFormat | str) -> Path:
    """``source_path`` with its extension replaced by the format's extension."""
    output_format = OutputFormat.parse(output_format)
    return source_path.with_name(f"{source_path.stem}.{output_format.extension}")


def resolve_request(
    source: str | Path,
    output_format: OutputFormat | str,
    options: ConversionOptions | None = None,
    *,
    output_dir: Path | None = None,
) -> ConversionRequest:
    """Build a ``ConversionRequest`` for a local APNG path or a remote URL.

    For a URL the downloaded file is expected at
    ``output_dir/<sanitised URL filename>`` and the output sits next to it,
    so *output_dir* is required.
    """
    output_format = OutputFormat.parse(output_format)
    options = options or DEFAULT_CONVERSION_OPTIONS

    if is_url(source):
        if output_dir is None:
            raise ValueError("output_dir is required when the source is a URL")
        filename = file_name_from_url(str(source))
        if not filename:
            raise ValueError(f"Cannot derive a filename from URL: {source}")
        source_path = output_dir / filename
        return ConversionRequest(
            destination_path=sibling_path(source_path, output_format),
            format=output_format,
            options=options,
            source_path=source_path,
            source_url=str(source),
        )

    source_path = Path(source)
    return ConversionRequest(
        destination_path=sibling_path(source_path, output_format),
        format=output_format,
        options=options,
        source_path=source_path,
    )
