"""Shared utilities for CLI commands."""

import sys
from pathlib import Path

import click

from ..config import ConversionOptions
from ..error_handling import clean_error_message


def handle_generic_error(command_name: str, error: Exception) -> None:
    """Handle generic command errors with consistent formatting."""
    click.echo(f"❌ {command_name} failed: {clean_error_message(str(error))}", err=True)
    sys.exit(1)


def handle_keyboard_interrupt(command_name: str) -> None:
    """Handle keyboard interrupt with consistent formatting."""
    click.echo(f"\n⏹️  {command_name} interrupted by user", err=True)
    sys.exit(1)


def display_common_header(title: str) -> None:
    click.echo(f"🎨 {title}")


def display_path_info(label: str, path: Path, emoji: str = "📁") -> None:
    click.echo(f"{emoji} {label}: {path}")


def build_conversion_options(
    loop: int,
    max_frame_duration: int | None,
    on_frame_error: str,
    colors: int,
    background: str | None,
    transparency_threshold: int | None,
) -> ConversionOptions:
    """Turn CLI flags into ``ConversionOptions``, reporting bad values as usage errors."""
    try:
        return ConversionOptions(
            loop_count=loop,
            max_frame_duration_ms=max_frame_duration,
            on_frame_error=on_frame_error,
            color_count=colors,
            background_color=background,
            transparency_threshold=transparency_threshold,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
