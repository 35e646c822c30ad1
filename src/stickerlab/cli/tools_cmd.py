"""Report which external conversion tools are installed."""

import click
from rich.console import Console
from rich.table import Table

from ..system_tools import get_available_tools


@click.command()
def tools() -> None:
    """Show availability of ffmpeg and ImageMagick.

    Both are optional: without them GIF conversion falls back to the
    built-in Pillow encoder.
    """
    table = Table(title="External Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Binary")
    table.add_column("Status")
    table.add_column("Version")

    for key, info in get_available_tools().items():
        status = "[green]✅ available[/green]" if info.available else "[red]❌ missing[/red]"
        table.add_row(key, info.name, status, info.version or "-")

    Console().print(table)
