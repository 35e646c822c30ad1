"""CLI module for StickerLab commands.

Each command lives in its own ``*_cmd`` module and is registered on the
``main`` group here.
"""

from pathlib import Path

import click

from .. import __version__
from ..io import setup_logging
from .convert_cmd import convert
from .download_cmd import download
from .scrape_cmd import scrape
from .sprite_cmd import sprite
from .tools_cmd import tools


@click.group()
@click.version_option(version=__version__, prog_name="stickerlab")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Also write a timestamped log file here",
)
def main(log_level: str, log_dir: Path | None) -> None:
    """🎨 StickerLab: LINE sticker scraping and APNG conversion."""
    setup_logging(log_dir, log_level)


main.add_command(scrape)
main.add_command(download)
main.add_command(convert)
main.add_command(sprite)
main.add_command(tools)

__all__ = [
    "convert",
    "download",
    "main",
    "scrape",
    "sprite",
    "tools",
]
