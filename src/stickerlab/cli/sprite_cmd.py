"""Build spritesheets and sticker.json descriptors for a pack."""

from pathlib import Path

import click

from ..config import DEFAULT_PATH_CONFIG, DEFAULT_SPRITE_CONFIG
from ..pack import split_pack
from ..scraper import get_sticker_info
from ..spritesheet import build_sprite_for_pack
from .utils import (
    display_common_header,
    handle_generic_error,
    handle_keyboard_interrupt,
)


@click.command()
@click.argument("store_url")
@click.option(
    "--base-public-url",
    default=DEFAULT_SPRITE_CONFIG.BASE_PUBLIC_URL,
    show_default=True,
    help="Prefix for the absolute URLs written to sticker.json",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_PATH_CONFIG.OUTPUT_ROOT,
    show_default=True,
)
@click.option("--cols", type=click.IntRange(min=1), default=DEFAULT_SPRITE_CONFIG.COLS,
              show_default=True)
@click.option("--padding", type=click.IntRange(min=0), default=DEFAULT_SPRITE_CONFIG.PADDING,
              show_default=True)
@click.option("--label", default=DEFAULT_SPRITE_CONFIG.LABEL, show_default=True)
@click.option("--pack-name", default=DEFAULT_SPRITE_CONFIG.PACK_NAME, show_default=True)
def sprite(
    store_url: str,
    base_public_url: str,
    output_dir: Path,
    cols: int,
    padding: int,
    label: str,
    pack_name: str,
) -> None:
    """Generate a spritesheet for every animated sticker at STORE_URL."""
    try:
        records = get_sticker_info(store_url)
        if not records:
            click.echo("⚠️  No stickers found", err=True)
            raise SystemExit(1)

        pack_id, frames = split_pack(records)
        display_common_header(f"StickerLab Spritesheets for pack {pack_id}")

        result = build_sprite_for_pack(
            pack_id,
            frames,
            base_public_url=base_public_url,
            root=output_dir,
            cols=cols,
            padding=padding,
            label=label,
            pack_name=pack_name,
        )

        if not result.count:
            click.echo("ℹ️  Pack has no animated stickers")
            return

        for item in result.results:
            click.echo(f"   • {item.sticker_id}: {item.sprite_path}")
        click.echo(f"✅ {result.count} spritesheet(s) written")

    except KeyboardInterrupt:
        handle_keyboard_interrupt("Sprite")
    except SystemExit:
        raise
    except Exception as e:
        handle_generic_error("Sprite", e)
