"""Download a whole sticker pack, optionally converting animations."""

from pathlib import Path

import click

from ..config import DEFAULT_DOWNLOAD_CONFIG, DEFAULT_PATH_CONFIG
from ..layout import PackLayout
from ..pack import save_sticker_pack, save_sticker_pack_simple, split_pack
from ..scraper import get_sticker_info
from .utils import (
    display_common_header,
    display_path_info,
    handle_generic_error,
    handle_keyboard_interrupt,
)


@click.command()
@click.argument("store_url")
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_PATH_CONFIG.OUTPUT_ROOT,
    show_default=True,
    help="Root directory for the pack folders",
)
@click.option("--simple", is_flag=True, help="One <id>.png per sticker, no variants")
@click.option(
    "--convert",
    "convert_formats",
    type=click.Choice(["gif", "webp"]),
    multiple=True,
    help="Convert animation.png variants (repeatable)",
)
@click.option(
    "--workers",
    "-j",
    type=click.IntRange(min=1),
    default=DEFAULT_DOWNLOAD_CONFIG.WORKERS,
    show_default=True,
    help="Concurrent sticker downloads",
)
def download(
    store_url: str,
    output_dir: Path,
    simple: bool,
    convert_formats: tuple[str, ...],
    workers: int,
) -> None:
    """Download every sticker of the pack at STORE_URL."""
    try:
        records = get_sticker_info(store_url)
        if not records:
            click.echo("⚠️  No stickers found", err=True)
            raise SystemExit(1)

        pack_id, frames = split_pack(records)

        display_common_header("StickerLab Pack Download")
        click.echo(f"📦 Pack: {pack_id} ({len(frames)} sticker(s))")
        display_path_info("Output root", output_dir)

        if simple:
            result = save_sticker_pack_simple(pack_id, frames, root=output_dir)
        else:
            if convert_formats:
                click.echo(f"🔄 Converting animations to: {', '.join(convert_formats)}")
            result = save_sticker_pack(
                pack_id,
                frames,
                layout=PackLayout(root=output_dir),
                convert_formats=convert_formats,
                workers=workers,
            )

        click.echo(f"\n📊 Saved {len(result.saved)} file(s) to {result.base_dir}")
        conversion_errors = sum(len(v.conversion_errors) for v in result.saved)
        if conversion_errors:
            click.echo(f"⚠️  {conversion_errors} conversion(s) failed (see log)")
        if result.failed:
            click.echo(f"❌ {len(result.failed)} sticker(s) failed:")
            for failed in result.failed:
                click.echo(f"   • {failed.id}: {failed.error}")
            raise SystemExit(1)

        click.echo("✅ Download completed")

    except KeyboardInterrupt:
        handle_keyboard_interrupt("Download")
    except SystemExit:
        raise
    except Exception as e:
        handle_generic_error("Download", e)
