"""List the stickers of a LINE Store product page."""

import json

import click
from rich.console import Console
from rich.table import Table

from ..scraper import get_sticker_info
from .utils import handle_generic_error, handle_keyboard_interrupt


@click.command()
@click.argument("store_url")
@click.option("--json", "output_json", is_flag=True, help="Print records as JSON")
def scrape(store_url: str, output_json: bool) -> None:
    """Scrape sticker records from STORE_URL.

    STORE_URL may be pasted text such as "[Sale] Bears https://store.line.me/...";
    bracketed labels are stripped and the last token is used.
    """
    try:
        records = get_sticker_info(store_url)

        if output_json:
            click.echo(json.dumps([r.to_dict() for r in records], indent=2))
            return

        if not records:
            click.echo("⚠️  No stickers found")
            return

        table = Table(title=f"Stickers ({len(records)})")
        table.add_column("ID", style="cyan")
        table.add_column("Type")
        table.add_column("URL", overflow="fold")
        for record in records:
            kind = "[green]ANIMATED[/green]" if record.is_animated else "STATIC"
            table.add_row(record.id, kind, record.url)
        Console().print(table)

    except KeyboardInterrupt:
        handle_keyboard_interrupt("Scrape")
    except Exception as e:
        handle_generic_error("Scrape", e)
