"""Convert one APNG (file or URL) to GIF or animated WebP."""

from pathlib import Path

import click

from ..error_handling import ConversionError
from ..orchestrator import convert as run_conversion
from ..request import is_url, resolve_request
from .utils import (
    build_conversion_options,
    display_path_info,
    handle_generic_error,
    handle_keyboard_interrupt,
)


@click.command()
@click.argument("source")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["gif", "webp"]),
    default="gif",
    show_default=True,
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Download directory when SOURCE is a URL (default: current directory)",
)
@click.option("--loop", type=click.IntRange(min=0), default=0, show_default=True,
              help="Loop count, 0 = forever")
@click.option("--max-frame-duration", type=click.IntRange(min=1), default=None,
              help="Clamp every frame to at most this many milliseconds")
@click.option(
    "--on-frame-error",
    type=click.Choice(["fail", "skip"]),
    default="fail",
    show_default=True,
    help="What the in-process encoder does with a malformed frame",
)
@click.option("--colors", type=click.IntRange(2, 256), default=256, show_default=True)
@click.option("--background", default=None, help="Flatten onto this colour (ImageMagick only)")
@click.option("--transparency-threshold", type=click.IntRange(0, 255), default=None,
              help="Alpha below this becomes transparent")
def convert(
    source: str,
    output_format: str,
    output_dir: Path | None,
    loop: int,
    max_frame_duration: int | None,
    on_frame_error: str,
    colors: int,
    background: str | None,
    transparency_threshold: int | None,
) -> None:
    """Convert SOURCE (an APNG path or URL) next to itself.

    The output keeps the source's name with the new extension, e.g.
    stickers/animation.png -> stickers/animation.gif.
    """
    options = build_conversion_options(
        loop, max_frame_duration, on_frame_error, colors, background, transparency_threshold
    )

    try:
        if is_url(source):
            request = resolve_request(
                source, output_format, options, output_dir=output_dir or Path(".")
            )
        else:
            source_path = Path(source)
            if not source_path.is_file():
                raise click.BadParameter(f"File not found: {source}", param_hint="SOURCE")
            request = resolve_request(source_path, output_format, options)

        display_path_info("Output", request.destination_path, "🎞️")
        outcome = run_conversion(request)

        for failure in outcome.failures:
            click.echo(f"   ↪ {failure.strategy}: {failure.category.value}")
        click.echo(f"✅ Converted with {outcome.strategy}: {outcome.output_path}")

    except click.BadParameter:
        raise
    except KeyboardInterrupt:
        handle_keyboard_interrupt("Convert")
    except ConversionError as e:
        for attempt in e.attempts:
            click.echo(f"   • {attempt.strategy}: {attempt.category.value}", err=True)
        handle_generic_error("Convert", e)
    except Exception as e:
        handle_generic_error("Convert", e)
