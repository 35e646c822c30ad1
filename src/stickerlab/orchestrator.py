"""Fallback orchestration across conversion strategies.

A conversion runs each strategy of an ordered list exactly once until one
succeeds::

    GIF:  ffmpeg-palette -> pillow-gif -> imagemagick
    WebP: pillow-webp

Every failure is logged and kept on the outcome; when all strategies fail a
``ConversionError`` carries the last category plus the full attempt list.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import requests

from .config import (
    DEFAULT_CONVERSION_OPTIONS,
    DEFAULT_ENGINE_CONFIG,
    DEFAULT_HTTP_CONFIG,
    ConversionOptions,
    EngineConfig,
    HttpConfig,
)
from .encoders import (
    FFmpegPaletteEncoder,
    ImageMagickGifEncoder,
    PillowGifEncoder,
    PillowWebpEncoder,
)
from .error_handling import ConversionError, StickerLabError, log_warning_with_context
from .models import (
    ConversionOutcome,
    ConversionRequest,
    Failure,
    FailureCategory,
    OutputFormat,
    Success,
)
from .request import resolve_request
from .retrieval import download_to
from .tool_interfaces import Encoder

logger = logging.getLogger(__name__)


def default_strategies(
    output_format: OutputFormat | str,
    engine_config: EngineConfig | None = None,
) -> list[Encoder]:
    """Ordered strategy list for *output_format*."""
    output_format = OutputFormat.parse(output_format)
    engine_config = engine_config or DEFAULT_ENGINE_CONFIG

    if output_format is OutputFormat.GIF:
        return [
            FFmpegPaletteEncoder(engine_config),
            PillowGifEncoder(),
            ImageMagickGifEncoder(engine_config),
        ]
    return [PillowWebpEncoder()]


class FallbackOrchestrator:
    """Try strategies in order; first success wins."""

    def __init__(self, strategies: Sequence[Encoder]):
        if not strategies:
            raise ValueError("FallbackOrchestrator needs at least one strategy")
        self.strategies = list(strategies)

    def run(self, request: ConversionRequest) -> ConversionOutcome:
        """Convert *request* or raise ``ConversionError``.

        The destination's parent directory is created before any strategy
        runs; if that fails no strategy is attempted.
        """
        destination_dir = request.destination_path.parent
        try:
            destination_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            failure = Failure(
                category=FailureCategory.IO_ERROR,
                message=f"Cannot create output directory {destination_dir}: {e}",
                strategy="orchestrator",
            )
            raise ConversionError(
                failure.message, category=failure.category, attempts=(failure,)
            ) from e

        failures: list[Failure] = []
        for strategy in self.strategies:
            result = self._attempt(strategy, request)

            if isinstance(result, Success):
                logger.info(
                    f"Converted {request.source_path or request.source_url} -> "
                    f"{result.output_path} with {result.strategy}"
                )
                return ConversionOutcome(
                    output_path=result.output_path,
                    strategy=result.strategy,
                    failures=tuple(failures),
                )

            failures.append(result)
            log_warning_with_context(
                f"{result.strategy} failed, trying next strategy",
                {"category": result.category.value, "error": result.message},
                logger,
            )

        last = failures[-1]
        raise ConversionError(
            f"All strategies failed; last ({last.strategy}): {last.message}",
            category=last.category,
            attempts=tuple(failures),
            context={"destination": str(request.destination_path)},
        )

    @staticmethod
    def _attempt(strategy: Encoder, request: ConversionRequest) -> Success | Failure:
        if not strategy.available():
            return Failure(
                category=FailureCategory.TOOL_UNAVAILABLE,
                message=f"{strategy.NAME} is not available on this system",
                strategy=strategy.NAME,
            )
        return strategy.attempt(request)


def _materialise_source(
    request: ConversionRequest,
    http_config: HttpConfig,
    session: requests.Session | None,
) -> None:
    if request.source_path is not None and request.source_path.exists():
        return
    if not request.source_url:
        return

    target_dir = (request.source_path or request.destination_path).parent
    filename = request.source_path.name if request.source_path is not None else None
    download_to(
        request.source_url,
        target_dir,
        config=http_config,
        session=session,
        filename=filename,
    )


def convert(
    request: ConversionRequest,
    *,
    strategies: Sequence[Encoder] | None = None,
    engine_config: EngineConfig | None = None,
    http_config: HttpConfig | None = None,
    session: requests.Session | None = None,
) -> ConversionOutcome:
    """Run one conversion, downloading a URL source first when needed.

    Raises:
        ConversionError: the source could not be fetched or every strategy
            failed.
    """
    try:
        _materialise_source(request, http_config or DEFAULT_HTTP_CONFIG, session)
    except StickerLabError as e:
        failure = Failure(category=e.category, message=str(e), strategy="retrieval")
        raise ConversionError(
            f"Could not retrieve source: {e}", category=e.category, attempts=(failure,)
        ) from e

    if strategies is None:
        strategies = default_strategies(request.format, engine_config)
    return FallbackOrchestrator(strategies).run(request)


def convert_sibling(
    source: str | Path,
    output_format: OutputFormat | str,
    options: ConversionOptions | None = None,
    **kwargs,
) -> ConversionOutcome:
    """Convert a local APNG into the same directory with a new extension."""
    request = resolve_request(Path(source), output_format, options or DEFAULT_CONVERSION_OPTIONS)
    return convert(request, **kwargs)
