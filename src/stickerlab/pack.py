"""Bulk download of a scraped sticker pack.

Stickers are processed by a bounded thread pool; the variants of one
sticker are fetched sequentially by the same worker. Failures are collected
per sticker so one bad sticker never aborts the pack.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import requests

from .config import (
    DEFAULT_CONVERSION_OPTIONS,
    DEFAULT_DOWNLOAD_CONFIG,
    DEFAULT_ENGINE_CONFIG,
    DEFAULT_HTTP_CONFIG,
    DEFAULT_PATH_CONFIG,
    ConversionOptions,
    EngineConfig,
    HttpConfig,
)
from .error_handling import (
    ConversionError,
    StickerLabError,
    log_info_with_context,
    log_warning_with_context,
)
from .layout import PackLayout, sanitize
from .models import FailedSticker, OutputFormat, PackSaveResult, SavedVariant, StickerRecord
from .orchestrator import convert_sibling
from .retrieval import download_to

logger = logging.getLogger(__name__)

_ANIMATION_URL = re.compile(DEFAULT_DOWNLOAD_CONFIG.ANIMATION_URL_PATTERN, re.IGNORECASE)
_ALL_DIGITS = re.compile(r"^\d+$")


def is_animation_url(url: str) -> bool:
    return bool(_ANIMATION_URL.search(url))


def split_pack(records: Sequence[StickerRecord]) -> tuple[str, list[StickerRecord]]:
    """Return ``(pack_id, frames)`` for a scraped listing.

    The store lists the pack's main image first, so its id doubles as the
    pack id. Actual stickers are the records with purely numeric ids.
    """
    if not records:
        raise ValueError("Cannot split an empty sticker listing")
    frames = [record for record in records if _ALL_DIGITS.match(record.id)]
    return records[0].id, frames


def _convert_variant(
    source: Path,
    root: Path,
    formats: Sequence[OutputFormat],
    options: ConversionOptions,
    engine_config: EngineConfig,
    saved: SavedVariant,
) -> None:
    for output_format in formats:
        try:
            outcome = convert_sibling(source, output_format, options, engine_config=engine_config)
        except ConversionError as e:
            log_warning_with_context(
                f"Conversion to {output_format.value} failed for {source}",
                {"category": e.category.value, "error": e},
                logger,
            )
            saved.conversion_errors.append(f"{output_format.value}: {e}")
            continue
        saved.conversions.append(outcome.output_path.relative_to(root).as_posix())


def _save_one(
    pack_id: str,
    sticker: StickerRecord,
    *,
    layout: PackLayout,
    http_config: HttpConfig,
    engine_config: EngineConfig,
    convert_formats: Sequence[OutputFormat],
    options: ConversionOptions,
    session: requests.Session | None,
) -> list[SavedVariant]:
    variants: list[SavedVariant] = []
    for url in sticker.variant_urls():
        directory = layout.variant_dir(pack_id, sticker.id, url)
        path = download_to(url, directory, config=http_config, session=session)

        saved = SavedVariant(
            id=sticker.id,
            variant_url=url,
            dir=layout.relative_variant_dir(pack_id, sticker.id, url),
            file=layout.relative_variant_path(pack_id, sticker.id, url),
        )
        if convert_formats and is_animation_url(url):
            _convert_variant(path, layout.root, convert_formats, options, engine_config, saved)
        variants.append(saved)
    return variants


def save_sticker_pack(
    pack_id: str,
    stickers: Sequence[StickerRecord],
    *,
    layout: PackLayout | None = None,
    http_config: HttpConfig | None = None,
    engine_config: EngineConfig | None = None,
    convert_formats: Sequence[OutputFormat | str] = (),
    options: ConversionOptions | None = None,
    workers: int = DEFAULT_DOWNLOAD_CONFIG.WORKERS,
    session: requests.Session | None = None,
) -> PackSaveResult:
    """Download every variant of every sticker into the pack layout.

    ``*animation.png`` variants are additionally converted to each format in
    *convert_formats*; conversion failures are recorded on the variant and
    do not fail the sticker. Results keep the input sticker order.
    """
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")

    layout = layout or PackLayout()
    http_config = http_config or DEFAULT_HTTP_CONFIG
    engine_config = engine_config or DEFAULT_ENGINE_CONFIG
    options = options or DEFAULT_CONVERSION_OPTIONS
    formats = [OutputFormat.parse(f) for f in convert_formats]

    layout.pack_dir(pack_id).mkdir(parents=True, exist_ok=True)

    per_sticker: list[list[SavedVariant] | FailedSticker | None] = [None] * len(stickers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(
                _save_one,
                pack_id,
                sticker,
                layout=layout,
                http_config=http_config,
                engine_config=engine_config,
                convert_formats=formats,
                options=options,
                session=session,
            ): index
            for index, sticker in enumerate(stickers)
        }

        for future in as_completed(futures):
            index = futures[future]
            sticker = stickers[index]
            try:
                per_sticker[index] = future.result()
            except (StickerLabError, OSError) as e:
                logger.error(f"Sticker {sticker.id} failed: {e}")
                per_sticker[index] = FailedSticker(id=sticker.id, error=str(e))

    result = PackSaveResult(base_dir=layout.relative_pack_dir(pack_id))
    for entry in per_sticker:
        if isinstance(entry, FailedSticker):
            result.failed.append(entry)
        elif entry is not None:
            result.saved.extend(entry)

    log_info_with_context(
        f"Pack {pack_id} saved",
        {"files": len(result.saved), "failed": len(result.failed)},
        logger,
    )
    return result


def best_url(sticker: StickerRecord) -> str | None:
    return sticker.url or sticker.static_url or sticker.fallback_static_url


def save_sticker_pack_simple(
    pack_id: str,
    stickers: Sequence[StickerRecord],
    *,
    root: Path = DEFAULT_PATH_CONFIG.OUTPUT_ROOT,
    pack_dir_name: str = DEFAULT_PATH_CONFIG.SIMPLE_PACK_DIR_NAME,
    http_config: HttpConfig | None = None,
    session: requests.Session | None = None,
) -> PackSaveResult:
    """Save one file per sticker as ``<pack_dir_name>/<pack>/<id>.png``.

    APNGs keep the ``.png`` extension. Runs sequentially.
    """
    http_config = http_config or DEFAULT_HTTP_CONFIG
    relative_dir = posixpath.join(pack_dir_name, sanitize(pack_id))
    directory = root / relative_dir
    directory.mkdir(parents=True, exist_ok=True)

    result = PackSaveResult(base_dir=relative_dir)
    for sticker in stickers:
        url = best_url(sticker)
        if not url:
            result.failed.append(FailedSticker(id=sticker.id, error="No URL for sticker"))
            continue

        filename = f"{sanitize(sticker.id)}.png"
        try:
            download_to(url, directory, config=http_config, session=session, filename=filename)
        except StickerLabError as e:
            logger.error(f"Sticker {sticker.id} failed: {e}")
            result.failed.append(FailedSticker(id=sticker.id, error=str(e)))
            continue

        result.saved.append(
            SavedVariant(
                id=sticker.id,
                variant_url=url,
                dir=relative_dir,
                file=posixpath.join(relative_dir, filename),
            )
        )

    return result
