"""LINE Store product page scraping.

The store embeds each sticker's URLs as JSON in a ``data-preview``
attribute. Older page layouts only have plain ``<img>`` tags, which are used
as a fallback when no preview is found.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import requests
from bs4 import BeautifulSoup, Tag

from .config import DEFAULT_HTTP_CONFIG, HttpConfig
from .models import StickerKind, StickerRecord
from .retrieval import fetch_text

logger = logging.getLogger(__name__)

FALLBACK_IMG_SELECTOR = "li img, .mdCMN09Li img, .mdCMN09Image img, .FnStickerList img"

_BRACKETED = re.compile(r"\[.*?\]")
_STICKER_ID_IN_URL = re.compile(r"/sticker/(\d+)/")
_ANIMATION_IN_URL = re.compile(r"animation", re.IGNORECASE)


def clean_url(raw: str | None) -> str:
    """Strip ``[label]`` segments and keep the last whitespace-separated token.

    Handles pasted text like ``"[Sale] Cute Bears https://store.line.me/..."``.
    """
    pieces = _BRACKETED.sub("", raw or "").split()
    return pieces[-1] if pieces else ""


def fetch_html(
    url: str,
    *,
    config: HttpConfig = DEFAULT_HTTP_CONFIG,
    session: requests.Session | None = None,
) -> str:
    return fetch_text(url, config=config, session=session)


def parse_preview_attr(attr: str | None) -> dict[str, Any] | None:
    """Decode a ``data-preview`` value; ``None`` when empty or not JSON."""
    if not attr:
        return None
    unescaped = attr.replace("&quot;", '"').replace("&#39;", "'").replace("&amp;", "&")
    try:
        preview = json.loads(unescaped)
    except json.JSONDecodeError:
        return None
    return preview if isinstance(preview, dict) else None


def to_sticker_info(preview: dict[str, Any]) -> StickerRecord | None:
    raw_id = preview.get("id")
    if raw_id is None:
        raw_id = preview.get("stickerId")
    sticker_id = str(raw_id if raw_id is not None else "").strip()

    animation_url = preview.get("animationUrl")
    url = animation_url or preview.get("staticUrl") or preview.get("url")
    if not sticker_id or not url:
        return None

    return StickerRecord(
        id=sticker_id,
        url=url,
        kind=StickerKind.ANIMATED if animation_url else StickerKind.STATIC,
        static_url=preview.get("staticUrl") or None,
        fallback_static_url=preview.get("fallbackStaticUrl") or None,
    )


def from_img(img: Tag) -> StickerRecord | None:
    """Build a record from a bare ``<img>``; the id comes from the CDN path."""
    url = img.get("data-src") or img.get("src") or img.get("data-original") or ""
    if not url:
        return None

    match = _STICKER_ID_IN_URL.search(url)
    if not match:
        return None

    animated = bool(_ANIMATION_IN_URL.search(url))
    return StickerRecord(
        id=match.group(1),
        url=url,
        kind=StickerKind.ANIMATED if animated else StickerKind.STATIC,
    )


def dedupe_stickers(records: list[StickerRecord]) -> list[StickerRecord]:
    """One record per id in first-seen order; an ANIMATED record replaces a STATIC one."""
    by_id: dict[str, StickerRecord] = {}
    for record in records:
        previous = by_id.get(record.id)
        if previous is None or (not previous.is_animated and record.is_animated):
            by_id[record.id] = record
    return list(by_id.values())


def parse_store_page(html: str) -> list[StickerRecord]:
    soup = BeautifulSoup(html, "html.parser")

    records: list[StickerRecord] = []
    for element in soup.select("[data-preview]"):
        preview = parse_preview_attr(element.get("data-preview"))
        record = to_sticker_info(preview) if preview else None
        if record:
            records.append(record)

    if not records:
        logger.debug("No data-preview elements, falling back to <img> tags")
        for img in soup.select(FALLBACK_IMG_SELECTOR):
            record = from_img(img)
            if record:
                records.append(record)

    return dedupe_stickers(records)


def get_sticker_info(
    store_url: str,
    *,
    config: HttpConfig = DEFAULT_HTTP_CONFIG,
    session: requests.Session | None = None,
) -> list[StickerRecord]:
    """Scrape every sticker on a store product page.

    Returns an empty list when *store_url* cleans down to nothing.

    Raises:
        RetrievalError: the page could not be fetched.
    """
    cleaned = clean_url(store_url)
    if not cleaned:
        return []

    records = parse_store_page(fetch_html(cleaned, config=config, session=session))
    logger.info(f"Found {len(records)} sticker(s) on {cleaned}")
    return records
