"""Fetching remote store pages and CDN assets over HTTP."""

from __future__ import annotations

import logging
from pathlib import Path

import requests

from .config import DEFAULT_HTTP_CONFIG, HttpConfig
from .error_handling import RetrievalError, StickerIOError
from .io import atomic_write
from .layout import file_name_from_url

logger = logging.getLogger(__name__)


def _get(
    url: str,
    *,
    config: HttpConfig,
    session: requests.Session | None,
    for_asset: bool,
) -> requests.Response:
    getter = session.get if session is not None else requests.get
    try:
        response = getter(
            url,
            headers=config.headers(for_asset=for_asset),
            timeout=config.TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise RetrievalError(f"GET {url} failed", cause=e, context={"url": url}) from e
    return response


def fetch_text(
    url: str,
    *,
    config: HttpConfig = DEFAULT_HTTP_CONFIG,
    session: requests.Session | None = None,
) -> str:
    """Fetch an HTML page, sending only the configured user agent."""
    return _get(url, config=config, session=session, for_asset=False).text


def fetch_bytes(
    url: str,
    *,
    config: HttpConfig = DEFAULT_HTTP_CONFIG,
    session: requests.Session | None = None,
) -> bytes:
    """Fetch an asset body in full. One attempt, no retries.

    Raises:
        RetrievalError: transport failure or a non-2xx response.
    """
    response = _get(url, config=config, session=session, for_asset=True)
    logger.debug(f"Fetched {len(response.content)} bytes from {url}")
    return response.content


def download_to(
    url: str,
    directory: Path,
    *,
    config: HttpConfig = DEFAULT_HTTP_CONFIG,
    session: requests.Session | None = None,
    filename: str | None = None,
) -> Path:
    """Download *url* into *directory* and return the written path.

    The file name defaults to the sanitised last segment of the URL path.
    """
    filename = filename or file_name_from_url(url)
    if not filename:
        raise RetrievalError(f"Cannot derive a filename from URL: {url}")

    data = fetch_bytes(url, config=config, session=session)

    target = directory / filename
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with atomic_write(target, "wb") as fh:
            fh.write(data)
    except OSError as e:
        raise StickerIOError(f"Could not write {target}", cause=e) from e

    return target
