"""Spritesheet and ``sticker.json`` generation for animated stickers.

Frames are laid out row-major on a grid ``cols`` wide::

    W = cols * frame_width  + (cols - 1) * padding
    H = rows * frame_height + (rows - 1) * padding

Padding pixels stay fully transparent.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import requests
from PIL import Image

from .config import (
    DEFAULT_HTTP_CONFIG,
    DEFAULT_PATH_CONFIG,
    DEFAULT_SPRITE_CONFIG,
    HttpConfig,
)
from .decoder import decode
from .error_handling import DecodeError, StickerIOError, error_context
from .frame_timing import average_frame_duration
from .io import atomic_write, save_json
from .layout import PackLayout, sanitize, url_parts
from .models import DecodedImage, StickerRecord
from .retrieval import fetch_bytes

logger = logging.getLogger(__name__)

_DUPLICATE_SLASHES = re.compile(r"([^:]/)/+")
_APNG_URL = re.compile(r"\.apng($|\?)", re.IGNORECASE)


@dataclass
class SpriteResult:
    descriptor: dict[str, Any]
    sprite_url: str
    thumb_url: str
    sprite_path: Path
    json_path: Path
    sticker_id: str = ""
    apng_base: str = ""


@dataclass
class PackSpriteResult:
    count: int = 0
    results: list[SpriteResult] = field(default_factory=list)


def join_public_url(base: str, relative_path: str) -> str:
    """Concatenate and collapse repeated slashes, except the ``://`` of the scheme."""
    return _DUPLICATE_SLASHES.sub(r"\1", base + relative_path)


def compose_spritesheet(
    image: DecodedImage,
    cols: int = DEFAULT_SPRITE_CONFIG.COLS,
    padding: int = DEFAULT_SPRITE_CONFIG.PADDING,
) -> np.ndarray:
    """Lay every frame onto one RGBA canvas; returns a ``(H, W, 4)`` uint8 array."""
    if cols < 1:
        raise ValueError(f"cols must be at least 1, got {cols}")
    if padding < 0:
        raise ValueError(f"padding must be non-negative, got {padding}")

    n = image.frame_count
    fw, fh = image.width, image.height
    if not n or not fw or not fh:
        raise DecodeError("Decoded image has no frames or zero size")

    rows = math.ceil(n / cols)
    width = cols * fw + (cols - 1) * padding
    height = rows * fh + (rows - 1) * padding
    sheet = np.zeros((height, width, 4), dtype=np.uint8)

    for k, frame in enumerate(image.frames):
        row, col = divmod(k, cols)
        x = col * (fw + padding)
        y = row * (fh + padding)
        sheet[y : y + fh, x : x + fw] = np.frombuffer(frame.pixels, dtype=np.uint8).reshape(
            fh, fw, 4
        )

    return sheet


def build_sticker_descriptor(
    image: DecodedImage,
    *,
    cols: int,
    label: str,
    pack_name: str,
    sprite_url: str,
    thumb_url: str,
) -> dict[str, Any]:
    return {
        "frame_count": image.frame_count,
        "frame_rate": average_frame_duration(image.durations_ms),
        "frames_per_column": cols,
        "frames_per_row": math.ceil(image.frame_count / cols),
        "label": label,
        "pack": {"name": pack_name},
        "sprite_image": {"uri": sprite_url},
        "image": {"uri": thumb_url, "width": image.width, "height": image.height},
    }


def generate_sticker_from_apng(
    apng_url: str,
    out_dir: Path,
    *,
    base_public_url: str,
    sprite_rel_path: str,
    thumb_rel_path: str,
    sprite_name: str = DEFAULT_SPRITE_CONFIG.SPRITE_NAME,
    json_name: str = DEFAULT_SPRITE_CONFIG.JSON_NAME,
    cols: int = DEFAULT_SPRITE_CONFIG.COLS,
    padding: int = DEFAULT_SPRITE_CONFIG.PADDING,
    label: str = DEFAULT_SPRITE_CONFIG.LABEL,
    pack_name: str = DEFAULT_SPRITE_CONFIG.PACK_NAME,
    http_config: HttpConfig = DEFAULT_HTTP_CONFIG,
    session: requests.Session | None = None,
) -> SpriteResult:
    """Fetch one APNG and write its spritesheet and descriptor into *out_dir*.

    Raises:
        RetrievalError: the APNG could not be fetched.
        DecodeError, FrameValidationError: the APNG is not usable.
        StickerIOError: output files could not be written.
    """
    if not base_public_url:
        raise ValueError("base_public_url is required")

    image = decode(fetch_bytes(apng_url, config=http_config, session=session))
    sheet = compose_spritesheet(image, cols, padding)

    sprite_path = out_dir / sprite_name
    json_path = out_dir / json_name
    sprite_url = join_public_url(base_public_url, sprite_rel_path)
    thumb_url = join_public_url(base_public_url, thumb_rel_path)

    descriptor = build_sticker_descriptor(
        image,
        cols=cols,
        label=label,
        pack_name=pack_name,
        sprite_url=sprite_url,
        thumb_url=thumb_url,
    )

    with error_context(
        "write spritesheet", StickerIOError, context={"out_dir": str(out_dir)}, logger=logger
    ):
        out_dir.mkdir(parents=True, exist_ok=True)
        with atomic_write(sprite_path, "wb") as fh:
            Image.fromarray(sheet, "RGBA").save(fh, format="PNG")
        save_json(descriptor, json_path)

    logger.info(
        f"Spritesheet {sheet.shape[1]}x{sheet.shape[0]} with {image.frame_count} frame(s) "
        f"-> {sprite_path}"
    )
    return SpriteResult(
        descriptor=descriptor,
        sprite_url=sprite_url,
        thumb_url=thumb_url,
        sprite_path=sprite_path,
        json_path=json_path,
    )


def is_animated_record(record: StickerRecord) -> bool:
    return record.is_animated or bool(_APNG_URL.search(record.url))


def build_sprite_for_pack(
    pack_id: str,
    frames: list[StickerRecord],
    *,
    base_public_url: str,
    root: Path = DEFAULT_PATH_CONFIG.OUTPUT_ROOT,
    sprite_name: str = DEFAULT_SPRITE_CONFIG.SPRITE_NAME,
    json_name: str = DEFAULT_SPRITE_CONFIG.JSON_NAME,
    cols: int = DEFAULT_SPRITE_CONFIG.COLS,
    padding: int = DEFAULT_SPRITE_CONFIG.PADDING,
    label: str = DEFAULT_SPRITE_CONFIG.LABEL,
    pack_name: str = DEFAULT_SPRITE_CONFIG.PACK_NAME,
    http_config: HttpConfig = DEFAULT_HTTP_CONFIG,
    session: requests.Session | None = None,
) -> PackSpriteResult:
    """Generate a spritesheet for every animated sticker of a pack.

    Output goes to ``<root>/line-packs-v2/<pack>/<sticker>/<apng-base>/``,
    next to where :func:`stickerlab.pack.save_sticker_pack` puts the APNG.
    The descriptor's thumbnail points at the downloaded static image, or the
    APNG itself when the sticker has no static variant.
    """
    if not pack_id:
        raise ValueError("pack_id is required")
    if not frames:
        raise ValueError("frames is empty")

    layout = PackLayout(root=root)
    result = PackSpriteResult()

    for record in filter(is_animated_record, frames):
        _, apng_base = url_parts(record.url)
        out_dir = layout.variant_dir(pack_id, record.id, record.url)
        sprite_rel_path = f"{layout.relative_variant_dir(pack_id, record.id, record.url)}/{sprite_name}"

        thumb_source = record.static_url or record.fallback_static_url or record.url
        thumb_rel_path = layout.relative_variant_path(pack_id, record.id, thumb_source)

        sprite = generate_sticker_from_apng(
            record.url,
            out_dir,
            base_public_url=base_public_url,
            sprite_rel_path=sprite_rel_path,
            thumb_rel_path=thumb_rel_path,
            sprite_name=sprite_name,
            json_name=json_name,
            cols=cols,
            padding=padding,
            label=label,
            pack_name=pack_name,
            http_config=http_config,
            session=session,
        )
        sprite.sticker_id = record.id
        sprite.apng_base = sanitize(apng_base)
        result.results.append(sprite)

    result.count = len(result.results)
    return result
