"""Tests for spritesheet composition and sticker.json generation."""

import json
from unittest.mock import patch

import numpy as np
import pytest
from conftest import make_apng_bytes, make_decoded_image
from PIL import Image

from stickerlab.models import StickerKind, StickerRecord
from stickerlab.spritesheet import (
    build_sprite_for_pack,
    build_sticker_descriptor,
    compose_spritesheet,
    generate_sticker_from_apng,
    is_animated_record,
    join_public_url,
)

BASE = "https://raw.githubusercontent.com/godchu/blog-assets/refs/heads/main/"


class TestComposeSpritesheet:
    def test_dimensions_with_padding(self):
        image = make_decoded_image(count=10, width=4, height=3)
        sheet = compose_spritesheet(image, cols=4, padding=2)

        # 3 rows of 3px + 2 gaps, 4 cols of 4px + 3 gaps
        assert sheet.shape == (3 * 3 + 2 * 2, 4 * 4 + 3 * 2, 4)
        assert sheet.dtype == np.uint8

    def test_frames_placed_row_major(self):
        image = make_decoded_image(count=3, width=2, height=2)
        sheet = compose_spritesheet(image, cols=2, padding=1)

        assert tuple(sheet[0, 0]) == (255, 0, 0, 255)  # frame 0
        assert tuple(sheet[0, 3]) == (0, 255, 0, 255)  # frame 1
        assert tuple(sheet[3, 0]) == (0, 0, 255, 255)  # frame 2
        assert tuple(sheet[0, 2]) == (0, 0, 0, 0)  # padding
        assert tuple(sheet[3, 3]) == (0, 0, 0, 0)  # empty cell

    def test_invalid_cols(self):
        with pytest.raises(ValueError):
            compose_spritesheet(make_decoded_image(1), cols=0)


def test_descriptor_fields():
    image = make_decoded_image(count=10, width=8, height=6, duration_ms=120)
    descriptor = build_sticker_descriptor(
        image,
        cols=8,
        label="Bear waving",
        pack_name="Bears",
        sprite_url="https://x.test/sprite.png",
        thumb_url="https://x.test/thumb.png",
    )

    assert descriptor == {
        "frame_count": 10,
        "frame_rate": 120,
        "frames_per_column": 8,
        "frames_per_row": 2,
        "label": "Bear waving",
        "pack": {"name": "Bears"},
        "sprite_image": {"uri": "https://x.test/sprite.png"},
        "image": {"uri": "https://x.test/thumb.png", "width": 8, "height": 6},
    }


@pytest.mark.parametrize(
    "base, rel, expected",
    [
        (BASE, "line-packs-v2/p/1/a.png", BASE + "line-packs-v2/p/1/a.png"),
        ("https://x.test/", "/a//b.png", "https://x.test/a/b.png"),
        ("https://x.test", "/a.png", "https://x.test/a.png"),
    ],
)
def test_join_public_url(base, rel, expected):
    assert join_public_url(base, rel) == expected


def test_is_animated_record():
    assert is_animated_record(StickerRecord("1", "a.png", StickerKind.ANIMATED))
    assert is_animated_record(StickerRecord("1", "https://x.test/a.apng?v=2", StickerKind.STATIC))
    assert not is_animated_record(StickerRecord("1", "a.png", StickerKind.STATIC))


def test_generate_sticker_from_apng(tmp_path):
    apng = make_apng_bytes(count=3, size=(16, 16), durations=[100, 200, 300])

    with patch("stickerlab.spritesheet.fetch_bytes", return_value=apng):
        result = generate_sticker_from_apng(
            "https://cdn.test/sticker/1/animation.png",
            tmp_path / "out",
            base_public_url=BASE,
            sprite_rel_path="line-packs-v2/p/1/animation/spritesheet.png",
            thumb_rel_path="line-packs-v2/p/1/sticker/sticker.png",
            cols=2,
        )

    with Image.open(result.sprite_path) as sprite:
        assert sprite.size == (32, 32)
        assert sprite.mode == "RGBA"

    descriptor = json.loads(result.json_path.read_text(encoding="utf-8"))
    assert descriptor["frame_count"] == 3
    assert descriptor["frame_rate"] == 200
    assert descriptor["frames_per_row"] == 2
    assert descriptor["sprite_image"]["uri"] == BASE + "line-packs-v2/p/1/animation/spritesheet.png"


def test_build_sprite_for_pack(tmp_path):
    cdn = "https://stickershop.line-scdn.net/stickershop/v1/sticker"
    frames = [
        StickerRecord(
            "700",
            f"{cdn}/700/iPhone/animation@2x.png",
            StickerKind.ANIMATED,
            static_url=f"{cdn}/700/iPhone/sticker@2x.png",
        ),
        StickerRecord("701", f"{cdn}/701/android/animation.png", StickerKind.ANIMATED),
        StickerRecord("702", f"{cdn}/702/android/sticker.png", StickerKind.STATIC),
    ]

    with patch("stickerlab.spritesheet.fetch_bytes", return_value=make_apng_bytes(count=2)):
        result = build_sprite_for_pack("pack1", frames, base_public_url=BASE, root=tmp_path)

    assert result.count == 2
    first, second = result.results
    assert first.sticker_id == "700"
    assert first.apng_base == "animation_2x"
    assert first.sprite_path == tmp_path / "line-packs-v2/pack1/700/animation_2x/spritesheet.png"
    assert first.thumb_url == BASE + "line-packs-v2/pack1/700/sticker_2x/sticker_2x.png"
    # No static variant: thumbnail falls back to the APNG itself
    assert second.thumb_url == BASE + "line-packs-v2/pack1/701/animation/animation.png"


def test_build_sprite_for_pack_requires_frames(tmp_path):
    with pytest.raises(ValueError):
        build_sprite_for_pack("p", [], base_public_url=BASE, root=tmp_path)
