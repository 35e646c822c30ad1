"""Tests for stickerlab.io helpers."""

import json

import pytest

from stickerlab.io import atomic_write, save_json


def test_atomic_write_text(tmp_path):
    target = tmp_path / "nested" / "out.txt"
    with atomic_write(target) as fh:
        fh.write("héllo")

    assert target.read_text(encoding="utf-8") == "héllo"
    assert [p.name for p in target.parent.iterdir()] == ["out.txt"]


def test_atomic_write_binary(tmp_path):
    target = tmp_path / "out.bin"
    with atomic_write(target, "wb") as fh:
        fh.write(b"\x00\x01")
    assert target.read_bytes() == b"\x00\x01"


def test_atomic_write_failure_keeps_old_content(tmp_path):
    target = tmp_path / "out.txt"
    target.write_text("old", encoding="utf-8")

    with pytest.raises(RuntimeError):
        with atomic_write(target) as fh:
            fh.write("new")
            raise RuntimeError("interrupted")

    assert target.read_text(encoding="utf-8") == "old"
    assert [p.name for p in tmp_path.iterdir()] == ["out.txt"]


def test_save_json_writes_utf8(tmp_path):
    path = tmp_path / "sticker.json"
    save_json({"label": "くま", "frame_count": 3}, path)

    text = path.read_text(encoding="utf-8")
    assert json.loads(text) == {"label": "くま", "frame_count": 3}
    assert "くま" in text
    assert not list(tmp_path.glob("*.tmp_*"))

