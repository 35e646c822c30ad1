"""Tests for classifying external tool stderr."""

import pytest

from stickerlab.external_engines import STDERR_DIAGNOSTICS, classify_stderr
from stickerlab.external_engines.diagnostics import is_rejected_input
from stickerlab.models import FailureCategory

# Captured from ffmpeg runs against real-world sticker files
FFMPEG_STDERR_SAMPLES = {
    "blend_op": (
        "[apng @ 0x55d5c8a3c640] Blend operation 1 with dispose operation 2 "
        "is not yet implemented. Update your FFmpeg version to the newest one "
        "from Git. If the problem still occurs, it means that your file has a "
        "feature which has not been implemented."
    ),
    "in_stream": "[apng @ 0x7f] Invalid in-stream tag (fdAT) at position 0",
    "pix_fmt": (
        "[apng @ 0x560] Could not find codec parameters for stream 0 (Video: apng, "
        "none): unspecified pixel format\nConsider increasing the value for the "
        "'analyzeduration' (0) and 'probesize' (5000000) options"
    ),
    "invalid_data": "sticker.png: Invalid data found when processing input",
}


@pytest.mark.parametrize("name", sorted(FFMPEG_STDERR_SAMPLES))
def test_known_refusals_are_rejected_input(name):
    assert (
        classify_stderr(FFMPEG_STDERR_SAMPLES[name]) is FailureCategory.TOOL_REJECTED_INPUT
    )


def test_matching_is_case_insensitive():
    assert is_rejected_input("INVALID DATA FOUND WHEN PROCESSING INPUT")


def test_unknown_stderr_is_encode_error():
    assert classify_stderr("Conversion failed!") is FailureCategory.ENCODE_ERROR
    assert classify_stderr("") is FailureCategory.ENCODE_ERROR
    assert classify_stderr(None) is FailureCategory.ENCODE_ERROR


def test_custom_default():
    assert (
        classify_stderr("disk full", default=FailureCategory.IO_ERROR)
        is FailureCategory.IO_ERROR
    )


def test_table_entries_are_lowercase():
    for needle, _ in STDERR_DIAGNOSTICS:
        assert needle == needle.lower()
