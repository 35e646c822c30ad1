"""Tests for the StickerLab error hierarchy and helpers."""

import logging

import pytest

from stickerlab.error_handling import (
    ConversionError,
    DecodeError,
    EncodeError,
    ErrorLevel,
    FrameValidationError,
    RetrievalError,
    StickerIOError,
    StickerLabError,
    ToolRejectedInputError,
    ToolUnavailableError,
    clean_error_message,
    error_context,
    handle_error,
    log_warning_with_context,
)
from stickerlab.models import Failure, FailureCategory


@pytest.mark.parametrize(
    "error_type, category",
    [
        (ToolUnavailableError, FailureCategory.TOOL_UNAVAILABLE),
        (ToolRejectedInputError, FailureCategory.TOOL_REJECTED_INPUT),
        (DecodeError, FailureCategory.DECODE_ERROR),
        (FrameValidationError, FailureCategory.FRAME_VALIDATION_ERROR),
        (EncodeError, FailureCategory.ENCODE_ERROR),
        (StickerIOError, FailureCategory.IO_ERROR),
        (RetrievalError, FailureCategory.IO_ERROR),
    ],
)
def test_categories(error_type, category):
    assert error_type("x").category is category


def test_str_includes_cause():
    error = DecodeError("bad png", cause=ValueError("truncated"))
    assert str(error) == "bad png (caused by: truncated)"


def test_frame_index_is_kept():
    assert FrameValidationError("f", frame_index=4).frame_index == 4
    assert EncodeError("e", frame_index=2).frame_index == 2


def test_conversion_error_carries_attempts():
    attempts = (Failure(FailureCategory.DECODE_ERROR, "bad", "pillow-gif"),)
    error = ConversionError("all failed", category=FailureCategory.DECODE_ERROR, attempts=attempts)

    assert error.category is FailureCategory.DECODE_ERROR
    assert error.attempts == attempts
    # Instance category does not leak into the class
    assert ConversionError.category is FailureCategory.ENCODE_ERROR


def test_handle_error_transforms_and_logs(caplog):
    with caplog.at_level(logging.ERROR):
        with pytest.raises(StickerIOError) as exc_info:
            handle_error(OSError("disk full"), "write sprite", StickerIOError, context={"f": "a"})

    assert "Failed to write sprite" in str(exc_info.value)
    assert exc_info.value.context["original_error_type"] == "OSError"
    assert "Write sprite failed" in caplog.text


def test_handle_error_without_reraise():
    error = handle_error(
        ValueError("x"), "parse", DecodeError, level=ErrorLevel.WARNING, reraise=False
    )
    assert isinstance(error, DecodeError)


def test_error_context_wraps_foreign_errors():
    with pytest.raises(EncodeError):
        with error_context("encode gif"):
            raise ValueError("boom")


def test_error_context_passes_stickerlab_errors_through():
    with pytest.raises(DecodeError):
        with error_context("encode gif", StickerIOError):
            raise DecodeError("not a png")


def test_log_warning_with_context(caplog):
    with caplog.at_level(logging.WARNING):
        log_warning_with_context("skipping frame 2", {"bytes": 10})
    assert "skipping frame 2 (context: bytes=10)" in caplog.text


def test_clean_error_message():
    assert clean_error_message("line one\nline\ttwo  ") == "line one line two"
    assert len(clean_error_message("x" * 600)) == 500
    assert isinstance(StickerLabError("a"), Exception)
