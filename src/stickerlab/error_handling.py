"""Standardized Error Handling Utilities

Provides the StickerLab exception hierarchy and consistent error handling
patterns. Every conversion failure maps onto a ``FailureCategory`` so the
fallback orchestrator can report which stage gave up.
"""

from __future__ import annotations

import logging
import traceback
from contextlib import contextmanager
from enum import Enum
from typing import Any

from .models import Failure, FailureCategory


class ErrorLevel(Enum):
    """Error severity levels for consistent logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class StickerLabError(Exception):
    """Base exception class for all StickerLab errors."""

    category: FailureCategory = FailureCategory.ENCODE_ERROR

    def __init__(
        self, message: str, cause: Exception | None = None, context: dict | None = None
    ):
        super().__init__(message)
        self.cause = cause
        self.context = context or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.cause:
            return f"{base_msg} (caused by: {self.cause})"
        return base_msg


class ToolUnavailableError(StickerLabError):
    """Raised when an external binary is not installed."""

    category = FailureCategory.TOOL_UNAVAILABLE


class ToolRejectedInputError(StickerLabError):
    """Raised when an external tool reports it cannot handle the input.

    Recoverable: the orchestrator moves on to the next strategy.
    """

    category = FailureCategory.TOOL_REJECTED_INPUT


class DecodeError(StickerLabError):
    """Raised when bytes are not a decodable PNG/APNG."""

    category = FailureCategory.DECODE_ERROR


class FrameValidationError(StickerLabError):
    """Raised when decoded frames are inconsistent or unusable."""

    category = FailureCategory.FRAME_VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        frame_index: int | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause=cause, context=context)
        self.frame_index = frame_index


class EncodeError(StickerLabError):
    """Raised when writing the output container fails."""

    category = FailureCategory.ENCODE_ERROR

    def __init__(
        self,
        message: str,
        frame_index: int | None = None,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause=cause, context=context)
        self.frame_index = frame_index


class StickerIOError(StickerLabError):
    """Raised when a destination directory or file cannot be written."""

    category = FailureCategory.IO_ERROR


class RetrievalError(StickerLabError):
    """Raised when a remote page or asset cannot be fetched."""

    category = FailureCategory.IO_ERROR


class ConversionError(StickerLabError):
    """Raised when every strategy for a conversion failed.

    ``category`` and the message come from the last strategy attempted;
    ``attempts`` keeps every recorded failure in order.
    """

    def __init__(
        self,
        message: str,
        category: FailureCategory,
        attempts: tuple[Failure, ...] = (),
        context: dict | None = None,
    ):
        super().__init__(message, context=context)
        self.category = category
        self.attempts = attempts


def handle_error(
    error: Exception,
    operation: str,
    error_type: type[StickerLabError] = EncodeError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
    reraise: bool = True,
) -> StickerLabError | None:
    """Standardized error handling with consistent logging and error transformation.

    Args:
        error: Original exception that occurred
        operation: Description of operation that failed
        error_type: Type of StickerLabError to raise
        level: Logging level for the error
        context: Additional context information
        logger: Logger to use (defaults to module logger)
        reraise: Whether to reraise the transformed exception

    Returns:
        The transformed error if reraise=False, otherwise None

    Raises:
        StickerLabError: Transformed error if reraise=True
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    message = f"Failed to {operation}: {error}"

    error_context = dict(context or {})
    error_context.update(
        {
            "operation": operation,
            "original_error_type": type(error).__name__,
        }
    )

    transformed_error = error_type(message, cause=error, context=error_context)

    log_message = f"🚨 {operation.capitalize()} failed: {error}"
    context_str = ", ".join(f"{k}={v}" for k, v in error_context.items())
    if context_str:
        log_message += f" (context: {context_str})"

    log_func = getattr(logger, level.value)
    log_func(log_message)

    if level in [ErrorLevel.ERROR, ErrorLevel.CRITICAL]:
        logger.debug(f"Traceback for {operation}: {traceback.format_exc()}")

    if reraise:
        raise transformed_error from error
    return transformed_error


@contextmanager
def error_context(
    operation: str,
    error_type: type[StickerLabError] = EncodeError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
) -> Any:
    """Context manager for standardized error handling.

    Usage:
        with error_context("write GIF container", EncodeError, context={"file": "a.gif"}):
            risky_operation()

    StickerLab errors pass through unchanged; anything else is wrapped in
    *error_type*.
    """
    try:
        yield
    except StickerLabError:
        raise
    except Exception as e:
        handle_error(e, operation, error_type, level, context, logger, reraise=True)


def log_warning_with_context(
    message: str, context: dict | None = None, logger: logging.Logger | None = None
) -> None:
    """Log a warning with standardized context formatting."""
    if logger is None:
        logger = logging.getLogger(__name__)

    warning_msg = f"⚠️  {message}"
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        warning_msg += f" (context: {context_str})"

    logger.warning(warning_msg)


def log_info_with_context(
    message: str, context: dict | None = None, logger: logging.Logger | None = None
) -> None:
    """Log an info message with standardized context formatting."""
    if logger is None:
        logger = logging.getLogger(__name__)

    info_msg = f"ℹ️  {message}"
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        info_msg += f" (context: {context_str})"

    logger.info(info_msg)


def clean_error_message(error_msg: str, max_length: int = 500) -> str:
    """Collapse a (possibly multi-line) error message into one short line.

    Used for summaries and CLI output where tool stderr would otherwise
    spill across many lines.
    """
    import re

    cleaned = str(error_msg)
    cleaned = cleaned.replace("\n", " ").replace("\r", " ").replace("\t", " ")
    cleaned = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()

    if len(cleaned) > max_length:
        cleaned = cleaned[: max_length - 3] + "..."

    return cleaned
