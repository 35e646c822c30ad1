from __future__ import annotations

"""Common interface for the interchangeable APNG conversion strategies.

Each strategy (FFmpeg, Pillow, ImageMagick, ...) is a small object exposing
``attempt(request)``. The orchestrator only ever talks to this interface, so
strategies can be added, reordered or replaced by test doubles without
touching the fallback loop.
"""

import logging
from abc import ABC, abstractmethod

from .error_handling import StickerLabError
from .models import (
    ConversionRequest,
    EncodeAttemptResult,
    Failure,
    FailureCategory,
    OutputFormat,
    Success,
)

logger = logging.getLogger(__name__)


class Encoder(ABC):
    """One way of turning a source APNG into the requested output file.

    Sub-classes implement :meth:`encode` and signal failure by raising a
    :class:`StickerLabError` subclass. :meth:`attempt` turns those into
    ``Failure`` values so a failing strategy never escapes the fallback loop.
    Implementations must not leave a partially written destination behind.
    """

    #: Human-readable name, e.g. ``"ffmpeg-palette"``
    NAME: str = "encoder"

    #: Output format this strategy produces
    FORMAT: OutputFormat = OutputFormat.GIF

    @abstractmethod
    def encode(self, request: ConversionRequest) -> None:  # pragma: no cover - abstract
        """Write ``request.destination_path`` or raise ``StickerLabError``."""

    def available(self) -> bool:
        """``True`` if the strategy can run on this system at all."""
        return True

    def attempt(self, request: ConversionRequest) -> EncodeAttemptResult:
        """Run :meth:`encode` once and report the outcome as a value."""
        try:
            self.encode(request)
        except StickerLabError as e:
            return Failure(category=e.category, message=str(e), strategy=self.NAME)
        except OSError as e:
            return Failure(
                category=FailureCategory.IO_ERROR,
                message=f"{type(e).__name__}: {e}",
                strategy=self.NAME,
            )

        logger.debug(f"{self.NAME} wrote {request.destination_path}")
        return Success(output_path=request.destination_path, strategy=self.NAME)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
