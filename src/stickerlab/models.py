"""Core data structures shared by the decoder, encoders and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import ConversionOptions


class FailureCategory(Enum):
    """Why a single encoding strategy gave up."""

    TOOL_UNAVAILABLE = "tool_unavailable"
    TOOL_REJECTED_INPUT = "tool_rejected_input"
    DECODE_ERROR = "decode_error"
    FRAME_VALIDATION_ERROR = "frame_validation_error"
    ENCODE_ERROR = "encode_error"
    IO_ERROR = "io_error"


class OutputFormat(Enum):
    """Animation formats an APNG can be converted to."""

    GIF = "gif"
    WEBP = "webp"

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str | OutputFormat) -> OutputFormat:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower().lstrip("."))
        except ValueError:
            raise ValueError(
                f"Unsupported output format: {value!r} (expected one of "
                f"{', '.join(f.value for f in cls)})"
            ) from None


class StickerKind(Enum):
    STATIC = "STATIC"
    ANIMATED = "ANIMATED"


# ---------------------------------------------------------------------------
# Decoded image
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DecodedFrame:
    """One RGBA frame and how long it stays on screen."""

    pixels: bytes
    duration_ms: int


@dataclass(frozen=True, slots=True)
class DecodedImage:
    """All frames of an animated PNG, fully decoded into memory.

    The decoder guarantees ``len(frame.pixels) == width * height * 4`` for
    every frame. The dataclass itself does not, so encoders re-check each
    frame before using it.
    """

    width: int
    height: int
    frames: tuple[DecodedFrame, ...]

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def expected_frame_size(self) -> int:
        return self.width * self.height * 4

    @property
    def durations_ms(self) -> list[int]:
        return [frame.duration_ms for frame in self.frames]

    @property
    def total_duration_ms(self) -> int:
        return sum(self.durations_ms)


# ---------------------------------------------------------------------------
# Conversion requests and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConversionRequest:
    """One desired transcode: a source APNG and where the result goes."""

    destination_path: Path
    format: OutputFormat
    options: ConversionOptions
    source_path: Path | None = None
    source_url: str | None = None

    def __post_init__(self) -> None:
        if self.source_path is None and not self.source_url:
            raise ValueError("ConversionRequest needs a source_path or a source_url")


@dataclass(frozen=True, slots=True)
class Success:
    output_path: Path
    strategy: str

    ok = True


@dataclass(frozen=True, slots=True)
class Failure:
    category: FailureCategory
    message: str
    strategy: str

    ok = False


EncodeAttemptResult = Success | Failure


@dataclass(frozen=True)
class ConversionOutcome:
    """Result of a conversion that some strategy completed."""

    output_path: Path
    strategy: str
    failures: tuple[Failure, ...] = ()


# ---------------------------------------------------------------------------
# Scraped stickers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StickerRecord:
    """A sticker as listed on a store product page."""

    id: str
    url: str
    kind: StickerKind
    static_url: str | None = None
    fallback_static_url: str | None = None

    @property
    def is_animated(self) -> bool:
        return self.kind is StickerKind.ANIMATED

    def variant_urls(self) -> list[str]:
        """Primary, static and fallback URLs without blanks or repeats."""
        urls: list[str] = []
        for candidate in (self.url, self.static_url, self.fallback_static_url):
            if candidate and candidate not in urls:
                urls.append(candidate)
        return urls

    def to_dict(self) -> dict[str, str | None]:
        return {
            "id": self.id,
            "url": self.url,
            "type": self.kind.value,
            "staticUrl": self.static_url,
            "fallbackStaticUrl": self.fallback_static_url,
        }


@dataclass
class SavedVariant:
    id: str
    variant_url: str
    dir: str
    file: str
    conversions: list[str] = field(default_factory=list)
    conversion_errors: list[str] = field(default_factory=list)


@dataclass
class FailedSticker:
    id: str
    error: str


@dataclass
class PackSaveResult:
    base_dir: str
    saved: list[SavedVariant] = field(default_factory=list)
    failed: list[FailedSticker] = field(default_factory=list)
