"""Configuration settings for StickerLab."""

import os
from dataclasses import dataclass
from pathlib import Path

# Decoder timing constants (milliseconds unless noted)
MIN_FRAME_DURATION_MS = 10
DEFAULT_STATIC_DURATION_MS = 100
DEFAULT_DELAY_DENOMINATOR = 100  # APNG delay_den of 0 means 1/100 s units

VALID_FRAME_ERROR_POLICIES = ("fail", "skip")


@dataclass(frozen=True)
class ConversionOptions:
    """Options bag carried by every conversion request."""

    # 0 = loop forever
    loop_count: int = 0

    # Optional clamp applied to every frame duration before unit conversion
    max_frame_duration_ms: int | None = None

    # "fail" aborts the in-process encoders on a malformed frame, "skip" drops it
    on_frame_error: str = "fail"

    # Palette size bound for GIF output
    color_count: int = 256

    # Only honoured by the tolerant ImageMagick converter
    background_color: str | None = None

    # Alpha values below this become fully transparent (GIF has 1-bit alpha)
    transparency_threshold: int | None = None

    # Animated WebP encoder settings
    webp_quality: int = 90
    webp_method: int = 4
    webp_lossless: bool = False

    def __post_init__(self) -> None:
        if self.loop_count < 0:
            raise ValueError(f"loop_count must be >= 0, got {self.loop_count}")

        if self.max_frame_duration_ms is not None and self.max_frame_duration_ms <= 0:
            raise ValueError(
                f"max_frame_duration_ms must be positive, got {self.max_frame_duration_ms}"
            )

        if self.on_frame_error not in VALID_FRAME_ERROR_POLICIES:
            raise ValueError(
                f"on_frame_error must be one of {VALID_FRAME_ERROR_POLICIES}, "
                f"got {self.on_frame_error!r}"
            )

        if not 2 <= self.color_count <= 256:
            raise ValueError(f"color_count must be between 2 and 256, got {self.color_count}")

        if self.transparency_threshold is not None and not (
            0 <= self.transparency_threshold <= 255
        ):
            raise ValueError(
                f"transparency_threshold must be between 0 and 255, got {self.transparency_threshold}"
            )

        if not 0 <= self.webp_quality <= 100:
            raise ValueError(f"webp_quality must be between 0 and 100, got {self.webp_quality}")

        if not 0 <= self.webp_method <= 6:
            raise ValueError(f"webp_method must be between 0 and 6, got {self.webp_method}")

    @property
    def skip_bad_frames(self) -> bool:
        return self.on_frame_error == "skip"


@dataclass
class EngineConfig:
    """Configuration for external tool paths with environment variable overrides."""

    # Path to FFmpeg executable.
    # Usually "ffmpeg" works if installed via package manager
    # Override with: STICKERLAB_FFMPEG_PATH
    FFMPEG_PATH: str = "ffmpeg"

    # Path to ImageMagick executable (magick or convert).
    # On most systems, "magick" should work (ImageMagick 7.x)
    # Override with: STICKERLAB_IMAGEMAGICK_PATH
    IMAGEMAGICK_PATH: str = "magick"

    # Reserved name of the intermediate palette written next to the output.
    # Two ffmpeg conversions into the same directory share this file.
    PALETTE_FILENAME: str = "___palette.tmp.png"

    # ffmpeg probe limits for large APNGs
    FFMPEG_PROBESIZE: str = "50M"
    FFMPEG_ANALYZEDURATION: str = "50M"

    # Hard timeout (seconds) for one external tool invocation, None = no limit
    TOOL_TIMEOUT_SECONDS: int | None = None

    def __post_init__(self) -> None:
        """Apply environment variable overrides after initialization."""
        env_overrides = {
            "FFMPEG_PATH": "STICKERLAB_FFMPEG_PATH",
            "IMAGEMAGICK_PATH": "STICKERLAB_IMAGEMAGICK_PATH",
        }

        for attr_name, env_var_name in env_overrides.items():
            env_value = os.getenv(env_var_name)
            if env_value:
                setattr(self, attr_name, env_value)

        if self.TOOL_TIMEOUT_SECONDS is not None and self.TOOL_TIMEOUT_SECONDS <= 0:
            raise ValueError(
                f"TOOL_TIMEOUT_SECONDS must be positive, got {self.TOOL_TIMEOUT_SECONDS}"
            )


@dataclass
class HttpConfig:
    """Request headers and limits for store pages and CDN assets."""

    # LINE blocks default bot user agents
    # Override with: STICKERLAB_USER_AGENT
    USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome Safari"
    )
    ACCEPT: str = "image/apng,image/png,image/*;q=0.8,*/*;q=0.5"
    REFERER: str | None = "https://store.line.me/"
    TIMEOUT_SECONDS: float = 30.0

    def __post_init__(self) -> None:
        env_value = os.getenv("STICKERLAB_USER_AGENT")
        if env_value:
            self.USER_AGENT = env_value

        if self.TIMEOUT_SECONDS <= 0:
            raise ValueError(f"TIMEOUT_SECONDS must be positive, got {self.TIMEOUT_SECONDS}")

    def headers(self, *, for_asset: bool = True) -> dict[str, str]:
        """Headers for one request; page fetches only send the user agent."""
        headers = {"user-agent": self.USER_AGENT}
        if for_asset:
            headers["accept"] = self.ACCEPT
            if self.REFERER:
                headers["referer"] = self.REFERER
        return headers


@dataclass
class PathConfig:
    """Configuration for output directories."""

    OUTPUT_ROOT: Path = Path(".")
    PACK_DIR_NAME: str = "line-packs-v2"
    SIMPLE_PACK_DIR_NAME: str = "line-packs-simple"


@dataclass
class SpriteConfig:
    """Defaults for spritesheet and sticker.json generation."""

    COLS: int = 8
    PADDING: int = 0
    SPRITE_NAME: str = "spritesheet.png"
    JSON_NAME: str = "sticker.json"
    LABEL: str = "Sticker animation"
    PACK_NAME: str = "My Sticker Pack"
    BASE_PUBLIC_URL: str = "https://raw.githubusercontent.com/godchu/blog-assets/refs/heads/main/"

    def __post_init__(self) -> None:
        if self.COLS < 1:
            raise ValueError(f"COLS must be at least 1, got {self.COLS}")
        if self.PADDING < 0:
            raise ValueError(f"PADDING must be non-negative, got {self.PADDING}")


@dataclass
class DownloadConfig:
    """Bulk pack download settings."""

    WORKERS: int = 6

    # Variants whose URL matches this are converted after download
    ANIMATION_URL_PATTERN: str = r"animation\.png(?:$|\?)"

    def __post_init__(self) -> None:
        if self.WORKERS < 1:
            raise ValueError(f"WORKERS must be at least 1, got {self.WORKERS}")


# Default configuration instances
DEFAULT_CONVERSION_OPTIONS = ConversionOptions()
DEFAULT_ENGINE_CONFIG = EngineConfig()
DEFAULT_HTTP_CONFIG = HttpConfig()
DEFAULT_PATH_CONFIG = PathConfig()
DEFAULT_SPRITE_CONFIG = SpriteConfig()
DEFAULT_DOWNLOAD_CONFIG = DownloadConfig()
