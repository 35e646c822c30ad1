"""StickerLab - LINE sticker scraping and APNG conversion."""

__version__: str = "0.1.0"
__author__: str = "StickerLab Team"

from .config import ConversionOptions  # noqa: E402
from .decoder import decode  # noqa: E402
from .error_handling import ConversionError, StickerLabError  # noqa: E402
from .models import ConversionOutcome, ConversionRequest, OutputFormat  # noqa: E402
from .orchestrator import (  # noqa: E402
    FallbackOrchestrator,
    convert,
    convert_sibling,
    default_strategies,
)
from .request import resolve_request  # noqa: E402

__all__ = [
    "ConversionError",
    "ConversionOptions",
    "ConversionOutcome",
    "ConversionRequest",
    "FallbackOrchestrator",
    "OutputFormat",
    "StickerLabError",
    "__version__",
    "convert",
    "convert_sibling",
    "decode",
    "default_strategies",
    "resolve_request",
]
