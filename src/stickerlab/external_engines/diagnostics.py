"""Classification of external tool stderr into failure categories.

FFmpeg's APNG demuxer refuses a fair share of real-world sticker files
(odd blend/dispose combinations, truncated fdAT chunks, unusual pixel
formats). Those refusals are expected and mean "try the next strategy";
any other failure is an ordinary encode error.

The mapping is kept as data so it can be tested against captured stderr
without running the tool.
"""

from __future__ import annotations

from ..models import FailureCategory

# Lower-cased substring -> category. First match wins.
STDERR_DIAGNOSTICS: tuple[tuple[str, FailureCategory], ...] = (
    ("not yet implemented", FailureCategory.TOOL_REJECTED_INPUT),
    ("in-stream tag", FailureCategory.TOOL_REJECTED_INPUT),
    ("unspecified pixel format", FailureCategory.TOOL_REJECTED_INPUT),
    ("could not find codec parameters", FailureCategory.TOOL_REJECTED_INPUT),
    ("invalid data found", FailureCategory.TOOL_REJECTED_INPUT),
)


def classify_stderr(
    stderr: str | None,
    default: FailureCategory = FailureCategory.ENCODE_ERROR,
) -> FailureCategory:
    """Return the category for a failed tool run given its stderr text."""
    if not stderr:
        return default

    haystack = stderr.lower()
    for needle, category in STDERR_DIAGNOSTICS:
        if needle in haystack:
            return category
    return default


def is_rejected_input(stderr: str | None) -> bool:
    return classify_stderr(stderr) is FailureCategory.TOOL_REJECTED_INPUT
