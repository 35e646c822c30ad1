"""Frame duration handling shared by the decoder and the encoders.

APNG stores each frame delay as a ``delay_num / delay_den`` fraction of a
second, GIF stores hundredths of a second and WebP stores milliseconds.
Everything inside StickerLab is kept in whole milliseconds and converted at
the edges.

Order of operations for an output frame:
1. floor to ``MIN_FRAME_DURATION_MS`` (no zero-length frames)
2. clamp to ``max_frame_duration_ms`` if one is configured
3. convert to the target unit (GIF: centiseconds, at least 1)
"""

import math

from .config import (
    DEFAULT_DELAY_DENOMINATOR,
    DEFAULT_STATIC_DURATION_MS,
    MIN_FRAME_DURATION_MS,
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def delay_fraction_to_ms(delay_num: int | None, delay_den: int | None) -> int | None:
    """Convert an APNG ``fcTL`` delay fraction to milliseconds.

    A zero or missing denominator means 1/100 s units. Returns None when
    the numerator itself is missing.
    """
    if delay_num is None:
        return None
    if not delay_den:
        delay_den = DEFAULT_DELAY_DENOMINATOR
    return _round_half_up(delay_num / delay_den * 1000)


def floor_duration(duration_ms: float | None) -> int:
    """Whole milliseconds, never below ``MIN_FRAME_DURATION_MS``."""
    if duration_ms is None:
        return MIN_FRAME_DURATION_MS
    return max(MIN_FRAME_DURATION_MS, _round_half_up(duration_ms))


def clamp_duration(duration_ms: int, max_duration_ms: int | None) -> int:
    if max_duration_ms is None:
        return duration_ms
    return min(duration_ms, max_duration_ms)


def output_duration_ms(duration_ms: float | None, max_duration_ms: int | None = None) -> int:
    """Floor then clamp a frame duration (milliseconds in, milliseconds out)."""
    return clamp_duration(floor_duration(duration_ms), max_duration_ms)


def ms_to_centiseconds(duration_ms: int) -> int:
    """GIF delay units; at least 1 so no frame is invisible."""
    return max(1, _round_half_up(duration_ms / 10))



def average_frame_duration(durations_ms: list[int]) -> int:
    """Mean frame duration for ``sticker.json``; falls back to the static default."""
    if not durations_ms:
        return DEFAULT_STATIC_DURATION_MS
    average = _round_half_up(sum(durations_ms) / len(durations_ms))
    return average or DEFAULT_STATIC_DURATION_MS
