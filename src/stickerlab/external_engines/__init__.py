from .diagnostics import STDERR_DIAGNOSTICS, classify_stderr
from .ffmpeg import apng_to_gif as ffmpeg_apng_to_gif
from .imagemagick import apng_to_gif as imagemagick_apng_to_gif

__all__ = [
    # FFmpeg
    "ffmpeg_apng_to_gif",
    # ImageMagick
    "imagemagick_apng_to_gif",
    # stderr classification
    "STDERR_DIAGNOSTICS",
    "classify_stderr",
]
