"""Where downloaded sticker assets live on disk.

Layout for a full pack download::

    <root>/line-packs-v2/<packId>/<stickerId>/<filename-no-ext>/<filename>

Every path segment derived from remote data is sanitised first.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse

from .config import DEFAULT_PATH_CONFIG

_UNSAFE_SEGMENT_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_EXTENSION = re.compile(r"\.[^.]+$")


def sanitize(segment: str) -> str:
    """Replace anything outside ``[a-zA-Z0-9._-]`` with an underscore."""
    return _UNSAFE_SEGMENT_CHARS.sub("_", str(segment or ""))


def url_parts(url: str) -> tuple[str, str]:
    """Return ``(filename, filename_without_extension)`` for a URL.

    The query string is ignored and the filename is percent-decoded, e.g.
    ``.../animation@2x.png?v=1`` → ``("animation@2x.png", "animation@2x")``.
    """
    filename = unquote(posixpath.basename(urlparse(url).path))
    return filename, _EXTENSION.sub("", filename)


def file_name_from_url(url: str) -> str:
    """Sanitised CDN filename used when saving a download."""
    filename, _ = url_parts(url)
    return sanitize(filename)


@dataclass(frozen=True)
class PackLayout:
    """Save-location resolver for a pack download."""

    root: Path = DEFAULT_PATH_CONFIG.OUTPUT_ROOT
    pack_dir_name: str = DEFAULT_PATH_CONFIG.PACK_DIR_NAME

    def relative_pack_dir(self, pack_id: str) -> str:
        return posixpath.join(self.pack_dir_name, sanitize(pack_id))

    def pack_dir(self, pack_id: str) -> Path:
        return self.root / self.relative_pack_dir(pack_id)

    def relative_variant_dir(self, pack_id: str, sticker_id: str, url: str) -> str:
        _, base_no_ext = url_parts(url)
        return posixpath.join(
            self.relative_pack_dir(pack_id), sanitize(sticker_id), sanitize(base_no_ext)
        )

    def variant_dir(self, pack_id: str, sticker_id: str, url: str) -> Path:
        return self.root / self.relative_variant_dir(pack_id, sticker_id, url)

    def relative_variant_path(self, pack_id: str, sticker_id: str, url: str) -> str:
        """Forward-slash path of the downloaded file, relative to ``root``.

        The file name is sanitised the same way :func:`file_name_from_url`
        names downloads, so the path matches what is written to disk.
        """
        return posixpath.join(
            self.relative_variant_dir(pack_id, sticker_id, url), file_name_from_url(url)
        )
