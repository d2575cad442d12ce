"""Vault path normalization."""

from __future__ import annotations

import re
import unicodedata

_SLASHES_RE = re.compile(r"/+")


def normalize_path(path: str) -> str:
    """Canonicalise a vault-relative path so string equality means same file.

    Backslashes become ``/``, repeated slashes collapse, leading and trailing
    slashes are dropped, non-breaking spaces become spaces and the result is
    NFC-normalised.  An empty path normalises to ``"/"``.
    """
    cleaned = path.replace("\\", "/").replace("\u00a0", " ").replace("\u202f", " ")
    cleaned = _SLASHES_RE.sub("/", cleaned).strip("/")
    cleaned = unicodedata.normalize("NFC", cleaned)
    return cleaned or "/"


def file_name(path: str) -> str:
    """Final path segment of *path*."""
    return path.rsplit("/", 1)[-1]
