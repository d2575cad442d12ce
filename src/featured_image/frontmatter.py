"""Parsed view of frontmatter values that may hold an image embed."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from featured_image.grammar import is_http_url, is_valid_https_url
from featured_image.note import Note
from featured_image.paths import normalize_path

logger = logging.getLogger(__name__)

# ![[target]] or [[target]]; the first embed in the value wins
_EMBED_RE = re.compile(r"!?\[\[(.*?)\]\]")

LocalResolver = Callable[[str, Note], "str | None"]


@dataclass(frozen=True)
class FrontmatterImageInfo:
    #: Stored value, trimmed
    raw_value: str
    #: Path extracted from raw_value (no brackets, caption or anchor)
    raw_path: str
    #: Vault path or https URL after resolution; normalized raw path otherwise
    resolved_path: str
    is_resolved: bool


def extract_link_path(value: str) -> str:
    """Strip an optional ``![[...]]`` layer and any ``|caption``/``#anchor``.

    Used for frontmatter values and body targets alike so both compare equal
    after normalisation.
    """
    match = _EMBED_RE.search(value)
    path = match.group(1) if match else value
    return path.split("|", 1)[0].split("#", 1)[0].strip()


def warn_insecure_link(note_path: str, url: str, source: str | None = None) -> None:
    where = f" in {source}" if source else ""
    logger.warning("Ignoring insecure http image link%s: %s (referenced in %s)", where, url, note_path)


def parse_frontmatter_image(value: Any, note: Note, resolve_local: LocalResolver) -> FrontmatterImageInfo | None:
    """Parse a frontmatter value into :class:`FrontmatterImageInfo`.

    Returns ``None`` for non-string or blank values.
    """
    if not isinstance(value, str):
        return None
    raw_value = value.strip()
    if not raw_value:
        return None

    raw_path = extract_link_path(raw_value)
    resolved_path = raw_path
    is_resolved = False

    if raw_path:
        if is_http_url(raw_path):
            warn_insecure_link(note.path, raw_path, "frontmatter")
            return FrontmatterImageInfo(raw_value, raw_path, raw_path, False)
        if is_valid_https_url(raw_path):
            is_resolved = True
        else:
            resolved = resolve_local(raw_path, note)
            if resolved:
                resolved_path = normalize_path(resolved)
                is_resolved = True
            else:
                resolved_path = normalize_path(raw_path)

    return FrontmatterImageInfo(raw_value, raw_path, resolved_path, is_resolved)


def is_frontmatter_path_equal(info: FrontmatterImageInfo | None, candidate: str | None) -> bool:
    """True when the stored frontmatter value refers to *candidate*."""
    if info is None or not info.raw_value or not candidate:
        return False
    if is_valid_https_url(candidate):
        return info.resolved_path == candidate
    stored = info.resolved_path if info.is_resolved else normalize_path(info.raw_path)
    return stored == normalize_path(candidate)
