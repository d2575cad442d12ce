"""YAML-frontmatter parser and note loader."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml

from featured_image.note import Note

# Frontmatter block: a "---" line at offset 0 up to the next line that is exactly "---"
_FRONTMATTER_RE = re.compile(r"\A---\n(.*?)^---(?:\n|\Z)", re.DOTALL | re.MULTILINE)


def split_frontmatter(content: str) -> tuple[str, str]:
    """Split *content* into ``(frontmatter_text, body)``.

    ``frontmatter_text`` is empty when the content has no frontmatter block.
    An unterminated block is treated as ordinary body text.
    """
    match = _FRONTMATTER_RE.match(content)
    if not match:
        return "", content
    return match.group(1), content[match.end() :]


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Split YAML front-matter from body text.

    Returns ``(metadata_dict, body)``; ``metadata_dict`` is empty when there
    is no front-matter block or it does not parse to a mapping.
    """
    raw, body = split_frontmatter(content)
    if not raw.strip():
        return {}, body
    try:
        meta = yaml.safe_load(raw)
    except yaml.YAMLError:
        meta = None
    if not isinstance(meta, dict):
        meta = {}
    return meta, body


def parse_note_text(content: str, path: str) -> Note:
    """Build a :class:`Note` from raw *content* stored at vault path *path*."""
    content = content.replace("\r\n", "\n")
    frontmatter, body = parse_frontmatter(content)
    return Note(path=path, content=content, body=body, frontmatter=frontmatter)


def parse_note(path: Path, vault_dir: Path | None = None) -> Note:
    """Read a ``.md`` file and return a fully-populated :class:`Note`.

    The note's identity is *path* relative to *vault_dir* when given.
    """
    content = path.read_text(encoding="utf-8")
    rel = path.relative_to(vault_dir) if vault_dir is not None else path
    return parse_note_text(content, rel.as_posix())
