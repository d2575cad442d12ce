"""Core Note dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any


def frontmatter_string(value: Any) -> str | None:
    """Return the trimmed string case of a frontmatter value, else ``None``."""
    if isinstance(value, str):
        return value.strip() or None
    return None


def frontmatter_list(value: Any) -> list[str]:
    """Return the string items of a list (or comma separated string) value."""
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, list):
        return [v.strip() for v in value if isinstance(v, str) and v.strip()]
    return []


@dataclass
class Note:
    """A single markdown note in the vault."""

    #: Vault-relative POSIX path, e.g. ``"journal/2024-01-01.md"``
    path: str
    #: Full file content, frontmatter included
    content: str
    #: Content with the leading frontmatter block removed
    body: str = ""
    frontmatter: dict[str, Any] = field(default_factory=dict)

    @property
    def folder(self) -> str:
        parent = PurePosixPath(self.path).parent.as_posix()
        return "" if parent == "." else parent

    @property
    def tags(self) -> list[str]:
        return frontmatter_list(self.frontmatter.get("tags"))
