"""VaultIndex: filesystem-backed vault storage.

Implements :class:`~featured_image.collaborators.VaultStorage` over a vault
directory on disk.  All paths handed in and out are vault-relative POSIX
strings; deleted files are moved to ``<vault>/.trash`` the way Obsidian's
local trash does.
"""

from __future__ import annotations

import logging
import posixpath
import shutil
from pathlib import Path

from featured_image.collaborators import AssetDownloader, Collaborators, ConfirmFn, FileStat, FolderListing, never_confirm
from featured_image.note import Note
from featured_image.parser import parse_note
from featured_image.paths import normalize_path

logger = logging.getLogger(__name__)

TRASH_FOLDER = ".trash"


class VaultIndex:
    """Scans a vault directory and resolves links against its files."""

    def __init__(self, vault_dir: Path | str) -> None:
        self.vault_dir = Path(vault_dir)
        self.files: list[str] = []
        self._built = False

    # ------------------------------------------------------------------
    # Build / refresh
    # ------------------------------------------------------------------

    def build(self) -> None:
        """(Re-)scan the vault file list."""
        self.files = sorted(
            path.relative_to(self.vault_dir).as_posix()
            for path in self.vault_dir.rglob("*")
            if path.is_file() and not self._is_hidden(path)
        )
        self._built = True

    def _is_hidden(self, path: Path) -> bool:
        rel = path.relative_to(self.vault_dir)
        return any(part.startswith(".") for part in rel.parts)

    def _ensure_built(self) -> None:
        if not self._built:
            self.build()

    def _abs(self, path: str) -> Path:
        return self.vault_dir / normalize_path(path)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def list_notes(self) -> list[str]:
        self._ensure_built()
        return [f for f in self.files if f.lower().endswith(".md")]

    def read_note(self, path: str) -> Note:
        return parse_note(self._abs(path), self.vault_dir)

    # ------------------------------------------------------------------
    # Link resolution
    # ------------------------------------------------------------------

    def resolve_local_path(self, link_text: str, context: Note) -> str | None:
        """Resolve *link_text* written in *context* to an existing vault file.

        Tries, in order: a path relative to the note's folder, a
        vault-absolute path, then any file whose path ends with the link
        (same folder as the note first, then the shortest path).
        """
        link = link_text.strip()
        if not link:
            return None

        candidates = []
        if context.folder:
            candidates.append(posixpath.normpath(posixpath.join(context.folder, link)))
        candidates.append(posixpath.normpath(link))
        for candidate in candidates:
            normalized = normalize_path(candidate)
            if not normalized.startswith("../") and self._abs(normalized).is_file():
                return normalized

        self._ensure_built()
        target = normalize_path(link).lower()
        matches = [f for f in self.files if f.lower() == target or f.lower().endswith("/" + target)]
        if not matches:
            return None
        same_folder = [m for m in matches if posixpath.dirname(m) == context.folder]
        return (same_folder or sorted(matches, key=lambda m: (m.count("/"), m)))[0]

    # ------------------------------------------------------------------
    # File operations
    # ------------------------------------------------------------------

    def exists(self, path: str) -> bool:
        return self._abs(path).exists()

    def enumerate_folder(self, path: str) -> FolderListing:
        listing = FolderListing()
        for child in sorted(self._abs(path).iterdir()):
            rel = child.relative_to(self.vault_dir).as_posix()
            if child.is_dir():
                listing.folders.append(rel)
            else:
                listing.files.append(rel)
        return listing

    def stat_file(self, path: str) -> FileStat | None:
        target = self._abs(path)
        if not target.is_file():
            return None
        return FileStat(size=target.stat().st_size)

    def trash_file(self, path: str) -> bool:
        source = self._abs(path)
        if not source.is_file():
            return False
        destination = self.vault_dir / TRASH_FOLDER / normalize_path(path)
        if destination.exists():
            destination = destination.with_name(f"{destination.stem}-{source.stat().st_mtime_ns}{destination.suffix}")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(source), str(destination))
        except OSError:
            logger.error("Failed to trash %s", path, exc_info=True)
            return False
        rel = normalize_path(path)
        if rel in self.files:
            self.files.remove(rel)
        return True

    def write_file(self, path: str, data: bytes) -> str:
        """Write *data* to vault *path*, creating folders; returns the normalized path."""
        rel = normalize_path(path)
        target = self._abs(rel)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        if self._built and rel not in self.files and not self._is_hidden(target):
            self.files.append(rel)
            self.files.sort()
        return rel

    def collaborators(
        self,
        downloader: AssetDownloader | None = None,
        confirm: ConfirmFn = never_confirm,
    ) -> Collaborators:
        return Collaborators(storage=self, downloader=downloader, confirm=confirm)
