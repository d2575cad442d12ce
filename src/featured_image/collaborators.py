"""Interfaces of the side-effecting services the core calls.

The resolver, collector and sweeper never touch storage or the network
themselves; they receive a :class:`Collaborators` bundle.  The filesystem
implementation lives in :mod:`featured_image.index` and the HTTP downloader
in :mod:`featured_image.downloads`; tests pass stubs.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from featured_image.note import Note


@dataclass
class FolderListing:
    files: list[str] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)


@dataclass
class FileStat:
    size: int


@runtime_checkable
class VaultStorage(Protocol):
    """Read access to notes plus the file operations the sweeper needs.

    Paths are vault-relative POSIX strings throughout.
    """

    def list_notes(self) -> list[str]:
        """Return the path of every markdown note in the vault."""
        ...

    def read_note(self, path: str) -> Note:
        """Load and parse the note at *path*."""
        ...

    def resolve_local_path(self, link_text: str, context: Note) -> str | None:
        """Resolve *link_text* as written in *context* to a canonical file path."""
        ...

    def exists(self, path: str) -> bool: ...

    def enumerate_folder(self, path: str) -> FolderListing:
        """List the direct children of *path*; raises ``OSError`` on failure."""
        ...

    def stat_file(self, path: str) -> FileStat | None: ...

    def trash_file(self, path: str) -> bool:
        """Move *path* to the trash; ``False`` when it could not be removed."""
        ...


@runtime_checkable
class AssetDownloader(Protocol):
    def download_external_asset(self, url: str, subfolder: str | None = None) -> str | None:
        """Store the image at *url*; return its vault path or ``None``."""
        ...

    def download_video_thumbnail(self, video_id: str, current_feature: str | None) -> str | None:
        """Store the thumbnail for YouTube *video_id*; return its vault path or ``None``."""
        ...


ConfirmFn = Callable[[str, str], bool]


def always_confirm(title: str, message: str) -> bool:  # noqa: ARG001
    return True


def never_confirm(title: str, message: str) -> bool:  # noqa: ARG001
    return False


@dataclass
class Collaborators:
    """Capability bundle handed to the resolver, collector and sweeper."""

    storage: VaultStorage
    downloader: AssetDownloader | None = None
    #: Deletions are refused unless the caller supplies a confirmation
    confirm: ConfirmFn = never_confirm

    # Pass-throughs

    def resolve_local_path(self, link_text: str, context: Note) -> str | None:
        return self.storage.resolve_local_path(link_text, context)

    def download_external_asset(self, url: str, subfolder: str | None = None) -> str | None:
        if self.downloader is None:
            return None
        return self.downloader.download_external_asset(url, subfolder)

    def download_video_thumbnail(self, video_id: str, current_feature: str | None) -> str | None:
        if self.downloader is None:
            return None
        return self.downloader.download_video_thumbnail(video_id, current_feature)
