"""Shared fixtures: in-memory vault storage and a recording downloader.

The stubs satisfy the collaborator protocols without touching disk or the
network, so resolver, collector and sweeper behaviour can be asserted
deterministically.
"""

from __future__ import annotations

import textwrap

import pytest

from featured_image.collaborators import Collaborators, FileStat, FolderListing, always_confirm
from featured_image.config import Settings
from featured_image.note import Note
from featured_image.parser import parse_note_text
from featured_image.paths import file_name, normalize_path


class StubStorage:
    """In-memory vault: ``files`` maps path → size, ``notes`` maps path → text."""

    def __init__(self, files: dict[str, int] | None = None, notes: dict[str, str] | None = None) -> None:
        self.files: dict[str, int] = dict(files or {})
        self.notes: dict[str, str] = {}
        self.trashed: list[str] = []
        self.fail_read: set[str] = set()
        self.fail_stat: set[str] = set()
        self.fail_trash: set[str] = set()
        self.fail_enumerate: set[str] = set()
        self.enumerated: list[str] = []
        for path, content in (notes or {}).items():
            self.add_note(path, content)

    def add_note(self, path: str, content: str) -> Note:
        self.notes[path] = textwrap.dedent(content)
        return self.read_note(path)

    # -- notes

    def list_notes(self) -> list[str]:
        return sorted(self.notes)

    def read_note(self, path: str) -> Note:
        if path in self.fail_read:
            raise OSError(f"cannot read {path}")
        return parse_note_text(self.notes[path], path)

    def resolve_local_path(self, link_text: str, context: Note) -> str | None:  # noqa: ARG002
        link = normalize_path(link_text.strip())
        if link in self.files:
            return link
        if "/" in link:
            matches = [f for f in self.files if f.endswith("/" + link)]
        else:
            matches = [f for f in self.files if file_name(f) == link]
        return sorted(matches)[0] if matches else None

    # -- files

    def exists(self, path: str) -> bool:
        return path in self.files or any(f.startswith(path + "/") for f in self.files)

    def enumerate_folder(self, path: str) -> FolderListing:
        self.enumerated.append(path)
        if path in self.fail_enumerate:
            raise OSError(f"cannot list {path}")
        listing = FolderListing()
        prefix = path + "/"
        for f in sorted(self.files):
            if not f.startswith(prefix):
                continue
            rest = f[len(prefix) :]
            if "/" in rest:
                sub = prefix + rest.split("/", 1)[0]
                if sub not in listing.folders:
                    listing.folders.append(sub)
            else:
                listing.files.append(f)
        return listing

    def stat_file(self, path: str) -> FileStat | None:
        if path in self.fail_stat:
            raise OSError(f"cannot stat {path}")
        if path not in self.files:
            return None
        return FileStat(size=self.files[path])

    def trash_file(self, path: str) -> bool:
        if path in self.fail_trash or path not in self.files:
            return False
        del self.files[path]
        self.trashed.append(path)
        return True


class StubDownloader:
    """Returns canned stored paths and records every call."""

    def __init__(self, external: dict[str, str] | None = None, videos: dict[str, str] | None = None) -> None:
        self.external = dict(external or {})
        self.videos = dict(videos or {})
        self.external_calls: list[tuple[str, str | None]] = []
        self.video_calls: list[tuple[str, str | None]] = []

    def download_external_asset(self, url: str, subfolder: str | None = None) -> str | None:
        self.external_calls.append((url, subfolder))
        return self.external.get(url)

    def download_video_thumbnail(self, video_id: str, current_feature: str | None) -> str | None:
        self.video_calls.append((video_id, current_feature))
        return self.videos.get(video_id)


@pytest.fixture()
def settings() -> Settings:
    return Settings()


@pytest.fixture()
def storage() -> StubStorage:
    return StubStorage()


@pytest.fixture()
def downloader() -> StubDownloader:
    return StubDownloader()


@pytest.fixture()
def collaborators(storage: StubStorage, downloader: StubDownloader) -> Collaborators:
    return Collaborators(storage=storage, downloader=downloader, confirm=always_confirm)
