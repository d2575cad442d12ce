"""Mark-and-sweep cleanup of downloaded and generated images.

Everything the tool writes lives under ``<thumbnails_folder>/<category>``.
A sweep

1. lists every file in each category folder (placeholders excluded),
2. collects the references of every note in the vault,
3. marks a file used when its path, or just its file name, is referenced,
4. asks for confirmation, and
5. trashes the unused files (unless ``dry_run`` is set).

The file-name fallback is permissive: a file is kept when any reference
shares its file name, whatever the folder.

Usage::

    sweeper = AssetGarbageCollector(settings, collaborators)
    report = sweeper.sweep()
    report.to_frame()   # polars DataFrame of unused files
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

import polars as pl

from featured_image.collaborators import Collaborators, ConfirmFn, VaultStorage
from featured_image.collector import ReferenceCollector
from featured_image.config import Settings
from featured_image.paths import file_name, normalize_path

logger = logging.getLogger(__name__)

FAILED_PLACEHOLDER_SUFFIX = ".failed.png"


class AssetCategory(str, Enum):
    EXTERNAL = "external"
    YOUTUBE = "youtube"
    AUTO_CARD_LINK = "autocardlink"
    RESIZED_THUMBNAIL = "resized"
    VIDEO_POSTER = "video"

    @property
    def folder_name(self) -> str:
        return self.value

    @property
    def excluded_suffix(self) -> str | None:
        """Suffix of placeholder files that are never members of the category."""
        if self is AssetCategory.VIDEO_POSTER:
            return None
        return FAILED_PLACEHOLDER_SUFFIX


class SweepStatus(str, Enum):
    NOTHING_TO_DO = "nothing-to-do"
    CANCELLED = "cancelled"
    DRY_RUN = "dry-run"
    COMPLETED = "completed"


@dataclass
class SweepReport:
    status: SweepStatus
    unused: dict[AssetCategory, list[str]] = field(default_factory=dict)
    reference_count: int = 0
    total_bytes: int = 0
    deleted_count: int = 0

    @property
    def unused_counts(self) -> dict[AssetCategory, int]:
        return {category: len(self.unused.get(category, [])) for category in AssetCategory}

    @property
    def total_unused(self) -> int:
        return sum(len(paths) for paths in self.unused.values())

    @property
    def unused_paths(self) -> list[str]:
        return [path for category in AssetCategory for path in self.unused.get(category, [])]

    def to_frame(self) -> pl.DataFrame:
        """Return unused files as a ``category, path`` Polars DataFrame."""
        rows = [
            {"category": category.value, "path": path}
            for category in AssetCategory
            for path in self.unused.get(category, [])
        ]
        return pl.DataFrame(rows, schema={"category": pl.Utf8, "path": pl.Utf8})

    def summary(self) -> str:
        if self.status is SweepStatus.NOTHING_TO_DO:
            return "No unused images found."
        if self.status is SweepStatus.CANCELLED:
            return "Cleanup cancelled."
        if self.status is SweepStatus.DRY_RUN:
            return f"Dry run: Would delete {self.total_unused} unused files."
        megabytes = self.total_bytes / (1024 * 1024)
        return f"Cleanup complete. Deleted {self.deleted_count} unused files ({megabytes:.2f} MB)."


def is_file_referenced(path: str, used: set[str]) -> bool:
    """True when *path* or its file name appears in *used*."""
    if path in used:
        return True
    name = file_name(path)
    return any(file_name(u) == name for u in used)


def find_unused(members: Iterable[str], used: set[str]) -> list[str]:
    used_names = {file_name(u) for u in used}
    return sorted(m for m in members if m not in used and file_name(m) not in used_names)


class AssetGarbageCollector:
    """Reconciles the thumbnail folders against the references in the vault."""

    def __init__(
        self,
        settings: Settings,
        collaborators: Collaborators,
        collector: ReferenceCollector | None = None,
    ) -> None:
        self.settings = settings
        self.collaborators = collaborators
        self.collector = collector or ReferenceCollector(settings, collaborators)

    @property
    def storage(self) -> VaultStorage:
        return self.collaborators.storage

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    def sweep(self, confirm: ConfirmFn | None = None) -> SweepReport:
        """Find unused images and, once confirmed, trash them."""
        confirm = confirm or self.collaborators.confirm
        logger.debug("Starting cleanup of unused images")

        members = self.collect_members()
        for category, paths in members.items():
            logger.debug("Collected %d %s files", len(paths), category.value)

        used = self.build_reference_set()
        logger.debug("Found %d unique file references in notes", len(used))

        unused = {category: find_unused(paths, used) for category, paths in members.items()}
        report = SweepReport(status=SweepStatus.NOTHING_TO_DO, unused=unused, reference_count=len(used))
        for category, count in report.unused_counts.items():
            logger.debug("Unused %s files: %d", category.value, count)

        total = report.total_unused
        if total == 0:
            return report

        if not confirm(
            "Remove unused images",
            f"Found {total} unused images. Do you want to delete these files?",
        ):
            report.status = SweepStatus.CANCELLED
            return report

        if self.settings.dry_run:
            logger.info("Dry run: would delete %d unused files", total)
            report.status = SweepStatus.DRY_RUN
            return report

        paths = report.unused_paths
        report.total_bytes = self.calculate_file_sizes(paths)
        report.deleted_count = self.delete_files(paths)
        report.status = SweepStatus.COMPLETED
        return report

    # ------------------------------------------------------------------
    # Mark
    # ------------------------------------------------------------------

    def collect_members(self) -> dict[AssetCategory, list[str]]:
        """Return the files of every category folder, placeholders excluded."""
        members: dict[AssetCategory, list[str]] = {category: [] for category in AssetCategory}
        root = normalize_path(self.settings.thumbnails_folder)
        if not self._exists(root):
            logger.debug("Thumbnail folder %s does not exist", root)
            return members

        for category in AssetCategory:
            folder = f"{root}/{category.folder_name}"
            if not self._exists(folder):
                continue
            found: set[str] = set()
            self._collect_folder(folder, found, category.excluded_suffix)
            members[category] = sorted(found)
        return members

    def _collect_folder(self, folder: str, found: set[str], excluded_suffix: str | None) -> None:
        try:
            listing = self.storage.enumerate_folder(folder)
        except Exception:  # noqa: BLE001
            logger.error("Error collecting files in %s", folder, exc_info=True)
            return
        for path in listing.files:
            if excluded_suffix and path.endswith(excluded_suffix):
                continue
            found.add(normalize_path(path))
        for sub in listing.folders:
            self._collect_folder(sub, found, excluded_suffix)

    def _exists(self, path: str) -> bool:
        try:
            return self.storage.exists(path)
        except Exception:  # noqa: BLE001
            logger.error("Error checking %s", path, exc_info=True)
            return False

    def build_reference_set(self) -> set[str]:
        """Collect references from every note; the set is complete on return."""
        used: set[str] = set()
        for path in self.storage.list_notes():
            try:
                note = self.storage.read_note(path)
            except Exception:  # noqa: BLE001
                logger.error("Error reading %s", path, exc_info=True)
                continue
            self.collector.collect_into(note, used)
        return used

    # ------------------------------------------------------------------
    # Sweep helpers
    # ------------------------------------------------------------------

    def calculate_file_sizes(self, paths: Iterable[str]) -> int:
        total = 0
        for path in paths:
            try:
                stat = self.storage.stat_file(path)
            except Exception:  # noqa: BLE001
                logger.error("Error getting file size for %s", path, exc_info=True)
                continue
            if stat is not None:
                total += stat.size
        return total

    def delete_files(self, paths: Iterable[str]) -> int:
        deleted = 0
        for path in paths:
            try:
                ok = self.storage.trash_file(path)
            except Exception:  # noqa: BLE001
                logger.error("Error deleting %s", path, exc_info=True)
                continue
            if ok:
                deleted += 1
            else:
                logger.warning("Could not delete %s", path)
        logger.debug("Deleted %d unused files", deleted)
        return deleted
