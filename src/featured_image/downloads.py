"""HTTP downloader for external images and YouTube thumbnails.

Files are stored in the vault under ``<thumbnails_folder>/<category>``:

- external images as ``<md5(url)>.<ext>`` in ``external/`` (or the
  subfolder the caller names, e.g. ``autocardlink/``);
- YouTube thumbnails as ``<video_id>.webp`` or ``<video_id>.jpg`` in
  ``youtube/``.

A URL that answers with an error status gets an empty
``<md5(url)>.failed.png`` marker so it is not fetched again; network errors
are not cached.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import PurePosixPath
from urllib.parse import urlsplit

import httpx

from featured_image.config import Settings
from featured_image.index import VaultIndex
from featured_image.maintenance import FAILED_PLACEHOLDER_SUFFIX, AssetCategory
from featured_image.paths import normalize_path

logger = logging.getLogger(__name__)

EXTERNAL_SUBFOLDER = AssetCategory.EXTERNAL.folder_name
YOUTUBE_SUBFOLDER = AssetCategory.YOUTUBE.folder_name
FAILED_SUFFIX = FAILED_PLACEHOLDER_SUFFIX

_CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/avif": "avif",
}


def md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


class HttpDownloader:
    """:class:`~featured_image.collaborators.AssetDownloader` backed by ``httpx``."""

    def __init__(
        self,
        index: VaultIndex,
        settings: Settings,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self.index = index
        self.settings = settings
        self._client = client or httpx.Client(timeout=settings.download_timeout, follow_redirects=True)

    # ------------------------------------------------------------------
    # External images
    # ------------------------------------------------------------------

    def download_external_asset(self, url: str, subfolder: str | None = None) -> str | None:
        folder = self.settings.category_folder(subfolder or EXTERNAL_SUBFOLDER)
        stem = md5(url)

        if self.index.exists(f"{folder}/{stem}{FAILED_SUFFIX}"):
            logger.debug("Skipping previously failed download: %s", url)
            return None
        existing = self._find_existing(folder, stem)
        if existing:
            return existing

        response = self._get(url)
        if response is None:
            return None
        if response.status_code != 200:
            logger.warning("Failed to download %s: HTTP %d", url, response.status_code)
            self.index.write_file(f"{folder}/{stem}{FAILED_SUFFIX}", b"")
            return None

        ext = self._extension(url, response.headers.get("content-type", ""))
        return self.index.write_file(f"{folder}/{stem}.{ext}", response.content)

    def _stored_extensions(self) -> list[str]:
        """Every extension :meth:`_extension` can give a stored file."""
        from_url = ["jpg" if ext == "jpeg" else ext for ext in self.settings.image_extensions]
        return list(dict.fromkeys([*from_url, *_CONTENT_TYPE_EXTENSIONS.values(), "png"]))

    def _find_existing(self, folder: str, stem: str) -> str | None:
        for ext in self._stored_extensions():
            candidate = f"{folder}/{stem}.{ext}"
            if self.index.exists(candidate):
                return normalize_path(candidate)
        return None

    def _extension(self, url: str, content_type: str) -> str:
        suffix = PurePosixPath(urlsplit(url).path).suffix.lstrip(".").lower()
        if suffix in self.settings.image_extensions:
            return "jpg" if suffix == "jpeg" else suffix
        mime = content_type.split(";", 1)[0].strip().lower()
        return _CONTENT_TYPE_EXTENSIONS.get(mime, "png")

    # ------------------------------------------------------------------
    # YouTube thumbnails
    # ------------------------------------------------------------------

    def download_video_thumbnail(self, video_id: str, current_feature: str | None) -> str | None:
        folder = self.settings.category_folder(YOUTUBE_SUBFOLDER)
        webp_path = f"{folder}/{video_id}.webp"
        jpg_path = f"{folder}/{video_id}.jpg"

        # Keep the thumbnail the note already points at
        if current_feature and normalize_path(current_feature) in (webp_path, jpg_path):
            if self.index.exists(current_feature):
                return normalize_path(current_feature)

        for path in (webp_path, jpg_path):
            if self.index.exists(path):
                return path

        attempts: list[tuple[str, str]] = []
        if self.settings.download_webp:
            attempts.append((f"https://i.ytimg.com/vi_webp/{video_id}/maxresdefault.webp", webp_path))
        attempts.append((f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg", jpg_path))
        attempts.append((f"https://img.youtube.com/vi/{video_id}/hqdefault.jpg", jpg_path))

        for url, path in attempts:
            response = self._get(url)
            if response is not None and response.status_code == 200:
                return self.index.write_file(path, response.content)

        logger.warning("Failed to download thumbnail for YouTube video %s", video_id)
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _get(self, url: str) -> httpx.Response | None:
        try:
            return self._client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Error fetching %s: %s", url, exc)
            return None

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpDownloader":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
