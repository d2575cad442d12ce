"""Settings for feature-image discovery and thumbnail maintenance.

Settings are read from a TOML file::

    [featured_image]
    frontmatter_property  = "feature"
    thumbnails_folder     = "thumbnails"
    image_extensions      = ["png", "jpg", "webp"]
    dry_run               = true

The ``[featured_image]`` table is optional; keys may also live at the top
level.  Unknown keys are ignored.

Environment variables (applied after the file):
    FEATURED_IMAGE_DRY_RUN            – ``1``/``true`` enables dry-run mode
    FEATURED_IMAGE_THUMBNAILS_FOLDER  – overrides ``thumbnails_folder``
    FEATURED_IMAGE_DEBUG              – ``1``/``true`` enables debug logging
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

DEFAULT_IMAGE_EXTENSIONS: tuple[str, ...] = ("png", "jpg", "jpeg", "gif", "webp", "avif")
DEFAULT_THUMBNAILS_FOLDER = "thumbnails"

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigError(ValueError):
    """Raised when a settings file cannot be read or holds invalid values."""


@dataclass
class Settings:
    """Behaviour switches shared by the resolver, collector and sweeper."""

    frontmatter_property: str = "feature"
    resized_frontmatter_property: str = "thumbnail"
    create_resized_thumbnail: bool = False
    require_exclamation_for_youtube: bool = True
    download_webp: bool = True
    image_extensions: list[str] = field(default_factory=lambda: list(DEFAULT_IMAGE_EXTENSIONS))
    thumbnails_folder: str = DEFAULT_THUMBNAILS_FOLDER
    #: Keep the existing frontmatter value when a note body yields nothing.
    preserve_template_images: bool = False
    only_update_existing: bool = False
    excluded_folders: list[str] = field(default_factory=list)
    dry_run: bool = False
    debug_mode: bool = False
    download_timeout: float = 15.0

    def __post_init__(self) -> None:
        folder = (self.thumbnails_folder or "").strip().strip("/")
        self.thumbnails_folder = folder or DEFAULT_THUMBNAILS_FOLDER

        extensions = [ext.strip().lstrip(".").lower() for ext in self.image_extensions]
        extensions = [ext for ext in extensions if ext]
        self.image_extensions = list(dict.fromkeys(extensions)) or list(DEFAULT_IMAGE_EXTENSIONS)

        self.excluded_folders = [f.strip().rstrip("/") for f in self.excluded_folders if f.strip()]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        table = data.get("featured_image", data)
        if not isinstance(table, dict):
            raise ConfigError("[featured_image] must be a table")
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in table.items() if k in known}
        for key in ("image_extensions", "excluded_folders"):
            value = kwargs.get(key)
            if isinstance(value, str):
                kwargs[key] = value.split(",")
            elif value is not None and not isinstance(value, list):
                raise ConfigError(f"'{key}' must be a list or comma separated string")
        try:
            return cls(**kwargs)
        except (AttributeError, TypeError) as exc:
            raise ConfigError(f"Invalid settings: {exc}") from exc

    def category_folder(self, folder_name: str) -> str:
        """Return ``<thumbnails_folder>/<folder_name>``."""
        return f"{self.thumbnails_folder}/{folder_name}"


def _env_flag(name: str) -> bool | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip().lower() in _TRUTHY


def load_settings(path: Path | str | None = None) -> Settings:
    """Load :class:`Settings` from *path* (optional) and apply env overrides."""
    data: dict[str, Any] = {}
    if path is not None:
        try:
            with open(path, "rb") as fh:
                data = tomllib.load(fh)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"Cannot read settings from {path}: {exc}") from exc

    settings = Settings.from_dict(data)

    dry_run = _env_flag("FEATURED_IMAGE_DRY_RUN")
    if dry_run is not None:
        settings.dry_run = dry_run
    debug = _env_flag("FEATURED_IMAGE_DEBUG")
    if debug is not None:
        settings.debug_mode = debug
    folder = os.getenv("FEATURED_IMAGE_THUMBNAILS_FOLDER")
    if folder:
        settings.thumbnails_folder = folder.strip().strip("/") or DEFAULT_THUMBNAILS_FOLDER

    return settings
