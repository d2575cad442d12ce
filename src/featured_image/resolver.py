"""Feature-image resolution for a single note.

The body is scanned line by line and the first usable reference wins, in
document order, regardless of its syntax:

1. the ``image:`` directive of a closed ``cardlink`` block;
2. a YouTube link (its thumbnail is downloaded);
3. a wiki embed of a local image;
4. a markdown embed of an ``https`` URL (downloaded) or a local image.

References that fail to resolve are logged and skipped.  When nothing in
the body qualifies, the current frontmatter value is kept if
``preserve_template_images`` is enabled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from featured_image.cardlink import CardLinkProcessor, card_link_local_path
from featured_image.collaborators import Collaborators
from featured_image.config import Settings
from featured_image.frontmatter import (
    FrontmatterImageInfo,
    is_frontmatter_path_equal,
    parse_frontmatter_image,
    warn_insecure_link,
)
from featured_image.grammar import (
    EmbedKind,
    EmbedMatch,
    LinkGrammar,
    get_video_id,
    is_http_url,
    is_valid_https_url,
    safe_decode,
    strip_markdown_title,
)
from featured_image.note import Note, frontmatter_string

logger = logging.getLogger(__name__)

AUTO_CARD_LINK_SUBFOLDER = "autocardlink"


class ReferenceKind(str, Enum):
    ABSENT = "absent"
    LOCAL = "local"
    EXTERNAL = "external"


@dataclass(frozen=True)
class FeatureReference:
    """The chosen feature image of a note: a vault path, an https URL, or nothing."""

    kind: ReferenceKind = ReferenceKind.ABSENT
    value: str | None = None

    @classmethod
    def absent(cls) -> "FeatureReference":
        return cls()

    @classmethod
    def from_value(cls, value: str | None) -> "FeatureReference":
        if not value:
            return cls()
        if is_valid_https_url(value):
            return cls(ReferenceKind.EXTERNAL, value)
        if is_http_url(value):
            return cls()
        return cls(ReferenceKind.LOCAL, value)

    @classmethod
    def preserved(cls, value: str) -> "FeatureReference":
        """Wrap a stored frontmatter value as is, without the http policy of :meth:`from_value`."""
        kind = ReferenceKind.EXTERNAL if "://" in value else ReferenceKind.LOCAL
        return cls(kind, value)

    @property
    def is_absent(self) -> bool:
        return self.kind is ReferenceKind.ABSENT

    def __bool__(self) -> bool:
        return not self.is_absent


class FeatureResolver:
    """Finds the feature image of a note using the configured collaborators."""

    def __init__(self, settings: Settings, collaborators: Collaborators) -> None:
        self.collaborators = collaborators
        self.set_settings(settings)

    def set_settings(self, settings: Settings) -> None:
        """Swap settings and recompile the grammar."""
        self.settings = settings
        self.grammar = LinkGrammar.from_settings(settings)

    # ------------------------------------------------------------------
    # Frontmatter
    # ------------------------------------------------------------------

    def frontmatter_info(self, note: Note, property: str | None = None) -> FrontmatterImageInfo | None:
        key = property or self.settings.frontmatter_property
        return parse_frontmatter_image(note.frontmatter.get(key), note, self.collaborators.resolve_local_path)

    def current_feature(self, note: Note) -> str | None:
        return frontmatter_string(note.frontmatter.get(self.settings.frontmatter_property))

    @staticmethod
    def is_frontmatter_path_equal(info: FrontmatterImageInfo | None, candidate: str | None) -> bool:
        return is_frontmatter_path_equal(info, candidate)

    def should_skip(self, note: Note, current_value: str | None) -> bool:
        """True for notes in excluded folders, Excalidraw drawings, and (when
        ``only_update_existing`` is set) notes without a feature property."""
        if any(note.path.startswith(f"{folder}/") for folder in self.settings.excluded_folders):
            return True
        if "excalidraw" in note.tags:
            return True
        return self.settings.only_update_existing and not current_value

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, note: Note, current_value: str | None = None) -> FeatureReference:
        """Return the feature reference of *note*.

        *current_value* is the feature presently stored for the note; it is
        handed to the thumbnail downloader and kept when nothing is found and
        ``preserve_template_images`` is on.
        """
        cardlinks: CardLinkProcessor[str] = CardLinkProcessor(lambda directive: self._resolve_card_link(directive, note))

        for line in note.body.splitlines():
            state = cardlinks.consume(line)
            if state.result is not None:
                return FeatureReference.from_value(state.result)
            if state.handled:
                continue

            match = self.grammar.first(line)
            if match is None:
                continue
            found = self._resolve_match(match, note, current_value)
            if found:
                return FeatureReference.from_value(found)
        cardlinks.finish()

        if self.settings.preserve_template_images and current_value:
            logger.debug("No new image found in %s, preserving %s", note.path, current_value)
            return FeatureReference.preserved(current_value)

        return FeatureReference.absent()

    def resolve_path(self, path: str) -> FeatureReference:
        """Read the note at *path* and resolve it, honouring :meth:`should_skip`."""
        note = self.collaborators.storage.read_note(path)
        current = self.current_feature(note)
        if self.should_skip(note, current):
            logger.debug("Skipping %s", path)
            return FeatureReference.preserved(current) if current else FeatureReference.absent()
        return self.resolve(note, current)

    def _resolve_match(self, match: EmbedMatch, note: Note, current_value: str | None) -> str | None:
        if match.kind is EmbedKind.YOUTUBE:
            video_id = get_video_id(match.target)
            if not video_id:
                return None
            return self.collaborators.download_video_thumbnail(video_id, current_value)

        if match.kind is EmbedKind.WIKI:
            return self._resolve_local(safe_decode(match.target), note)

        target = strip_markdown_title(safe_decode(match.target)).strip()
        if is_http_url(target):
            warn_insecure_link(note.path, target)
            return None
        if is_valid_https_url(target):
            return self.collaborators.download_external_asset(target)
        return self._resolve_local(target, note)

    def _resolve_local(self, path: str, note: Note) -> str | None:
        resolved = self.collaborators.resolve_local_path(path, note)
        if not resolved:
            logger.warning("Local image not found for featured image: %s (referenced in %s)", path, note.path)
        return resolved

    def _resolve_card_link(self, directive: str, note: Note) -> str | None:
        directive = directive.strip()

        local = card_link_local_path(directive)
        if local is not None:
            resolved = self.collaborators.resolve_local_path(local, note)
            if not resolved:
                logger.warning("Local Auto Card Link image not found: %s (referenced in %s)", local, note.path)
            return resolved

        if is_http_url(directive):
            warn_insecure_link(note.path, directive, "Auto Card Link")
            return None
        if not is_valid_https_url(directive):
            logger.warning("Invalid Auto Card Link URL: %s (referenced in %s)", directive, note.path)
            return None
        return self.collaborators.download_external_asset(directive, AUTO_CARD_LINK_SUBFOLDER)
