"""Collect every image path a note keeps alive.

Unlike :class:`~featured_image.resolver.FeatureResolver` this does not stop
at the first hit: frontmatter feature/thumbnail values, every ``cardlink``
image and every embed on every line are added to the reference set used by
the asset sweeper.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from featured_image.cardlink import CardLinkProcessor, card_link_local_path
from featured_image.collaborators import Collaborators
from featured_image.config import Settings
from featured_image.frontmatter import extract_link_path, warn_insecure_link
from featured_image.grammar import (
    EmbedKind,
    LinkGrammar,
    is_http_url,
    is_valid_https_url,
    safe_decode,
    strip_markdown_title,
)
from featured_image.note import Note, frontmatter_string
from featured_image.paths import normalize_path

logger = logging.getLogger(__name__)


class ReferenceCollector:
    def __init__(self, settings: Settings, collaborators: Collaborators) -> None:
        self.collaborators = collaborators
        self.settings = settings
        self.grammar = LinkGrammar.from_settings(settings)

    def collect(self, note: Note) -> set[str]:
        """Return the normalized paths referenced by *note*."""
        used: set[str] = set()
        self.collect_into(note, used)
        return used

    def collect_into(self, note: Note, used: set[str]) -> None:
        """Add *note*'s references to *used*.

        Errors are logged and the note contributes nothing; *used* is only
        updated once the whole note has been processed.
        """
        found: set[str] = set()
        try:
            self._collect_frontmatter(note, found)
            self._collect_body(note, found)
        except Exception:  # noqa: BLE001
            logger.error("Error processing references in %s", note.path, exc_info=True)
            return
        used.update(found)

    def collect_corpus(self, notes: Iterable[Note]) -> set[str]:
        used: set[str] = set()
        for note in notes:
            self.collect_into(note, used)
        return used

    # ------------------------------------------------------------------

    def _collect_frontmatter(self, note: Note, used: set[str]) -> None:
        properties = [self.settings.frontmatter_property]
        if self.settings.create_resized_thumbnail:
            properties.append(self.settings.resized_frontmatter_property)
        for prop in properties:
            value = frontmatter_string(note.frontmatter.get(prop))
            if value:
                self.add_normalized_path(value, used, note)

    def _collect_body(self, note: Note, used: set[str]) -> None:
        def on_card_link(directive: str) -> None:
            local = card_link_local_path(directive)
            if local:
                self.add_normalized_path(local, used, note)

        cardlinks: CardLinkProcessor[None] = CardLinkProcessor(on_card_link)
        for line in note.body.splitlines():
            if cardlinks.consume(line).handled:
                continue
            for match in self.grammar.all(line):
                if match.kind is EmbedKind.WIKI:
                    self.add_normalized_path(safe_decode(match.target), used, note)
                elif match.kind is EmbedKind.MARKDOWN:
                    target = strip_markdown_title(safe_decode(match.target)).strip()
                    self.add_normalized_path(target, used, note)
        cardlinks.finish()

    def add_normalized_path(self, path: str, used: set[str], note: Note) -> None:
        """Normalise *path* as written in *note* and add it to *used*.

        ``https`` URLs are added verbatim; ``http`` URLs are warned about and
        dropped so stale copies of insecure links become collectable.
        """
        target = extract_link_path(path)
        if not target:
            return
        if is_http_url(target):
            warn_insecure_link(note.path, target)
            return
        if is_valid_https_url(target):
            used.add(target)
            return

        resolved = self.collaborators.resolve_local_path(target, note)
        used.add(normalize_path(resolved or target))
