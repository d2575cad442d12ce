"""Embed grammar: the link syntaxes that can name a note's feature image.

Three rules are recognised on a single line (case-insensitive):

- ``![caption](https://www.youtube.com/watch?v=ID)``: YouTube link.  The
  leading ``!`` is optional unless ``require_exclamation_for_youtube`` is set.
- ``![[path/image.png|200]]``: wiki-style embed of a local image, with an
  optional ``|caption``/``|size`` or ``#anchor`` suffix.
- ``![caption](target "title")``: markdown embed whose target is either an
  ``http(s)`` URL (one level of nested parentheses allowed) or a path ending
  in a configured image extension.

The rules are joined into one alternation.  :meth:`LinkGrammar.first` returns
the first hit on a line, :meth:`LinkGrammar.all` every hit.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from urllib.parse import parse_qs, unquote, urlsplit

from featured_image.config import DEFAULT_IMAGE_EXTENSIONS, Settings

logger = logging.getLogger(__name__)

# A "%" not followed by two hex digits makes the whole value undecodable
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")
# Trailing markdown title: "title", 'title' or (title)
_TITLE_RE = re.compile(r"""\s+(?:"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'|\((?:[^)\\]|\\.)*\))\s*$""")

_YOUTUBE_PREFIXES = ("/embed/", "/v/", "/shorts/")
# Caption may hold brackets but never crosses into a following "![" embed
_CAPTION = r"\[(?:(?!!\[).)*?\]\("


class EmbedKind(str, Enum):
    YOUTUBE = "youtube"
    WIKI = "wiki"
    MARKDOWN = "markdown"


@dataclass(frozen=True)
class EmbedMatch:
    kind: EmbedKind
    #: Raw captured target, not yet decoded or stripped
    target: str
    start: int = 0


class LinkGrammar:
    """Compiled embed rules for a given extension list and YouTube strictness."""

    def __init__(
        self,
        image_extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS,
        *,
        require_exclamation_for_youtube: bool = True,
    ) -> None:
        extensions = [ext.strip().lstrip(".") for ext in image_extensions if ext.strip().lstrip(".")]
        self.image_extensions = extensions or list(DEFAULT_IMAGE_EXTENSIONS)
        self.require_exclamation_for_youtube = require_exclamation_for_youtube
        self.pattern = self._compile()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LinkGrammar":
        return cls(
            settings.image_extensions,
            require_exclamation_for_youtube=settings.require_exclamation_for_youtube,
        )

    def _compile(self) -> re.Pattern[str]:
        ext = "|".join(re.escape(e) for e in self.image_extensions)
        marker = "!" if self.require_exclamation_for_youtube else "!?"

        youtube = (
            rf"{marker}{_CAPTION}"
            r"(?P<youtube>https?://(?:www\.|m\.)?(?:youtube\.com|youtu\.be)/\S+)"
            r"\)"
        )
        wiki = rf"!\[\[(?P<wiki_image>[^\]|#]+\.(?:{ext}))(?:[#|][^\]]*)?\]\]"
        markdown = (
            rf"!{_CAPTION}"
            rf"(?P<md_image>(?:https?://(?:[^)(]|\([^)(]*\))+|[^)(]+\.(?:{ext})))"
            r"\)"
        )
        return re.compile("|".join((youtube, wiki, markdown)), re.IGNORECASE)

    @staticmethod
    def _to_embed(match: re.Match[str]) -> EmbedMatch:
        if match.group("youtube"):
            return EmbedMatch(EmbedKind.YOUTUBE, match.group("youtube"), match.start())
        if match.group("wiki_image"):
            return EmbedMatch(EmbedKind.WIKI, match.group("wiki_image"), match.start())
        return EmbedMatch(EmbedKind.MARKDOWN, match.group("md_image"), match.start())

    def first(self, line: str) -> EmbedMatch | None:
        """Return the first embed on *line*, or ``None``."""
        match = self.pattern.search(line)
        return self._to_embed(match) if match else None

    def all(self, line: str) -> Iterator[EmbedMatch]:
        """Yield every embed on *line* in order."""
        for match in self.pattern.finditer(line):
            yield self._to_embed(match)


# ---------------------------------------------------------------------------
# Target helpers
# ---------------------------------------------------------------------------


def safe_decode(value: str) -> str:
    """Percent-decode *value*; return it unchanged when the escapes are malformed."""
    if _BAD_ESCAPE_RE.search(value):
        return value
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def strip_markdown_title(value: str) -> str:
    """Remove a trailing ``"title"`` / ``'title'`` / ``(title)`` from a target."""
    trimmed = value.strip()
    if not trimmed:
        return trimmed
    match = _TITLE_RE.search(trimmed)
    if not match:
        return trimmed
    return trimmed[: match.start()].rstrip() or trimmed


def is_http_url(value: str) -> bool:
    """True when *value* is an insecure ``http://`` link."""
    return value.strip().lower().startswith("http://")


def is_valid_https_url(value: str) -> bool:
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return False
    return parts.scheme.lower() == "https" and bool(parts.hostname)


def get_video_id(url: str) -> str | None:
    """Extract the YouTube video id from *url*, or ``None``.

    Handles ``youtu.be/<id>``, ``youtube.com/watch?v=<id>``,
    ``youtube.com/playlist?v=<id>`` and ``/embed/``, ``/v/``, ``/shorts/``
    paths.  ``m.youtube.com`` is treated like ``youtube.com``.
    """
    try:
        parts = urlsplit(url.strip())
        hostname = (parts.hostname or "").lower()
    except ValueError:
        logger.warning("Invalid YouTube URL: %s", url)
        return None

    path = parts.path
    video_id: str | None = None

    if "youtu.be" in hostname:
        video_id = path[1:]
    elif "youtube.com" in hostname.replace("m.youtube.com", "youtube.com"):
        if path in ("/watch", "/playlist"):
            video_id = parse_qs(parts.query).get("v", [None])[0]
        elif path.startswith(_YOUTUBE_PREFIXES):
            video_id = path.split("/")[2]

    if not video_id:
        logger.debug("No YouTube video id in %s", url)
        return None
    return video_id
