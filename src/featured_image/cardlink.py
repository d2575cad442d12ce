"""Fenced-block tracking for ``cardlink`` blocks.

Auto Card Link stores rich link previews as fenced code blocks::

    ```cardlink
    url: https://example.com/post
    title: "Example post"
    image: https://example.com/cover.png
    ```

:class:`CardLinkProcessor` is fed a note one line at a time.  Lines inside
any fenced block are reported as handled so the caller does not scan them for
embeds; on the closing fence of a ``cardlink`` block the buffered body is
searched once for an ``image:`` directive, which is handed to the caller's
handler.  A block still open at end of document yields nothing.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")

_FENCE_RE = re.compile(r"^\s*```\s*(\w+)?\s*$")
_IMAGE_DIRECTIVE_RE = re.compile(r"^[ \t]*image:[ \t]*(?P<image>.+?)[ \t]*$", re.IGNORECASE | re.MULTILINE)

CARDLINK_LANGUAGE = "cardlink"


class FenceState(str, Enum):
    OUTSIDE = "outside"
    INSIDE_OTHER = "inside-other"
    INSIDE_CARDLINK = "inside-cardlink"


@dataclass
class CardLinkResult(Generic[T]):
    #: Whether the line belonged to a fenced block (fence lines included)
    handled: bool
    result: T | None = None


def find_image_directive(block_body: str) -> str | None:
    """Return the value of the first ``image:`` line in *block_body*."""
    match = _IMAGE_DIRECTIVE_RE.search(block_body)
    if not match:
        return None
    return match.group("image").strip() or None


def card_link_local_path(directive: str) -> str | None:
    """Return the local path of a quoted directive such as ``"[[cover.png]]"``.

    Unquoted directives are URLs and yield ``None``.
    """
    directive = directive.strip()
    if len(directive) < 2 or not (directive.startswith('"') and directive.endswith('"')):
        return None
    local = directive[1:-1].strip()
    if local.startswith("[["):
        local = local[2:]
    if local.endswith("]]"):
        local = local[:-2]
    return local


class CardLinkProcessor(Generic[T]):
    """Line-by-line fence state machine.

    *handler* receives the raw ``image:`` directive of each cleanly closed
    ``cardlink`` block; a non-``None`` return value is surfaced as
    :attr:`CardLinkResult.result` for that closing line.
    """

    def __init__(self, handler: Callable[[str], T | None]) -> None:
        self._handler = handler
        self.state = FenceState.OUTSIDE
        self._buffer: list[str] = []

    def consume(self, line: str) -> CardLinkResult[T]:
        fence = _FENCE_RE.match(line)

        if fence:
            if self.state is FenceState.OUTSIDE:
                language = (fence.group(1) or "").lower()
                self.state = FenceState.INSIDE_CARDLINK if language == CARDLINK_LANGUAGE else FenceState.INSIDE_OTHER
                self._buffer = []
                return CardLinkResult(handled=True)

            if self.state is FenceState.INSIDE_CARDLINK:
                directive = find_image_directive("\n".join(self._buffer))
                self._reset()
                if directive:
                    result = self._handler(directive)
                    if result is not None:
                        return CardLinkResult(handled=True, result=result)
                return CardLinkResult(handled=True)

            # A fence inside another block only closes it
            self._reset()
            return CardLinkResult(handled=True)

        if self.state is FenceState.INSIDE_CARDLINK:
            self._buffer.append(line)
            return CardLinkResult(handled=True)
        if self.state is FenceState.INSIDE_OTHER:
            return CardLinkResult(handled=True)
        return CardLinkResult(handled=False)

    def finish(self) -> None:
        """End of document: drop any unclosed block without extracting from it."""
        self._reset()

    def _reset(self) -> None:
        self.state = FenceState.OUTSIDE
        self._buffer = []
