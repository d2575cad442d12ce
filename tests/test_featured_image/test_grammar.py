"""Unit tests for featured_image.grammar."""

import pytest

from featured_image.config import DEFAULT_IMAGE_EXTENSIONS
from featured_image.grammar import (
    EmbedKind,
    LinkGrammar,
    get_video_id,
    is_http_url,
    is_valid_https_url,
    safe_decode,
    strip_markdown_title,
)


@pytest.fixture()
def grammar() -> LinkGrammar:
    return LinkGrammar(["png", "jpg", "jpeg"])


# ---------------------------------------------------------------------------
# Wiki embeds
# ---------------------------------------------------------------------------


class TestWikiEmbeds:
    def test_plain_embed(self, grammar: LinkGrammar):
        match = grammar.first("See ![[photo.png]] here.")
        assert match.kind is EmbedKind.WIKI
        assert match.target == "photo.png"

    def test_size_suffix_stripped(self, grammar: LinkGrammar):
        assert grammar.first("![[photo.png|200]]").target == "photo.png"

    def test_anchor_suffix_stripped(self, grammar: LinkGrammar):
        assert grammar.first("![[photo.png#center]]").target == "photo.png"

    def test_folder_path_kept(self, grammar: LinkGrammar):
        assert grammar.first("![[assets/2024/photo.jpg]]").target == "assets/2024/photo.jpg"

    def test_unconfigured_extension_ignored(self, grammar: LinkGrammar):
        assert grammar.first("![[drawing.svg]]") is None

    def test_note_embed_ignored(self, grammar: LinkGrammar):
        assert grammar.first("![[Other note]]") is None

    def test_link_without_bang_ignored(self, grammar: LinkGrammar):
        assert grammar.first("[[photo.png]]") is None

    def test_case_insensitive_extension(self, grammar: LinkGrammar):
        assert grammar.first("![[PHOTO.PNG]]").target == "PHOTO.PNG"


# ---------------------------------------------------------------------------
# Markdown embeds
# ---------------------------------------------------------------------------


class TestMarkdownEmbeds:
    def test_local_path(self, grammar: LinkGrammar):
        match = grammar.first("![alt](images/pic.jpg)")
        assert match.kind is EmbedKind.MARKDOWN
        assert match.target == "images/pic.jpg"

    def test_https_url_without_extension(self, grammar: LinkGrammar):
        assert grammar.first("![x](https://example.com/image?id=4)").target == "https://example.com/image?id=4"

    def test_http_url_is_still_matched(self, grammar: LinkGrammar):
        # Rejecting insecure links is the caller's job
        assert grammar.first("![x](http://example.com/a.png)").target == "http://example.com/a.png"

    def test_nested_parentheses_in_url(self, grammar: LinkGrammar):
        line = "![x](https://en.wikipedia.org/wiki/Foo_(bar).png)"
        assert grammar.first(line).target == "https://en.wikipedia.org/wiki/Foo_(bar).png"

    def test_title_captured_with_url(self, grammar: LinkGrammar):
        target = grammar.first('![x](https://example.com/a.png "Cover")').target
        assert strip_markdown_title(target) == "https://example.com/a.png"

    def test_local_path_needs_extension(self, grammar: LinkGrammar):
        assert grammar.first("![x](notes/readme.md)") is None

    def test_caption_with_brackets(self, grammar: LinkGrammar):
        assert grammar.first("![Figure [2]](img/fig.png)").target == "img/fig.png"
        assert grammar.first("![see [1] and [2]](https://x.io/a)").target == "https://x.io/a"

    def test_caption_does_not_cross_embeds(self, grammar: LinkGrammar):
        matches = list(grammar.all("![[a.png]] then ![b [1]](c.jpg)"))
        assert [m.target for m in matches] == ["a.png", "c.jpg"]


# ---------------------------------------------------------------------------
# YouTube links
# ---------------------------------------------------------------------------


class TestYouTubeLinks:
    def test_embed_with_exclamation(self, grammar: LinkGrammar):
        match = grammar.first("![Song](https://www.youtube.com/watch?v=dQw4w9WgXcQ)")
        assert match.kind is EmbedKind.YOUTUBE
        assert match.target == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"

    def test_plain_link_ignored_when_exclamation_required(self, grammar: LinkGrammar):
        assert grammar.first("[Song](https://youtu.be/dQw4w9WgXcQ)") is None

    def test_plain_link_accepted_when_not_required(self):
        relaxed = LinkGrammar(["png"], require_exclamation_for_youtube=False)
        match = relaxed.first("[Song](https://youtu.be/dQw4w9WgXcQ)")
        assert match.kind is EmbedKind.YOUTUBE
        assert match.target == "https://youtu.be/dQw4w9WgXcQ"

    def test_caption_with_brackets(self, grammar: LinkGrammar):
        match = grammar.first("![Talk [part 1]](https://youtu.be/dQw4w9WgXcQ)")
        assert match.kind is EmbedKind.YOUTUBE
        assert match.target == "https://youtu.be/dQw4w9WgXcQ"

    def test_youtube_wins_over_markdown_rule(self, grammar: LinkGrammar):
        assert grammar.first("![v](https://youtu.be/abc)").kind is EmbedKind.YOUTUBE


# ---------------------------------------------------------------------------
# Matching modes and construction
# ---------------------------------------------------------------------------


class TestMatchingModes:
    def test_first_returns_leftmost(self, grammar: LinkGrammar):
        match = grammar.first("![b](b.jpg) then ![[a.png]]")
        assert match.target == "b.jpg"

    def test_all_returns_every_match(self, grammar: LinkGrammar):
        matches = list(grammar.all("![[a.png]] and ![b](c.jpg) and ![v](https://youtu.be/x)"))
        assert [m.kind for m in matches] == [EmbedKind.WIKI, EmbedKind.MARKDOWN, EmbedKind.YOUTUBE]
        assert [m.target for m in matches[:2]] == ["a.png", "c.jpg"]

    def test_no_match(self, grammar: LinkGrammar):
        assert grammar.first("Plain text.") is None
        assert list(grammar.all("Plain text.")) == []

    def test_empty_extension_list_uses_defaults(self):
        assert LinkGrammar([]).image_extensions == list(DEFAULT_IMAGE_EXTENSIONS)

    def test_extensions_are_escaped(self):
        odd = LinkGrammar(["p.g"])
        assert odd.first("![[x.p.g]]") is not None
        assert odd.first("![[x.pxg]]") is None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestSafeDecode:
    def test_decodes_escapes(self):
        assert safe_decode("my%20photo.png") == "my photo.png"

    def test_bare_percent_returns_original(self):
        assert safe_decode("100%.png") == "100%.png"

    def test_malformed_escape_returns_original(self):
        assert safe_decode("a%20b%2.png") == "a%20b%2.png"

    def test_invalid_utf8_returns_original(self):
        assert safe_decode("%FF.png") == "%FF.png"


class TestStripMarkdownTitle:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ('a.png "Title"', "a.png"),
            ("a.png 'Title'", "a.png"),
            ("a.png (Title)", "a.png"),
            ("a.png", "a.png"),
            ('  a.png  "T"  ', "a.png"),
            ('"only-a-title"', '"only-a-title"'),
            ("", ""),
        ],
    )
    def test_strip(self, value, expected):
        assert strip_markdown_title(value) == expected


class TestUrlChecks:
    def test_http_detection_is_case_insensitive(self):
        assert is_http_url(" HTTP://example.com/a.png")
        assert not is_http_url("https://example.com/a.png")

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("https://example.com/a.png", True),
            ("HTTPS://example.com/a.png", True),
            ("http://example.com/a.png", False),
            ("https://", False),
            ("image.png", False),
            ("https://[broken", False),
        ],
    )
    def test_https_validation(self, value, expected):
        assert is_valid_https_url(value) is expected


class TestGetVideoId:
    @pytest.mark.parametrize(
        "url",
        [
            "https://youtu.be/dQw4w9WgXcQ",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://m.youtube.com/embed/dQw4w9WgXcQ",
            "https://youtube.com/shorts/dQw4w9WgXcQ",
            "https://www.youtube.com/v/dQw4w9WgXcQ",
            "https://www.youtube.com/playlist?v=dQw4w9WgXcQ&list=PL1",
            "https://m.youtube.com/watch?v=dQw4w9WgXcQ&t=42",
        ],
    )
    def test_known_shapes(self, url):
        assert get_video_id(url) == "dQw4w9WgXcQ"

    def test_short_link_with_query(self):
        assert get_video_id("https://youtu.be/dQw4w9WgXcQ?t=10") == "dQw4w9WgXcQ"

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/channel/UC123",
            "https://www.youtube.com/watch",
            "https://youtu.be/",
            "https://example.com/watch?v=dQw4w9WgXcQ",
            "https://[broken",
        ],
    )
    def test_unrecognised_shapes(self, url):
        assert get_video_id(url) is None
