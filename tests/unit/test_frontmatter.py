"""Unit tests for front matter injection and extraction."""

from __future__ import annotations

from agent_fetch.frontmatter import (
    has_leading_front_matter,
    normalize_meta_value,
    prepend_meta_front_matter,
    split_injected_meta,
    yaml_quote,
)
from agent_fetch.types import PageMeta


class TestHelpers:
    def test_normalize_meta_value(self) -> None:
        assert normalize_meta_value("  Hello \n\t World  ") == "Hello World"
        assert normalize_meta_value(None) == ""

    def test_yaml_quote_doubles_single_quotes(self) -> None:
        assert yaml_quote("it's") == "'it''s'"


class TestHasLeadingFrontMatter:
    def test_closed_block(self) -> None:
        assert has_leading_front_matter("---\ndate: 2026\n---\nBody\n") is True

    def test_crlf_and_bom(self) -> None:
        assert has_leading_front_matter("\ufeff---\r\ntitle: x\r\n---\r\n") is True

    def test_unterminated_block(self) -> None:
        assert has_leading_front_matter("---\ntitle: x\nBody\n") is False

    def test_no_block(self) -> None:
        assert has_leading_front_matter("# Title\n---\n") is False


class TestPrependMetaFrontMatter:
    def test_prepends_both_keys(self) -> None:
        result = prepend_meta_front_matter("# Hello\n", PageMeta("Hello", "World"))
        assert result == "---\ntitle: 'Hello'\ndescription: 'World'\n---\n\n# Hello\n"

    def test_only_title(self) -> None:
        result = prepend_meta_front_matter("Body\n", PageMeta(title="Only"))
        assert result == "---\ntitle: 'Only'\n---\n\nBody\n"

    def test_quotes_are_escaped(self) -> None:
        result = prepend_meta_front_matter("Body\n", PageMeta(title="Bob's page"))
        assert "title: 'Bob''s page'" in result

    def test_idempotent(self) -> None:
        meta = PageMeta("Hello", "World")
        once = prepend_meta_front_matter("# Hello\n", meta)
        assert prepend_meta_front_matter(once, meta) == once

    def test_existing_front_matter_untouched(self) -> None:
        markdown = "---\ndate: '2026-02-22'\n---\n\nBody\n"
        assert prepend_meta_front_matter(markdown, PageMeta("T", "D")) == markdown

    def test_empty_meta_is_noop(self) -> None:
        assert prepend_meta_front_matter("Body\n", PageMeta()) == "Body\n"
        assert prepend_meta_front_matter("Body\n", PageMeta("  ", "\n")) == "Body\n"

    def test_blank_markdown_is_noop(self) -> None:
        assert prepend_meta_front_matter("  \n", PageMeta("T", "D")) == "  \n"


class TestSplitInjectedMeta:
    def test_round_trip(self) -> None:
        meta = PageMeta("It's a title", 'Says "hi": twice')
        injected = prepend_meta_front_matter("# Body\n", meta)
        body, parsed = split_injected_meta(injected)
        assert body == "# Body\n"
        assert parsed == meta

    def test_unknown_keys_not_stripped(self) -> None:
        markdown = "---\ntitle: 'Hello'\ndate: '2026-02-22'\n---\n\nBody\n"
        body, meta = split_injected_meta(markdown)
        assert meta is None
        assert body == markdown

    def test_no_front_matter(self) -> None:
        assert split_injected_meta("# Title\n") == ("# Title\n", None)

    def test_unterminated_block(self) -> None:
        markdown = "---\ntitle: 'Hello'\n"
        assert split_injected_meta(markdown) == (markdown, None)

    def test_crlf_block(self) -> None:
        body, meta = split_injected_meta("---\r\ntitle: 'Hi'\r\n---\r\n\r\nBody\r\n")
        assert meta == PageMeta(title="Hi")
        assert body == "Body\r\n"

    def test_empty_block_not_stripped(self) -> None:
        markdown = "---\n---\n\nBody\n"
        assert split_injected_meta(markdown) == (markdown, None)

    def test_line_without_colon_not_stripped(self) -> None:
        markdown = "---\ntitle: 'x'\njust text\n---\n\nBody\n"
        assert split_injected_meta(markdown) == (markdown, None)
