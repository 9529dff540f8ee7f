"""Content classification heuristics.

Two questions are answered here without any network access:

- Is an HTTP payload already Markdown (so extraction can be skipped)?
- Is Markdown produced by extraction good enough to be returned as final?

Both are pure functions of their input, which keeps the fetch cascade
deterministic for a given response.
"""

from __future__ import annotations

import json
import re

from agent_fetch.constants import (
    DEFAULT_MIN_QUALITY_TEXT,
    MARKDOWN_SCORE_ACCEPT,
    MARKDOWN_SCORE_CAP,
    MAX_HTML_TAGS_IN_MARKDOWN,
    MAX_MARKDOWN_SAMPLE_SIZE,
    SHORT_MARKDOWN_MIN_CHARS,
    STRUCTURED_MARKDOWN_MIN_CHARS,
)

_HTML_TAG_RE = re.compile(r"</?[a-z][a-z0-9]*(\s+[^>]*)?>")
_HEADING_RE = re.compile(r"^#{1,6}\s+\S")
_LIST_RE = re.compile(r"^(?:[-*+]\s+\S|\d+\.\s+\S)")
_QUOTE_RE = re.compile(r"^>\s+\S")
_TABLE_RE = re.compile(r"^\|.+\|$")
_LINK_RE = re.compile(r"\[[^\]]+\]\([^)]+\)")
_LINK_ONLY_RE = re.compile(r"^\[.+\]\(.+\)$")

_HTML_DOCUMENT_MARKERS = ("<!doctype html", "<html", "<body", "<script", "<style")


def _as_text(body: bytes | str) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def is_markdown_content_type(content_type: str) -> bool:
    """Return True if the declared MIME type is text/markdown."""
    return "text/markdown" in (content_type or "").lower()


def looks_like_json_payload(sample: str, content_type: str) -> bool:
    """Return True for JSON documents, including truncated ones.

    Args:
        sample: Trimmed content sample
        content_type: Lowercased Content-Type header value
    """
    if "json" in content_type:
        return True

    trimmed = sample.strip()
    if not trimmed or trimmed[0] not in "{[":
        return False

    try:
        json.loads(trimmed)
        return True
    except ValueError:
        pass

    # A cut-off sample of a large JSON body no longer parses
    return '":' in trimmed


def markdown_score(text: str) -> int:
    """Score how strongly text looks like Markdown.

    Headings and code fences weigh 2, list items, quotes, table rows and
    inline links weigh 1. Scoring stops as soon as the cap is reached.
    """
    score = 0
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        if _HEADING_RE.match(line):
            score += 2
        elif _LIST_RE.match(line) or _QUOTE_RE.match(line) or _TABLE_RE.match(line):
            score += 1

        if "```" in line:
            score += 2
        if _LINK_RE.search(line):
            score += 1

        if score >= MARKDOWN_SCORE_CAP:
            return score
    return score


def is_likely_markdown(body: bytes | str, content_type: str) -> bool:
    """Sniff whether a response body is Markdown rather than HTML or data.

    Args:
        body: Raw response body
        content_type: Declared Content-Type header (may be empty)

    Returns:
        True if the body should be trusted as Markdown
    """
    trimmed = _as_text(body).strip()
    if not trimmed:
        return False

    sample = trimmed[:MAX_MARKDOWN_SAMPLE_SIZE]
    lc_type = (content_type or "").lower()
    if looks_like_json_payload(sample, lc_type):
        return False

    lower = sample.lower()
    if any(marker in lower for marker in _HTML_DOCUMENT_MARKERS):
        return False

    tag_count = len(_HTML_TAG_RE.findall(lower))
    if tag_count >= MAX_HTML_TAGS_IN_MARKDOWN:
        return False

    score = markdown_score(sample)
    if score >= MARKDOWN_SCORE_ACCEPT:
        return True

    if tag_count == 0:
        if "text/markdown" in lc_type:
            return True
        if score >= 1 and len(sample) >= STRUCTURED_MARKDOWN_MIN_CHARS:
            return True
        if "text/html" not in lc_type and len(sample) >= SHORT_MARKDOWN_MIN_CHARS:
            return True

    return False


def substantive_length(text: str) -> int:
    """Count ASCII letters/digits plus every non-ASCII code point."""
    return sum(1 for ch in text if (ch.isascii() and ch.isalnum()) or ord(ch) > 127)


def markdown_quality(markdown: str, min_quality_text: int = DEFAULT_MIN_QUALITY_TEXT) -> bool:
    """Quality gate for Markdown produced by HTML extraction.

    Rejects thin output and link farms (mostly ``[text](url)`` lines) that
    readability-style extraction can produce from navigation-heavy pages.
    """
    trimmed = markdown.strip()
    if not trimmed:
        return False

    if min_quality_text <= 0:
        min_quality_text = DEFAULT_MIN_QUALITY_TEXT

    text_len = substantive_length(trimmed)
    if text_len < min_quality_text:
        return False

    lines = [line.strip() for line in trimmed.split("\n") if line.strip()]
    link_only = sum(1 for line in lines if _LINK_ONLY_RE.match(line))
    if lines and link_only * 2 > len(lines) and text_len < min_quality_text * 3:
        return False

    if markdown_score(trimmed) >= MARKDOWN_SCORE_ACCEPT:
        return True

    return text_len >= min_quality_text * 2


def normalize_markdown(body: bytes | str) -> str:
    """Trim a Markdown payload and terminate it with a single newline."""
    text = _as_text(body).strip()
    if not text:
        return ""
    return text + "\n"
