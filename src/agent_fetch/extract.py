"""HTML article extraction and metadata parsing.

Extraction runs in two steps:
1. readability-lxml reduces the document to its main article HTML
   (falling back to the full document when nothing useful is found)
2. markitdown converts that HTML to Markdown

Static fetches and browser renders share this code path, so both are judged
by the same quality gate.
"""

from __future__ import annotations

import io
from typing import Any

from bs4 import BeautifulSoup
from loguru import logger

from agent_fetch.classify import markdown_quality
from agent_fetch.errors import FetchError, NoContentError
from agent_fetch.frontmatter import normalize_meta_value
from agent_fetch.types import Extraction, PageMeta

_markitdown_instance: Any = None


def _get_markitdown() -> Any:
    """Get or create the shared MarkItDown instance.

    Reusing a single instance avoids repeated initialization overhead.
    """
    global _markitdown_instance
    if _markitdown_instance is None:
        from markitdown import MarkItDown

        _markitdown_instance = MarkItDown()
    return _markitdown_instance


def _as_text(body: bytes | str) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


def extract_article_html(html: str, page_url: str = "") -> str:
    """Return the main article HTML, or an empty string if none is found.

    Args:
        html: Full HTML document
        page_url: Document URL, used to resolve relative links

    Returns:
        Article HTML fragment, or "" when readability finds nothing
    """
    from readability import Document

    try:
        article = Document(html, url=page_url or None).summary(html_partial=True)
    except Exception as e:
        logger.debug(f"[Extract] readability failed for {page_url or '<html>'}: {e}")
        return ""

    if not BeautifulSoup(article, "html.parser").get_text(strip=True):
        return ""
    return article


def convert_html(html: str) -> str:
    """Convert HTML to Markdown using markitdown.

    Raises:
        FetchError: If the converter fails
    """
    try:
        stream = io.BytesIO(html.encode("utf-8"))
        result = _get_markitdown().convert_stream(stream, file_extension=".html")
    except Exception as e:
        raise FetchError(f"convert HTML to markdown: {e}") from e
    return result.text_content if result and result.text_content else ""


def html_to_markdown(
    body: bytes | str, page_url: str, min_quality_text: int
) -> tuple[str, bool]:
    """Extract an HTML document into Markdown and grade it.

    Args:
        body: Raw HTML
        page_url: Final URL of the document
        min_quality_text: Threshold for the quality gate

    Returns:
        Tuple of (markdown ending in one newline, quality_ok)

    Raises:
        NoContentError: If the body is empty or converts to nothing
        FetchError: If conversion fails
    """
    html = _as_text(body)
    if not html.strip():
        raise NoContentError()

    target = extract_article_html(html, page_url) or html
    markdown = convert_html(target).strip()
    if not markdown:
        raise NoContentError()

    return markdown + "\n", markdown_quality(markdown, min_quality_text)


def extract_meta_from_html(body: bytes | str) -> PageMeta:
    """Extract title and description from an HTML document.

    ``<title>`` beats ``og:title`` and ``<meta name="description">`` beats
    ``og:description``. Only ``<head>`` is searched when the document has one.
    """
    html = _as_text(body)
    if not html.strip():
        return PageMeta()

    soup = BeautifulSoup(html, "html.parser")
    root = soup.head or soup

    title_tag = ""
    og_title = ""
    description = ""
    og_description = ""

    for element in root.find_all(["title", "meta"]):
        if element.name == "title":
            if not title_tag:
                title_tag = normalize_meta_value(element.get_text())
            continue

        content = normalize_meta_value(element.get("content"))
        if not content:
            continue
        name = (element.get("name") or "").strip().lower()
        prop = (element.get("property") or "").strip().lower()
        if name == "description" and not description:
            description = content
        elif prop == "og:description" and not og_description:
            og_description = content
        elif prop == "og:title" and not og_title:
            og_title = content

    return PageMeta(
        title=title_tag or og_title,
        description=description or og_description,
    )


def extract_page(
    body: bytes | str, page_url: str, min_quality_text: int, include_meta: bool
) -> Extraction:
    """Run conversion, quality grading and (optionally) metadata parsing.

    This is the single blocking unit handed to the extraction pool.

    Raises:
        NoContentError: If the body is empty or converts to nothing
        FetchError: If conversion fails
    """
    markdown, quality_ok = html_to_markdown(body, page_url, min_quality_text)
    meta = extract_meta_from_html(body) if include_meta else PageMeta()
    return Extraction(markdown=markdown, quality_ok=quality_ok, meta=meta)
