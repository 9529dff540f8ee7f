"""Fetch orchestration across strategies.

Modes:
- raw: one HTTP GET, body returned verbatim
- static: HTTP GET, native Markdown or extracted HTML, never renders
- browser: headless browser only
- auto: native Markdown -> static extraction (quality gated) -> browser

Example usage:
    from agent_fetch.fetcher import Fetcher

    async with Fetcher(FetchConfig(mode="auto")) as fetcher:
        result = await fetcher.fetch("https://example.com")
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any
from urllib.parse import urlsplit

import httpx
from loguru import logger

from agent_fetch.classify import (
    is_likely_markdown,
    is_markdown_content_type,
    normalize_markdown,
)
from agent_fetch.config import FetchConfig
from agent_fetch.constants import (
    ACCEPT_HTML,
    ACCEPT_MARKDOWN,
    MODE_AUTO,
    MODE_BROWSER,
    MODE_RAW,
    MODE_STATIC,
    SOURCE_BROWSER,
    SOURCE_HTTP_MARKDOWN,
    SOURCE_HTTP_RAW,
    SOURCE_HTTP_STATIC,
)
from agent_fetch.errors import (
    FetchError,
    HTTPStatusError,
    InvalidURLError,
    NoContentError,
    UnsupportedModeError,
)
from agent_fetch.executor import run_extraction, run_meta_extraction
from agent_fetch.frontmatter import has_leading_front_matter, prepend_meta_front_matter
from agent_fetch.http_client import HTTPResponder, HTTPResponse
from agent_fetch.render import PlaywrightRenderer, Renderer
from agent_fetch.types import Extraction, FetchResult

# A stage returns a result to stop the cascade, or None to fall through
Stage = Callable[[], Awaitable[FetchResult | None]]


def validate_url(url: str) -> None:
    """Reject URLs that cannot be fetched, before any network access.

    Raises:
        InvalidURLError: If the URL is not an absolute http(s) URL
    """
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidURLError(url, str(e)) from e
    if parts.scheme.lower() not in ("http", "https"):
        raise InvalidURLError(url, "scheme must be http or https")
    if not parts.netloc:
        raise InvalidURLError(url, "missing host")


def falls_back_to_browser(error: BaseException) -> bool:
    """Transition predicate for auto mode's initial GET."""
    return isinstance(error, HTTPStatusError)


class Fetcher:
    """Runs one fetch per URL according to ``config.mode``.

    The renderer is injected so tests (or callers with their own browser
    pool) can replace it; the default launches Playwright on demand.
    A Fetcher may be shared by concurrent fetches.
    """

    def __init__(
        self,
        config: FetchConfig | None = None,
        renderer: Renderer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or FetchConfig()
        self.renderer: Renderer = renderer or PlaywrightRenderer()
        self.responder = HTTPResponder(self.config, transport=transport)

    async def __aenter__(self) -> Fetcher:
        await self.responder.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.responder.close()

    async def fetch(self, url: str) -> FetchResult:
        """Fetch a URL as Markdown.

        Raises:
            InvalidURLError: If the URL fails validation
            UnsupportedModeError: If the configured mode is unknown
            HTTPStatusError: On status >= 400 outside auto mode
            NoContentError: If no strategy produced content
            TransportError, RenderError: On network or browser failures
        """
        validate_url(url)

        handlers = {
            MODE_AUTO: self._fetch_auto,
            MODE_STATIC: self._fetch_static,
            MODE_BROWSER: self._fetch_browser,
            MODE_RAW: self._fetch_raw,
        }
        handler = handlers.get(self.config.mode)
        if handler is None:
            raise UnsupportedModeError(self.config.mode)

        logger.debug(f"[Fetch] {url} (mode={self.config.mode})")
        result = await handler(url)
        logger.info(f"[Fetch] {url} -> {result.source} ({len(result.markdown)} chars)")
        return result

    # -------------------------------------------------------------------------
    # Modes
    # -------------------------------------------------------------------------

    async def _fetch_auto(self, url: str) -> FetchResult:
        stages: list[Stage] = []
        try:
            response = await self.responder.get(url, ACCEPT_MARKDOWN)
        except FetchError as e:
            if not falls_back_to_browser(e):
                raise
            logger.info(f"[Fetch] {e}; falling back to browser")
        else:
            stages.append(partial(self._markdown_stage, url, response))
            stages.append(partial(self._static_stage, response))
        stages.append(partial(self._browser_stage, url))

        for stage in stages:
            result = await stage()
            if result is not None:
                return result
        raise NoContentError()

    async def _fetch_static(self, url: str) -> FetchResult:
        response = await self.responder.get(url, ACCEPT_MARKDOWN)

        if self._is_markdown_response(response):
            result = await self._markdown_stage(url, response)
            if result is None:
                raise NoContentError()
            return result

        # Static mode keeps thin pages; only auto mode gates on quality
        extraction = await self._extract(response)
        if not extraction.markdown.strip():
            raise NoContentError()
        return self._static_result(response, extraction)

    async def _fetch_browser(self, url: str) -> FetchResult:
        result = await self._browser_stage(url)
        if result is None:
            raise NoContentError()
        return result

    async def _fetch_raw(self, url: str) -> FetchResult:
        response = await self.responder.get(url, ACCEPT_MARKDOWN)
        if not response.body:
            raise NoContentError()
        return FetchResult(
            markdown=response.body.decode("utf-8", errors="replace"),
            source=SOURCE_HTTP_RAW,
            final_url=response.final_url,
        )

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    @staticmethod
    def _is_markdown_response(response: HTTPResponse) -> bool:
        return is_markdown_content_type(response.content_type) or is_likely_markdown(
            response.body, response.content_type
        )

    async def _markdown_stage(self, url: str, response: HTTPResponse) -> FetchResult | None:
        """Trust a Markdown response as-is, with optional metadata."""
        if not self._is_markdown_response(response):
            return None
        markdown = normalize_markdown(response.body)
        if not markdown:
            return None
        if self.config.include_meta:
            markdown = await self._enrich_markdown_response(url, markdown)
        return FetchResult(
            markdown=markdown, source=SOURCE_HTTP_MARKDOWN, final_url=response.final_url
        )

    async def _extract(self, response: HTTPResponse) -> Extraction:
        return await run_extraction(response.body, response.final_url, self.config)

    async def _static_stage(self, response: HTTPResponse) -> FetchResult | None:
        """Extract the HTML body; None when extraction fails or is too thin."""
        try:
            extraction = await self._extract(response)
        except FetchError as e:
            logger.debug(f"[Fetch] Static extraction failed for {response.final_url}: {e}")
            return None
        if not extraction.quality_ok:
            logger.debug(f"[Fetch] Static extraction below quality bar: {response.final_url}")
            return None
        return self._static_result(response, extraction)

    async def _browser_stage(self, url: str) -> FetchResult | None:
        page = await self.renderer.render(url, self.config)
        if not page.markdown.strip():
            raise NoContentError()
        return FetchResult(markdown=page.markdown, source=SOURCE_BROWSER, final_url=page.final_url)

    def _static_result(self, response: HTTPResponse, extraction: Extraction) -> FetchResult:
        markdown = extraction.markdown
        if self.config.include_meta:
            markdown = prepend_meta_front_matter(markdown, extraction.meta)
        return FetchResult(
            markdown=markdown, source=SOURCE_HTTP_STATIC, final_url=response.final_url
        )

    async def _enrich_markdown_response(self, url: str, markdown: str) -> str:
        """Add front matter to native Markdown using a second, HTML-preferring GET.

        The Markdown body carries no page metadata, so the HTML variant of the
        same URL is requested. Any failure leaves the Markdown unenriched.
        """
        if not markdown.strip() or has_leading_front_matter(markdown):
            return markdown
        try:
            response = await self.responder.get(url, ACCEPT_HTML)
        except FetchError as e:
            logger.debug(f"[Fetch] Metadata request failed for {url}: {e}")
            return markdown
        return prepend_meta_front_matter(markdown, await run_meta_extraction(response.body))


async def fetch_url(
    url: str,
    config: FetchConfig | None = None,
    renderer: Renderer | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FetchResult:
    """Fetch a single URL with a short-lived Fetcher."""
    async with Fetcher(config, renderer=renderer, transport=transport) as fetcher:
        return await fetcher.fetch(url)
