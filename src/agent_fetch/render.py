"""Playwright-based rendering backend.

Each render opens its own browser session, so concurrent renders never share
page state. The rendered DOM goes through the same extractor as static
fetches.

Usage:
    from agent_fetch.render import PlaywrightRenderer

    page = await PlaywrightRenderer().render(url, config)
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from agent_fetch.browser import is_playwright_browser_installed, resolve_browser_executable
from agent_fetch.config import FetchConfig
from agent_fetch.errors import BrowserNotFoundError, RenderError
from agent_fetch.executor import run_extraction
from agent_fetch.frontmatter import prepend_meta_front_matter
from agent_fetch.idle import NetworkIdleWatcher
from agent_fetch.types import RenderedPage

_OUTER_HTML_JS = "() => document.documentElement.outerHTML"


@runtime_checkable
class Renderer(Protocol):
    """Capability that turns a URL into Markdown through a real browser."""

    async def render(self, url: str, config: FetchConfig) -> RenderedPage: ...


def to_browser_headers(headers: dict[str, list[str]]) -> dict[str, str]:
    """Flatten a header multimap for the browser.

    Cookie values are joined with ``"; "``, every other header with ``", "``.
    Keys are emitted in sorted order.
    """
    result: dict[str, str] = {}
    for key in sorted(headers):
        values = headers[key]
        if not values:
            continue
        separator = "; " if key.lower() == "cookie" else ", "
        result[key] = separator.join(values)
    return result


def resolve_launch_executable(browser_path: str) -> str:
    """Pick the executable passed to Playwright's ``launch``.

    An explicit path wins. Without one, Playwright's own Chromium is used
    when downloaded (empty result); otherwise the first system browser found.
    """
    if browser_path:
        return browser_path
    if is_playwright_browser_installed():
        return ""
    try:
        selected, _ = resolve_browser_executable()
    except BrowserNotFoundError:
        return ""
    logger.debug(f"[Render] Using system browser: {selected}")
    return selected


def _attach_watcher(page: Any, watcher: NetworkIdleWatcher) -> None:
    page.on(
        "request",
        lambda request: watcher.request_started(request, request.resource_type),
    )
    page.on("requestfinished", watcher.request_finished)
    page.on("requestfailed", watcher.request_failed)


class PlaywrightRenderer:
    """Renders pages in headless Chromium via Playwright.

    Stateless between calls: the browser is launched and closed inside
    ``render``.
    """

    def __init__(self, headless: bool = True) -> None:
        self.headless = headless

    async def render(self, url: str, config: FetchConfig) -> RenderedPage:
        """Render a URL and convert the settled DOM to Markdown.

        Raises:
            RenderError: If launching, navigating, waiting or capturing fails
            NoContentError: If the rendered document converts to nothing
        """
        logger.debug(f"[Render] Rendering {url}")
        try:
            html, final_url = await asyncio.wait_for(
                self._capture(url, config), timeout=config.browser_timeout
            )
        except asyncio.TimeoutError as e:
            raise RenderError(
                f"browser render failed: timed out after {config.browser_timeout}s"
            ) from e
        except Exception as e:
            raise RenderError(f"browser render failed: {e}") from e

        extraction = await run_extraction(html, final_url, config)
        markdown = extraction.markdown
        if config.include_meta:
            markdown = prepend_meta_front_matter(markdown, extraction.meta)

        logger.debug(f"[Render] Captured {len(html)} chars from {final_url}")
        return RenderedPage(markdown=markdown, final_url=final_url)

    async def _capture(self, url: str, config: FetchConfig) -> tuple[str, str]:
        from playwright.async_api import async_playwright

        timeout_ms = config.browser_timeout * 1000
        launch_options: dict[str, Any] = {"headless": self.headless}
        executable = resolve_launch_executable(config.browser_path)
        if executable:
            launch_options["executable_path"] = executable

        context_options: dict[str, Any] = {}
        if config.user_agent:
            context_options["user_agent"] = config.user_agent
        extra_headers = to_browser_headers(config.headers)
        if extra_headers:
            context_options["extra_http_headers"] = extra_headers

        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(**launch_options)
            watcher = NetworkIdleWatcher(config.network_idle)
            try:
                context = await browser.new_context(**context_options)
                page = await context.new_page()
                _attach_watcher(page, watcher)

                await page.goto(url, timeout=timeout_ms, wait_until="domcontentloaded")
                if config.wait_selector:
                    await page.wait_for_selector(
                        config.wait_selector, state="visible", timeout=timeout_ms
                    )
                else:
                    await page.wait_for_selector("body", state="attached", timeout=timeout_ms)

                await watcher.wait()
                html = await page.evaluate(_OUTER_HTML_JS)
                return html, page.url
            finally:
                watcher.close()
                await browser.close()
