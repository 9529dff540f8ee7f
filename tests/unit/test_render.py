"""Unit tests for the Playwright renderer."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from agent_fetch.config import FetchConfig
from agent_fetch.errors import BrowserNotFoundError, RenderError
from agent_fetch.idle import NetworkIdleWatcher
from agent_fetch.render import (
    PlaywrightRenderer,
    Renderer,
    _attach_watcher,
    resolve_launch_executable,
    to_browser_headers,
)

URL = "https://example.com/page"


def _mock_playwright(html: str, final_url: str = URL):
    """Build mocks for async_playwright() -> chromium -> browser -> context -> page."""
    page = AsyncMock()
    page.on = MagicMock()
    page.url = final_url
    page.evaluate = AsyncMock(return_value=html)

    context = AsyncMock()
    context.new_page = AsyncMock(return_value=page)

    browser = AsyncMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=playwright)
    manager.__aexit__ = AsyncMock(return_value=False)
    return manager, playwright, browser, page


class TestToBrowserHeaders:
    def test_joins_values(self) -> None:
        headers = to_browser_headers(
            {"X-Test": ["a", "b"], "Cookie": ["k1=v1", "k2=v2"], "Accept-Language": ["en"]}
        )
        assert headers == {
            "Accept-Language": "en",
            "Cookie": "k1=v1; k2=v2",
            "X-Test": "a, b",
        }
        assert list(headers) == sorted(headers)

    def test_empty_values_skipped(self) -> None:
        assert to_browser_headers({"X-Empty": []}) == {}


class TestResolveLaunchExecutable:
    def test_explicit_path_wins(self) -> None:
        assert resolve_launch_executable("/opt/chrome") == "/opt/chrome"

    def test_bundled_chromium_preferred(self) -> None:
        with patch("agent_fetch.render.is_playwright_browser_installed", return_value=True):
            assert resolve_launch_executable("") == ""

    def test_system_browser_fallback(self) -> None:
        with (
            patch("agent_fetch.render.is_playwright_browser_installed", return_value=False),
            patch(
                "agent_fetch.render.resolve_browser_executable",
                return_value=("/usr/bin/chromium", ["/usr/bin/chromium"]),
            ),
        ):
            assert resolve_launch_executable("") == "/usr/bin/chromium"

    def test_nothing_found(self) -> None:
        with (
            patch("agent_fetch.render.is_playwright_browser_installed", return_value=False),
            patch(
                "agent_fetch.render.resolve_browser_executable",
                side_effect=BrowserNotFoundError("none"),
            ),
        ):
            assert resolve_launch_executable("") == ""


class TestAttachWatcher:
    @pytest.mark.asyncio
    async def test_page_events_drive_watcher(self) -> None:
        page = MagicMock()
        watcher = NetworkIdleWatcher(1.0)
        _attach_watcher(page, watcher)

        handlers = {call.args[0]: call.args[1] for call in page.on.call_args_list}
        assert set(handlers) == {"request", "requestfinished", "requestfailed"}

        request = MagicMock(resource_type="document")
        socket = MagicMock(resource_type="websocket")
        handlers["request"](request)
        handlers["request"](socket)
        assert watcher.pending_count == 1

        handlers["requestfinished"](request)
        assert watcher.pending_count == 0
        watcher.close()


class TestPlaywrightRenderer:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(PlaywrightRenderer(), Renderer)

    @pytest.mark.asyncio
    async def test_render_success(self, article_html: str) -> None:
        manager, playwright, browser, page = _mock_playwright(
            article_html, final_url="https://example.com/final"
        )
        config = FetchConfig(
            network_idle=0.01,
            user_agent="ua/1",
            headers={"Cookie": ["a=b", "c=d"]},
        )
        with (
            patch("playwright.async_api.async_playwright", return_value=manager),
            patch("agent_fetch.render.resolve_launch_executable", return_value=""),
        ):
            result = await PlaywrightRenderer().render(URL, config)

        assert result.final_url == "https://example.com/final"
        assert result.markdown.startswith("---\ntitle: 'River Town Notes'\n")
        assert "ferry operators" in result.markdown

        playwright.chromium.launch.assert_awaited_once_with(headless=True)
        browser.new_context.assert_awaited_once_with(
            user_agent="ua/1", extra_http_headers={"Cookie": "a=b; c=d"}
        )
        page.goto.assert_awaited_once()
        assert page.goto.call_args.kwargs["wait_until"] == "domcontentloaded"
        page.wait_for_selector.assert_awaited_once()
        assert page.wait_for_selector.call_args.args[0] == "body"
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wait_selector_and_executable(self, article_html: str) -> None:
        manager, playwright, _browser, page = _mock_playwright(article_html)
        config = FetchConfig(network_idle=0.01, wait_selector="article", include_meta=False)
        with (
            patch("playwright.async_api.async_playwright", return_value=manager),
            patch("agent_fetch.render.resolve_launch_executable", return_value="/opt/chrome"),
        ):
            result = await PlaywrightRenderer().render(URL, config)

        assert not result.markdown.startswith("---")
        assert playwright.chromium.launch.call_args.kwargs["executable_path"] == "/opt/chrome"
        assert page.wait_for_selector.call_args.args[0] == "article"
        assert page.wait_for_selector.call_args.kwargs["state"] == "visible"

    @pytest.mark.asyncio
    async def test_navigation_failure_wrapped(self) -> None:
        manager, _playwright, browser, page = _mock_playwright("")
        page.goto = AsyncMock(side_effect=Exception("net::ERR_NAME_NOT_RESOLVED"))
        with (
            patch("playwright.async_api.async_playwright", return_value=manager),
            patch("agent_fetch.render.resolve_launch_executable", return_value=""),
        ):
            with pytest.raises(RenderError, match="ERR_NAME_NOT_RESOLVED"):
                await PlaywrightRenderer().render(URL, FetchConfig(network_idle=0.01))

        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_timeout_wrapped(self) -> None:
        manager, _playwright, _browser, page = _mock_playwright("")

        async def hang(*args, **kwargs):
            await asyncio.sleep(10)

        page.goto = AsyncMock(side_effect=hang)
        config = FetchConfig(browser_timeout=0.05, network_idle=0.01)
        with (
            patch("playwright.async_api.async_playwright", return_value=manager),
            patch("agent_fetch.render.resolve_launch_executable", return_value=""),
        ):
            with pytest.raises(RenderError, match="timed out"):
                await PlaywrightRenderer().render(URL, config)
