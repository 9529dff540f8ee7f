"""Unit tests for the extraction pool."""

from __future__ import annotations

import threading
from unittest.mock import patch

import pytest

from agent_fetch import executor
from agent_fetch.config import FetchConfig
from agent_fetch.errors import NoContentError
from agent_fetch.executor import (
    get_extraction_pool,
    run_extraction,
    run_meta_extraction,
    shutdown_extraction_pool,
)
from agent_fetch.extract import extract_page
from agent_fetch.types import PageMeta


@pytest.fixture(autouse=True)
def fresh_pool():
    shutdown_extraction_pool()
    yield
    shutdown_extraction_pool()


class TestRunExtraction:
    @pytest.mark.asyncio
    async def test_converts_grades_and_parses_meta(self, article_html: str) -> None:
        extraction = await run_extraction(article_html, "https://example.com/a", FetchConfig())

        assert "ferry operators" in extraction.markdown
        assert extraction.quality_ok
        assert extraction.meta.title == "River Town Notes"
        assert extraction.meta.description == "A short piece about a river town."

    @pytest.mark.asyncio
    async def test_meta_skipped_when_disabled(self, article_html: str) -> None:
        config = FetchConfig(include_meta=False)
        extraction = await run_extraction(article_html, "https://example.com/a", config)
        assert extraction.meta == PageMeta()

    @pytest.mark.asyncio
    async def test_errors_propagate(self) -> None:
        with pytest.raises(NoContentError):
            await run_extraction(b"  ", "https://example.com", FetchConfig())

    @pytest.mark.asyncio
    async def test_parsing_runs_off_the_event_loop(self, article_html: str) -> None:
        threads: list[str] = []

        def recording_extract(*args):
            threads.append(threading.current_thread().name)
            return extract_page(*args)

        def recording_meta(body):
            threads.append(threading.current_thread().name)
            return PageMeta(title="T")

        with (
            patch.object(executor, "extract_page", side_effect=recording_extract),
            patch.object(executor, "extract_meta_from_html", side_effect=recording_meta),
        ):
            await run_extraction(article_html, "https://example.com/a", FetchConfig())
            meta = await run_meta_extraction(article_html)

        assert meta.title == "T"
        assert len(threads) == 2
        assert all(name.startswith("agent-fetch-extract") for name in threads)
        assert threading.current_thread().name not in threads


class TestExtractionPool:
    def test_pool_is_shared(self) -> None:
        assert get_extraction_pool() is get_extraction_pool()

    def test_shutdown_recreates_on_next_use(self) -> None:
        first = get_extraction_pool()
        shutdown_extraction_pool()
        assert get_extraction_pool() is not first

    def test_shutdown_without_pool(self) -> None:
        shutdown_extraction_pool()
        shutdown_extraction_pool()
