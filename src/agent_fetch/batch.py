"""Bounded-concurrency batch fetching.

Every URL becomes one task. Tasks run behind a counting semaphore, each with
its own timeout, and write their outcome into a pre-sized result list by
index, so output order always equals input order regardless of which task
finishes first. A failing task never cancels its siblings.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from loguru import logger

from agent_fetch.config import FetchConfig
from agent_fetch.constants import TASK_TIMEOUT_SLACK
from agent_fetch.fetcher import Fetcher
from agent_fetch.types import FetchResult

FetchFunc = Callable[[str], Awaitable[FetchResult]]


@dataclass
class TaskResult:
    """Outcome of one batch task.

    Attributes:
        index: 1-based sequence number (input position + 1)
        input_url: The URL as given
        final_url: URL after redirects (empty on failure)
        source: Strategy tag of the producing strategy (empty on failure)
        markdown: Fetched content (empty on failure)
        error: Error message, or None on success
    """

    index: int
    input_url: str
    final_url: str = ""
    source: str = ""
    markdown: str = ""
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def failed_count(results: list[TaskResult]) -> int:
    return sum(1 for r in results if r.failed)


def _format_error(exc: BaseException, timeout: float) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return f"task timed out after {timeout:g}s"
    return str(exc) or type(exc).__name__


async def fetch_batch(
    urls: list[str],
    config: FetchConfig,
    concurrency: int,
    fetch: FetchFunc | None = None,
    deadline: float | None = None,
) -> list[TaskResult]:
    """Fetch every URL with at most ``concurrency`` fetches in flight.

    Args:
        urls: Input URLs, fetched once each
        config: Fetch configuration shared by all tasks
        concurrency: Maximum in-flight tasks (values below 1 become 1)
        fetch: Fetch callable; defaults to a shared ``Fetcher``
        deadline: Optional ``time.monotonic()`` deadline for the whole batch.
            Each task's timeout is shortened to the time left.

    Returns:
        One TaskResult per URL, in input order
    """
    concurrency = max(1, concurrency)
    results: list[TaskResult] = [
        TaskResult(index=i + 1, input_url=u) for i, u in enumerate(urls)
    ]
    if not urls:
        return results

    if fetch is not None:
        return await _run(urls, config, concurrency, fetch, deadline, results)

    async with Fetcher(config) as fetcher:
        return await _run(urls, config, concurrency, fetcher.fetch, deadline, results)


async def _run(
    urls: list[str],
    config: FetchConfig,
    concurrency: int,
    fetch: FetchFunc,
    deadline: float | None,
    results: list[TaskResult],
) -> list[TaskResult]:
    semaphore = asyncio.Semaphore(concurrency)
    task_timeout = config.task_timeout(TASK_TIMEOUT_SLACK)
    logger.info(f"[Batch] Fetching {len(urls)} URLs (concurrency={concurrency})")

    async def run_one(index: int, url: str) -> None:
        async with semaphore:
            timeout = task_timeout
            if deadline is not None:
                timeout = max(0.0, min(timeout, deadline - time.monotonic()))
            try:
                result = await asyncio.wait_for(fetch(url), timeout=timeout)
            except Exception as e:
                results[index].error = _format_error(e, timeout)
                logger.warning(f"[Batch] task[{index + 1}] {url} failed: {results[index].error}")
                return
            results[index].final_url = result.final_url
            results[index].source = result.source
            results[index].markdown = result.markdown
            logger.debug(f"[Batch] task[{index + 1}] {url} done via {result.source}")

    await asyncio.gather(*(run_one(i, u) for i, u in enumerate(urls)))

    failed = failed_count(results)
    logger.info(f"[Batch] Completed: {len(urls) - failed} succeeded, {failed} failed")
    return results
