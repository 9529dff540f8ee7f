"""Extraction pool: HTML work off the event loop.

Readability scoring, markitdown conversion and BeautifulSoup metadata
parsing are CPU-bound and can take a while on multi-megabyte documents.
Every fetch and render hands that work to one shared thread pool so a large
page never stalls the other tasks of a batch.

Usage:
    from agent_fetch.executor import run_extraction

    extraction = await run_extraction(response.body, response.final_url, config)
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, TypeVar

from agent_fetch.config import FetchConfig
from agent_fetch.constants import EXTRACT_WORKERS
from agent_fetch.extract import extract_meta_from_html, extract_page
from agent_fetch.types import Extraction, PageMeta

T = TypeVar("T")

_EXTRACTION_POOL: ThreadPoolExecutor | None = None
_POOL_LOCK = threading.Lock()


def get_extraction_pool() -> ThreadPoolExecutor:
    """Get or lazily create the shared extraction pool."""
    global _EXTRACTION_POOL
    with _POOL_LOCK:
        if _EXTRACTION_POOL is None:
            _EXTRACTION_POOL = ThreadPoolExecutor(
                max_workers=EXTRACT_WORKERS,
                thread_name_prefix="agent-fetch-extract",
            )
        return _EXTRACTION_POOL


async def run_in_extraction_pool(func: Callable[..., T], *args: Any) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_extraction_pool(), partial(func, *args))


async def run_extraction(body: bytes | str, page_url: str, config: FetchConfig) -> Extraction:
    """Convert, grade and (when ``config.include_meta``) parse metadata in the pool.

    Raises:
        NoContentError: If the body is empty or converts to nothing
        FetchError: If conversion fails
    """
    return await run_in_extraction_pool(
        extract_page, body, page_url, config.min_quality_text, config.include_meta
    )


async def run_meta_extraction(body: bytes | str) -> PageMeta:
    """Parse title and description in the pool."""
    return await run_in_extraction_pool(extract_meta_from_html, body)


def shutdown_extraction_pool() -> None:
    """Wait for running extractions and release the pool's threads."""
    global _EXTRACTION_POOL
    with _POOL_LOCK:
        pool, _EXTRACTION_POOL = _EXTRACTION_POOL, None
    if pool is not None:
        pool.shutdown(wait=True)
