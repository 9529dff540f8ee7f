"""HTTP responder: a single bounded GET per call.

The responder owns one ``httpx.AsyncClient`` that is reused for every GET
issued through it (the client is safe for concurrent use). Redirects are
followed; the final URL is reported back along with the status code.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from agent_fetch.config import FetchConfig
from agent_fetch.errors import HTTPStatusError, TransportError


@dataclass(frozen=True)
class HTTPResponse:
    """Body and headers of one GET response."""

    body: bytes
    content_type: str
    final_url: str
    status_code: int


def build_request_headers(config: FetchConfig, accept: str) -> list[tuple[str, str]]:
    """Build the ordered header list for a GET request.

    Custom headers are appended after Accept/User-Agent so repeated keys are
    all sent, in configuration order.
    """
    headers: list[tuple[str, str]] = []
    if accept:
        headers.append(("Accept", accept))
    if config.user_agent:
        headers.append(("User-Agent", config.user_agent))
    for key, values in config.headers.items():
        for value in values:
            headers.append((key, value))
    return headers


class HTTPResponder:
    """Performs GET requests with the timeout and body cap of a FetchConfig.

    Implements the async context manager protocol for guaranteed cleanup.
    """

    def __init__(
        self,
        config: FetchConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HTTPResponder:
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
            logger.debug("[HTTP] Client created")
        return self._client

    async def close(self) -> None:
        """Close the underlying client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("[HTTP] Client closed")

    async def get(self, url: str, accept: str = "") -> HTTPResponse:
        """Fetch a URL, reading at most ``max_body_bytes`` of the body.

        Args:
            url: Absolute http(s) URL
            accept: Accept header value (omitted when empty)

        Returns:
            HTTPResponse for status codes below 400

        Raises:
            HTTPStatusError: If the final response status is >= 400
            TransportError: On connection, DNS, timeout or read failures
        """
        headers = build_request_headers(self.config, accept)
        timeout = self.config.timeout

        logger.debug(f"[HTTP] GET {url} (accept={accept or '-'})")
        try:
            # httpx timeouts apply per connect/read; this bounds the whole exchange
            response, reason = await asyncio.wait_for(
                self._read(url, headers), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise TransportError(f"http request failed: timed out after {timeout:g}s") from e
        except httpx.HTTPError as e:
            raise TransportError(f"http request failed: {e}") from e

        if response.status_code >= 400:
            raise HTTPStatusError(response.status_code, reason, response.final_url)
        return response

    async def _read(
        self, url: str, headers: list[tuple[str, str]]
    ) -> tuple[HTTPResponse, str]:
        client = self._ensure_client()
        limit = self.config.max_body_bytes

        async with client.stream("GET", url, headers=headers) as response:
            chunks: list[bytes] = []
            received = 0
            async for chunk in response.aiter_bytes():
                remaining = limit - received
                if len(chunk) >= remaining:
                    chunks.append(chunk[:remaining])
                    logger.debug(f"[HTTP] Body truncated at {limit} bytes: {url}")
                    break
                chunks.append(chunk)
                received += len(chunk)

            result = HTTPResponse(
                body=b"".join(chunks),
                content_type=response.headers.get("content-type", ""),
                final_url=str(response.url),
                status_code=response.status_code,
            )
            return result, response.reason_phrase
