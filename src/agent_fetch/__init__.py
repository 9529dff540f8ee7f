"""agent-fetch: fetch web pages as clean Markdown for AI-agent workflows."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from agent_fetch.config import FetchConfig
from agent_fetch.errors import (
    FetchError,
    HTTPStatusError,
    InvalidURLError,
    NoContentError,
    RenderError,
    TransportError,
    UnsupportedModeError,
)
from agent_fetch.types import FetchResult

try:
    __version__ = version("agent-fetch")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "FetchConfig",
    "FetchError",
    "FetchResult",
    "HTTPStatusError",
    "InvalidURLError",
    "NoContentError",
    "RenderError",
    "TransportError",
    "UnsupportedModeError",
    "__version__",
]
