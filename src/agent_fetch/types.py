"""Shared result types for the fetch pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FetchResult:
    """Markdown produced by one successful fetch."""

    markdown: str
    source: str  # http-markdown | http-static | browser | http-raw
    final_url: str = ""


@dataclass(frozen=True)
class PageMeta:
    """Title and description extracted from an HTML document."""

    title: str = ""
    description: str = ""

    def is_empty(self) -> bool:
        return not self.title and not self.description


@dataclass(frozen=True)
class RenderedPage:
    """Output of a browser render, already converted to Markdown."""

    markdown: str
    final_url: str


@dataclass(frozen=True)
class Extraction:
    """Markdown, quality verdict and metadata extracted from one HTML document."""

    markdown: str
    quality_ok: bool
    meta: PageMeta = field(default_factory=PageMeta)
