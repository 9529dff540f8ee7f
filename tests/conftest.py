"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from agent_fetch.cli.console import reset_consoles
from agent_fetch.config import FetchConfig
from agent_fetch.types import RenderedPage

# =============================================================================
# Sample Content Fixtures
# =============================================================================

ARTICLE_PARAGRAPHS = [
    "The river town wakes slowly in winter, when fog settles over the water "
    "and the ferry horns sound long before the first boats appear. Fishermen "
    "check their nets by lantern light, and the bakery on the corner opens "
    "its shutters while the streets are still quiet and cold.",
    "By midmorning the market square fills with traders selling apples, "
    "smoked fish, wool, and copper pots. Children weave between the stalls, "
    "and the old clock tower, which has not kept accurate time in decades, "
    "strikes whenever the wind pushes hard enough against its hands.",
    "Visitors often ask why the town never built a bridge. The answer, "
    "according to the ferry operators, is that nobody ever agreed where it "
    "should go, and after a century of debate the argument itself became a "
    "local tradition that nobody wants to settle anymore.",
]


@pytest.fixture
def article_html() -> str:
    """Return an HTML article page with title and description metadata."""
    paragraphs = "\n".join(f"<p>{p}</p>" for p in ARTICLE_PARAGRAPHS)
    return f"""<!DOCTYPE html>
<html>
<head>
  <title>River Town Notes</title>
  <meta name="description" content="A short piece about a river town.">
  <meta property="og:title" content="OG River Town">
</head>
<body>
  <nav><a href="/">Home</a> <a href="/about">About</a></nav>
  <article>
    <h1>River Town Notes</h1>
    {paragraphs}
  </article>
  <footer>Copyright</footer>
</body>
</html>
"""


@pytest.fixture
def thin_html() -> str:
    """Return an app-shell page whose static content is too thin to keep."""
    return """<!DOCTYPE html>
<html>
<head><title>App</title></head>
<body><div id="root"><p>Loading application shell now.</p></div></body>
</html>
"""


@pytest.fixture
def sample_markdown() -> str:
    """Return sample markdown content for testing."""
    return """# Test Document

This is a test document with some content.

## Section 1

- Item 1
- Item 2
"""


# =============================================================================
# Fetch Fixtures
# =============================================================================


class StubRenderer:
    """Renderer double that records calls and returns fixed output."""

    def __init__(
        self,
        markdown: str = "# Rendered\n",
        final_url: str = "",
        error: Exception | None = None,
    ) -> None:
        self.markdown = markdown
        self.final_url = final_url
        self.error = error
        self.calls: list[str] = []

    async def render(self, url: str, config: FetchConfig) -> RenderedPage:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return RenderedPage(markdown=self.markdown, final_url=self.final_url or url)


@pytest.fixture
def stub_renderer() -> StubRenderer:
    return StubRenderer()


@pytest.fixture
def renderer_factory() -> type[StubRenderer]:
    """Return the StubRenderer class for tests that need custom output."""
    return StubRenderer


@pytest.fixture
def make_transport() -> Callable[..., httpx.MockTransport]:
    """Build an httpx.MockTransport that records every request.

    The handler receives the request and returns an httpx.Response. The
    recorded requests are exposed as ``transport.requests``.
    """

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        transport = httpx.MockTransport(recording)
        transport.requests = requests  # type: ignore[attr-defined]
        return transport

    return factory


@pytest.fixture(autouse=True)
def _reset_consoles() -> None:
    reset_consoles()
