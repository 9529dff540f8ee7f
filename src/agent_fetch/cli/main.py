"""Command-line interface for agent-fetch."""

from __future__ import annotations

import asyncio
import sys
from typing import Any

# Fix Windows console encoding for Unicode output
if sys.platform == "win32":
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    if hasattr(sys.stderr, "reconfigure"):
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import click
from click import Context
from loguru import logger

from agent_fetch.batch import TaskResult, failed_count, fetch_batch
from agent_fetch.cli.console import get_stderr_console
from agent_fetch.cli.framework import AgentFetchGroup
from agent_fetch.cli.logging_config import print_version, setup_logging
from agent_fetch.config import ConfigManager, FetchConfig
from agent_fetch.constants import FORMAT_JSONL, OUTPUT_FORMATS, TASK_TIMEOUT_SLACK
from agent_fetch.executor import shutdown_extraction_pool
from agent_fetch.fetcher import fetch_url
from agent_fetch.output import write_batch_jsonl, write_batch_markdown

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def canonical_header_key(key: str) -> str:
    """Canonicalize a header name: ``x-custom-id`` -> ``X-Custom-Id``."""
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def parse_headers(raw: tuple[str, ...] | list[str]) -> dict[str, list[str]]:
    """Parse repeated ``Key: Value`` options into a header multimap.

    Raises:
        click.BadParameter: If an item has no colon or an empty key
    """
    headers: dict[str, list[str]] = {}
    for item in raw:
        key, sep, value = item.partition(":")
        if not sep:
            raise click.BadParameter(f"{item!r}: expected 'Key: Value'", param_hint="--header")
        key = key.strip()
        if not key:
            raise click.BadParameter(f"{item!r}: empty key", param_hint="--header")
        headers.setdefault(canonical_header_key(key), []).append(value.strip())
    return headers


def _fail(ctx: Context, message: str = "") -> None:
    if message:
        get_stderr_console().print(message, style="red", markup=False, highlight=False)
    ctx.exit(1)


# =============================================================================
# Main CLI app
# =============================================================================


@click.group(
    cls=AgentFetchGroup,
    context_settings=CONTEXT_SETTINGS,
    help=(
        "Fetch web pages as clean Markdown for AI-agent workflows.\n\n"
        "Uses a three-stage fallback pipeline: native Markdown -> static HTML "
        "extraction -> headless browser rendering."
    ),
)
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
def app() -> None:
    pass


@app.command("web", hidden=True, context_settings=CONTEXT_SETTINGS)
@click.argument("urls", nargs=-1, required=True)
@click.option("--mode", default=None, help="Fetch mode: auto|static|browser|raw.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
    default=None,
    help="Output format: markdown|jsonl.",
)
@click.option(
    "--meta/--no-meta",
    default=None,
    help="Include title/description metadata (markdown: front matter; jsonl: meta field).",
)
@click.option("--timeout", type=float, default=None, help="HTTP request timeout in seconds.")
@click.option(
    "--browser-timeout", type=float, default=None, help="Page-load timeout in seconds."
)
@click.option(
    "--network-idle",
    type=float,
    default=None,
    help="Seconds of network quiet to wait for before capturing page content.",
)
@click.option(
    "--wait-selector",
    default=None,
    help="CSS selector to wait for before capturing, e.g. 'article'.",
)
@click.option("--user-agent", default=None, help="User-Agent header.")
@click.option("--max-body-bytes", type=int, default=None, help="Max response bytes to read.")
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Max concurrent fetches when multiple URLs are given.",
)
@click.option(
    "--header",
    "raw_headers",
    multiple=True,
    help="Custom request header, repeatable. Example: --header 'Authorization: Bearer token'",
)
@click.option(
    "--browser-path", default=None, help="Browser executable path or name override."
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to configuration file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
@click.pass_context
def web(
    ctx: Context,
    urls: tuple[str, ...],
    mode: str | None,
    output_format: str | None,
    meta: bool | None,
    timeout: float | None,
    browser_timeout: float | None,
    network_idle: float | None,
    wait_selector: str | None,
    user_agent: str | None,
    max_body_bytes: int | None,
    concurrency: int | None,
    raw_headers: tuple[str, ...],
    browser_path: str | None,
    config_path: str | None,
    verbose: bool,
) -> None:
    """Fetch one or more URLs as Markdown.

    \b
    Examples:
        agent-fetch https://example.com
        agent-fetch --mode static https://example.com/docs
        agent-fetch --format jsonl --concurrency 8 URL1 URL2 URL3
    """
    headers = parse_headers(raw_headers) if raw_headers else None

    manager = ConfigManager()
    cfg = manager.load(config_path)
    setup_logging(
        verbose=verbose,
        log_dir=cfg.log.dir,
        log_level=cfg.log.level,
        rotation=cfg.log.rotation,
        retention=cfg.log.retention,
    )

    fetch_config = manager.merge_fetch_overrides(
        mode=mode,
        include_meta=meta,
        timeout=timeout,
        browser_timeout=browser_timeout,
        network_idle=network_idle,
        wait_selector=wait_selector,
        user_agent=user_agent,
        max_body_bytes=max_body_bytes,
        headers=headers,
        browser_path=browser_path,
    )
    fmt = (output_format or cfg.batch.format).lower()
    limit = concurrency or cfg.batch.concurrency

    try:
        if len(urls) == 1:
            _run_single(ctx, urls[0], fetch_config, fmt)
        else:
            _run_batch(ctx, list(urls), fetch_config, fmt, limit)
    finally:
        shutdown_extraction_pool()


def _run_single(ctx: Context, url: str, config: FetchConfig, fmt: str) -> None:
    async def run() -> Any:
        return await asyncio.wait_for(
            fetch_url(url, config), timeout=config.task_timeout(TASK_TIMEOUT_SLACK)
        )

    try:
        result = asyncio.run(run())
    except Exception as e:
        logger.debug(f"[CLI] Fetch failed: {e!r}")
        message = str(e) or type(e).__name__
        if isinstance(e, asyncio.TimeoutError):
            message = f"timed out after {config.task_timeout(TASK_TIMEOUT_SLACK):g}s"
        if fmt == FORMAT_JSONL:
            failed = TaskResult(index=1, input_url=url, error=message)
            write_batch_jsonl(sys.stdout, [failed], config.include_meta)
            _fail(ctx)
        else:
            _fail(ctx, f"fetch failed: {message}")
        return

    out = sys.stdout
    if fmt == FORMAT_JSONL:
        task = TaskResult(
            index=1,
            input_url=url,
            final_url=result.final_url,
            source=result.source,
            markdown=result.markdown,
        )
        write_batch_jsonl(out, [task], config.include_meta)
    else:
        out.write(result.markdown)
    out.flush()


def _run_batch(
    ctx: Context, urls: list[str], config: FetchConfig, fmt: str, concurrency: int
) -> None:
    results = asyncio.run(fetch_batch(urls, config, concurrency))

    out = sys.stdout
    if fmt == FORMAT_JSONL:
        write_batch_jsonl(out, results, config.include_meta)
    else:
        write_batch_markdown(out, results)
    out.flush()

    if failed_count(results) > 0:
        _fail(ctx)


if __name__ == "__main__":
    app()
