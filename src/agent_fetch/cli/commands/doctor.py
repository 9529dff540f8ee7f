"""Doctor command: check that browser rendering can work here."""

from __future__ import annotations

import asyncio
import json
import platform
import sys
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from typing import Any

import click
from rich.panel import Panel

from agent_fetch import __version__
from agent_fetch.browser import (
    is_playwright_browser_installed,
    resolve_browser_executable,
)
from agent_fetch.cli.console import get_console
from agent_fetch.constants import DOCTOR_PROBE_TIMEOUT, MAX_PROBE_OUTPUT_TAIL
from agent_fetch.errors import BrowserNotFoundError

BUNDLED_CHROMIUM = "playwright-chromium (bundled)"

ProbeFunc = Callable[[str], Awaitable[str]]


@dataclass
class BrowserCheck:
    """Result of the browser readiness check."""

    status: str  # ok | warn
    candidates: list[str] = field(default_factory=list)
    selected: str = ""
    bundled_chromium: bool = False
    error: str = ""
    probe_output: str = ""
    guidance: list[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.status == "ok"


def clamp_tail(text: str, limit: int = MAX_PROBE_OUTPUT_TAIL) -> str:
    """Keep the last ``limit`` characters of trimmed, NUL-free text."""
    trimmed = text.replace("\x00", "").strip()
    if limit <= 0 or len(trimmed) <= limit:
        return trimmed
    return trimmed[-limit:]


def browser_guidance(platform_name: str, browser_path: str) -> list[str]:
    """Remediation steps for a failed browser check."""
    override = browser_path.strip()
    if override:
        return [
            f"Verify the override path is executable in the current environment: {override}",
            "In containers, ensure the browser binary and required shared libraries "
            "are installed in the same image layer.",
            "Run doctor with a known path if needed: "
            "agent-fetch doctor --browser-path /path/to/chrome",
        ]

    steps = ["Install Playwright's Chromium: playwright install chromium"]
    if platform_name.startswith("linux"):
        steps += [
            "Or install Chrome/Chromium with your distro package manager and ensure "
            "the executable is discoverable.",
            "For containerized workloads, set --browser-path explicitly to the browser "
            "binary in the image (for example /usr/bin/chromium).",
            "If startup fails with missing shared libraries, run "
            "'playwright install-deps chromium' or install libnss3, libatk-bridge2.0-0, "
            "libgtk-3-0, libgbm1 and fonts.",
        ]
    elif platform_name == "darwin":
        steps += [
            "Or install Google Chrome or Chromium in /Applications.",
            "If Chrome is installed in a custom location, run with "
            "--browser-path '<full path to Chrome binary>'.",
        ]
    elif platform_name == "win32":
        steps += [
            "Or install Google Chrome or Chromium and ensure the executable is "
            "discoverable, or pass --browser-path.",
            "Verify the configured path from the same terminal session used to run "
            "agent-fetch.",
        ]
    else:
        steps.append(
            "Or install Chrome/Chromium and ensure the executable is discoverable, "
            "or pass --browser-path."
        )
    return steps


async def run_browser_probe(executable: str) -> str:
    """Launch the browser and open about:blank; return the final page URL.

    An empty ``executable`` launches Playwright's bundled Chromium.
    """
    from playwright.async_api import async_playwright

    launch_options: dict[str, Any] = {"headless": True}
    if executable:
        launch_options["executable_path"] = executable

    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(**launch_options)
        try:
            page = await browser.new_page()
            await page.goto("about:blank")
            return page.url
        finally:
            await browser.close()


async def diagnose_browser(
    browser_path: str,
    probe: ProbeFunc = run_browser_probe,
    platform_name: str | None = None,
) -> BrowserCheck:
    """Find the browser the renderer would use and try to launch it."""
    if platform_name is None:
        platform_name = sys.platform
    override = browser_path.strip()

    candidates: list[str] = []
    selected = ""
    error = ""
    try:
        selected, candidates = resolve_browser_executable(override)
    except BrowserNotFoundError as e:
        error = str(e)

    bundled = not override and is_playwright_browser_installed()
    if bundled:
        selected = ""
    elif error:
        return BrowserCheck(
            status="warn",
            candidates=candidates,
            error=error,
            guidance=browser_guidance(platform_name, override),
        )

    label = BUNDLED_CHROMIUM if bundled else selected
    try:
        await asyncio.wait_for(probe(selected), timeout=DOCTOR_PROBE_TIMEOUT)
    except asyncio.TimeoutError:
        error = f"probe timed out after {DOCTOR_PROBE_TIMEOUT:g}s"
    except Exception as e:
        error = str(e) or type(e).__name__
    else:
        return BrowserCheck(
            status="ok", candidates=candidates, selected=label, bundled_chromium=bundled
        )

    return BrowserCheck(
        status="warn",
        candidates=candidates,
        selected=label,
        bundled_chromium=bundled,
        error=error,
        probe_output=clamp_tail(error),
        guidance=browser_guidance(platform_name, override),
    )


def _print_report(check: BrowserCheck, browser_path: str, platform_label: str) -> None:
    console = get_console()

    def line(text: str) -> None:
        console.print(text, markup=False, highlight=False, soft_wrap=True)

    line(f"version: {__version__}")
    line(f"platform: {platform_label}")
    if browser_path.strip():
        line(f"browser path override: {browser_path}")

    if check.ready:
        line("browser mode: ready")
        line(f"browser binary: {check.selected}")
        return

    line("browser mode: not ready")
    found = ", ".join(check.candidates) if check.candidates else "none"
    line(f"browser candidates found: {found}")
    if check.error:
        line(f"probe error: {check.error}")
    if check.probe_output:
        line(f"probe output (tail): {check.probe_output!r}")
    if check.guidance:
        steps = "\n".join(f"{i}. {step}" for i, step in enumerate(check.guidance, 1))
        console.print(
            Panel(
                steps,
                title="Recommended fixes",
                border_style="yellow",
            ),
            markup=False,
        )


@click.command("doctor")
@click.option(
    "--browser-path",
    default="",
    help="Browser executable path or name override for the check.",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Output as JSON.",
)
@click.pass_context
def doctor(ctx: click.Context, browser_path: str, as_json: bool) -> None:
    """Run environment checks (browser/runtime) and print remediation guidance.

    Exits with status 1 when browser rendering is not ready.
    """
    from loguru import logger

    logger.disable("agent_fetch")
    try:
        check = asyncio.run(diagnose_browser(browser_path))
    finally:
        logger.enable("agent_fetch")

    platform_label = f"{sys.platform}/{platform.machine()}"
    if as_json:
        payload = {
            "version": __version__,
            "platform": platform_label,
            "browser_path_override": browser_path.strip(),
            "ready": check.ready,
            **asdict(check),
        }
        click.echo(json.dumps(payload, indent=2))
    else:
        _print_report(check, browser_path, platform_label)

    if not check.ready:
        ctx.exit(1)
