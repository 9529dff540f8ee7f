"""Browser executable discovery.

Playwright's bundled Chromium is used when it is installed. Otherwise a
system Chrome/Chromium is looked up from a platform-specific candidate list,
or taken from an explicit ``browser_path`` override.
"""

from __future__ import annotations

import os
import shutil
import sys
from collections.abc import Callable
from importlib.util import find_spec
from pathlib import Path

from agent_fetch.errors import BrowserNotFoundError

LookPath = Callable[[str], "str | None"]


def browser_executable_candidates(platform: str, user_profile: str = "") -> list[str]:
    """Names and paths probed for a system browser on ``platform``.

    ``platform`` follows ``sys.platform`` (``linux``, ``darwin``, ``win32``).
    """
    if platform == "darwin":
        return [
            "/Applications/Chromium.app/Contents/MacOS/Chromium",
            "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
            # Homebrew (Apple Silicon, then Intel)
            "/opt/homebrew/bin/chromium",
            "/usr/local/bin/chromium",
        ]
    if platform == "win32":
        candidates = [
            "chrome",
            "chrome.exe",
            r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
            r"C:\Program Files\Google\Chrome\Application\chrome.exe",
        ]
        if user_profile:
            candidates += [
                os.path.join(user_profile, r"AppData\Local\Google\Chrome\Application\chrome.exe"),
                os.path.join(user_profile, r"AppData\Local\Chromium\Application\chrome.exe"),
            ]
        return candidates
    return [
        "headless_shell",
        "headless-shell",
        "chromium",
        "chromium-browser",
        "google-chrome",
        "google-chrome-stable",
        "google-chrome-beta",
        "google-chrome-unstable",
        "/usr/bin/google-chrome",
        "/usr/local/bin/chrome",
        "/snap/bin/chromium",
        "chrome",
    ]


def resolve_browser_executable(
    browser_path: str = "",
    look_path: LookPath = shutil.which,
    platform: str | None = None,
    user_profile: str | None = None,
) -> tuple[str, list[str]]:
    """Find a usable Chrome/Chromium executable.

    Args:
        browser_path: Explicit override; when set, it is the only candidate
        look_path: Resolver for names and paths (``shutil.which`` semantics)
        platform: Platform to search for (defaults to ``sys.platform``)
        user_profile: Windows profile directory (defaults to ``%USERPROFILE%``)

    Returns:
        Tuple of (selected executable, all distinct executables found)

    Raises:
        BrowserNotFoundError: If the override is not executable, or no
            candidate exists
    """
    override = browser_path.strip()
    if override:
        path = look_path(override)
        if not path:
            raise BrowserNotFoundError(
                f"browser path {override!r} is not executable or not found"
            )
        return path, [path]

    if platform is None:
        platform = sys.platform
    if user_profile is None:
        user_profile = os.environ.get("USERPROFILE", "")

    found: list[str] = []
    for candidate in browser_executable_candidates(platform, user_profile):
        path = look_path(candidate)
        if path and path not in found:
            found.append(path)
    if not found:
        raise BrowserNotFoundError(
            "no Chrome/Chromium executable found in known locations"
        )
    return found[0], found


def is_playwright_available() -> bool:
    """Check if playwright is installed."""
    return find_spec("playwright") is not None


def _playwright_browser_dirs() -> list[Path]:
    env_path = os.environ.get("PLAYWRIGHT_BROWSERS_PATH")
    if env_path and env_path != "0":
        return [Path(env_path)]
    if sys.platform == "win32":
        return [Path(os.environ.get("LOCALAPPDATA", "")) / "ms-playwright"]
    if sys.platform == "darwin":
        return [Path.home() / "Library" / "Caches" / "ms-playwright"]
    return [Path.home() / ".cache" / "ms-playwright"]


def is_playwright_browser_installed() -> bool:
    """Check if Playwright's Chromium is downloaded, without launching it."""
    if not is_playwright_available():
        return False
    for base in _playwright_browser_dirs():
        if base.is_dir() and any(base.glob("chromium*")):
            return True
    return False
