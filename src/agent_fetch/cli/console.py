"""Shared Rich Console instances for the agent-fetch CLI.

Fetched content is written straight to ``sys.stdout``; these consoles are
for human-facing reports (doctor) and error messages.

Usage:
    from agent_fetch.cli.console import get_console, get_stderr_console
"""

from __future__ import annotations

from rich.console import Console

_console: Console | None = None
_stderr_console: Console | None = None


def get_console() -> Console:
    """Get the shared stdout Console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def get_stderr_console() -> Console:
    """Get the shared stderr Console instance."""
    global _stderr_console
    if _stderr_console is None:
        _stderr_console = Console(stderr=True)
    return _stderr_console


def reset_consoles() -> None:
    """Reset console instances (for testing purposes)."""
    global _console, _stderr_console
    _console = None
    _stderr_console = None
