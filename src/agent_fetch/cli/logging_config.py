"""Logging configuration for the agent-fetch CLI.

Key features:
- Unified loguru-based logging on stderr (stdout is reserved for content)
- Intercepts third-party library logs (httpx, playwright, markitdown, ...)
- Optional rotating log file
"""

from __future__ import annotations

import logging
import os
import sys
import warnings
from pathlib import Path
from typing import Any

import click
from click import Context
from loguru import logger

from agent_fetch import __version__
from agent_fetch.constants import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_RETENTION,
    DEFAULT_LOG_ROTATION,
)

# Third-party loggers to intercept and route to loguru
INTERCEPTED_LOGGERS = [
    "httpx",
    "httpcore",
    "playwright",
    "playwright.async_api",
    "markitdown",
    "readability",
    "readability.readability",
    "charset_normalizer",
    "asyncio",
]

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <5} | {module}:{line: <3} | {message}"


class InterceptHandler(logging.Handler):
    """Intercept standard logging and forward to loguru.

    Uses the record's own location info instead of frame tracing.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.bind(
            name=record.name,
            module=record.module,
            function=record.funcName,
            line=record.lineno,
        ).opt(exception=record.exc_info).log(level, record.getMessage())


def setup_logging(
    verbose: bool,
    log_dir: str | None = None,
    log_level: str = DEFAULT_LOG_LEVEL,
    rotation: str = DEFAULT_LOG_ROTATION,
    retention: str = DEFAULT_LOG_RETENTION,
    quiet: bool = False,
) -> tuple[int | None, Path | None]:
    """Configure loguru handlers.

    Args:
        verbose: Show DEBUG messages on the console (default is WARNING+)
        log_dir: Directory for log files. Supports ~ expansion.
            Can be overridden by the AGENT_FETCH_LOG_DIR env var.
        log_level: Log level for file output
        rotation: Log file rotation size
        retention: Log file retention period
        quiet: Disable console logging entirely

    Returns:
        Tuple of (console_handler_id, log_file_path). The log file path is
        None if file logging is disabled.
    """
    from datetime import datetime

    warnings.filterwarnings("ignore", category=UserWarning, module="pydantic")

    logger.remove()

    console_handler_id: int | None = None
    if not quiet:
        console_handler_id = logger.add(
            sys.stderr,
            level="DEBUG" if verbose else "WARNING",
            format=CONSOLE_FORMAT,
            filter=lambda record: _should_show_log(record, verbose),
        )

    env_log_dir = os.environ.get("AGENT_FETCH_LOG_DIR")
    if env_log_dir:
        log_dir = env_log_dir

    log_file_path: Path | None = None
    if log_dir:
        log_path = Path(log_dir).expanduser()
        log_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        log_file_path = log_path / f"agent-fetch_{timestamp}.log"
        logger.add(
            log_file_path,
            level=log_level,
            rotation=rotation,
            retention=retention,
            format=FILE_FORMAT,
        )

    _setup_log_interception()

    return console_handler_id, log_file_path


def _setup_log_interception() -> None:
    """Route third-party stdlib loggers into loguru at WARNING+."""
    intercept_handler = InterceptHandler()

    for logger_name in INTERCEPTED_LOGGERS:
        stdlib_logger = logging.getLogger(logger_name)
        stdlib_logger.handlers.clear()
        stdlib_logger.addHandler(intercept_handler)
        stdlib_logger.propagate = False
        stdlib_logger.setLevel(logging.WARNING)


def _is_third_party_log(name: str) -> bool:
    """Check if a bound logger name belongs to an intercepted library.

    Exact or dotted-prefix match, so "httpx" matches "httpx.client".
    """
    name_lower = name.lower()
    for intercepted in INTERCEPTED_LOGGERS:
        intercepted_lower = intercepted.lower()
        if name_lower == intercepted_lower or name_lower.startswith(f"{intercepted_lower}."):
            return True
    return False


def _should_show_log(record: Any, verbose: bool) -> bool:
    """Console filter: hide third-party chatter below WARNING, even in verbose mode."""
    level_no = record["level"].no
    if level_no >= logging.WARNING:
        return True
    if not verbose:
        return False
    name = record.get("extra", {}).get("name", "")
    return not _is_third_party_log(name)


def print_version(ctx: Context, param: Any, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"agent-fetch {__version__}")
    ctx.exit(0)
