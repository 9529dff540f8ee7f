"""Centralized constants for agent-fetch.

Grouping defaults here makes it easier to:
- Find and modify default values
- Understand system limits at a glance
- Keep the CLI, config models and fetch pipeline consistent
"""

from __future__ import annotations

# =============================================================================
# Fetch Modes and Sources
# =============================================================================

MODE_AUTO = "auto"
MODE_STATIC = "static"
MODE_BROWSER = "browser"
MODE_RAW = "raw"
FETCH_MODES: tuple[str, ...] = (MODE_AUTO, MODE_STATIC, MODE_BROWSER, MODE_RAW)

SOURCE_HTTP_MARKDOWN = "http-markdown"
SOURCE_HTTP_STATIC = "http-static"
SOURCE_BROWSER = "browser"
SOURCE_HTTP_RAW = "http-raw"

# =============================================================================
# Fetch Defaults
# =============================================================================

DEFAULT_FETCH_MODE = MODE_AUTO
DEFAULT_HTTP_TIMEOUT = 20.0  # seconds
DEFAULT_BROWSER_TIMEOUT = 30.0  # seconds
DEFAULT_NETWORK_IDLE = 1.2  # seconds of network quiet before capture
DEFAULT_USER_AGENT = "agent-fetch/0.1"
DEFAULT_MAX_BODY_BYTES = 8 * 1024 * 1024  # 8 MiB
DEFAULT_MIN_QUALITY_TEXT = 220  # substantive characters
DEFAULT_INCLUDE_META = True

# Extra time a batch task may run beyond the slowest pipeline timeout
TASK_TIMEOUT_SLACK = 5.0  # seconds

# Threads for HTML parsing and conversion, shared by all concurrent fetches
EXTRACT_WORKERS = 4

# =============================================================================
# HTTP
# =============================================================================

ACCEPT_MARKDOWN = "text/markdown, text/plain;q=0.9, text/html;q=0.8, */*;q=0.1"
ACCEPT_HTML = "text/html, application/xhtml+xml;q=0.9, */*;q=0.1"

# =============================================================================
# Content Classification
# =============================================================================

MAX_MARKDOWN_SAMPLE_SIZE = 12000  # characters sniffed by is_likely_markdown
MAX_HTML_TAGS_IN_MARKDOWN = 6
MARKDOWN_SCORE_ACCEPT = 2
MARKDOWN_SCORE_CAP = 5
SHORT_MARKDOWN_MIN_CHARS = 80
STRUCTURED_MARKDOWN_MIN_CHARS = 180

# =============================================================================
# Batch / Output
# =============================================================================

DEFAULT_CONCURRENCY = 4
FORMAT_MARKDOWN = "markdown"
FORMAT_JSONL = "jsonl"
OUTPUT_FORMATS: tuple[str, ...] = (FORMAT_MARKDOWN, FORMAT_JSONL)

# =============================================================================
# Configuration and Logging
# =============================================================================

CONFIG_FILENAME = "agent-fetch.json"
DEFAULT_USER_CONFIG_DIR = "~/.agent-fetch"
DEFAULT_LOG_LEVEL = "DEBUG"
DEFAULT_LOG_ROTATION = "10 MB"
DEFAULT_LOG_RETENTION = "7 days"

# =============================================================================
# Doctor
# =============================================================================

DOCTOR_PROBE_TIMEOUT = 8.0  # seconds
MAX_PROBE_OUTPUT_TAIL = 800  # characters
