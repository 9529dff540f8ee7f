"""Configuration management for agent-fetch."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agent_fetch.constants import (
    CONFIG_FILENAME,
    DEFAULT_BROWSER_TIMEOUT,
    DEFAULT_CONCURRENCY,
    DEFAULT_FETCH_MODE,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_INCLUDE_META,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_RETENTION,
    DEFAULT_LOG_ROTATION,
    DEFAULT_MAX_BODY_BYTES,
    DEFAULT_MIN_QUALITY_TEXT,
    DEFAULT_NETWORK_IDLE,
    DEFAULT_USER_AGENT,
    DEFAULT_USER_CONFIG_DIR,
    FORMAT_MARKDOWN,
)


class FetchConfig(BaseModel):
    """Per-fetch configuration, immutable once constructed.

    Durations are in seconds. Non-positive timeouts, body limits and quality
    thresholds fall back to their defaults during validation, so code inside
    the pipeline never has to re-check them.

    The mode is kept as a plain string: an unknown mode is reported by the
    fetcher as ``UnsupportedModeError`` rather than rejected here.
    """

    model_config = ConfigDict(frozen=True)

    mode: str = DEFAULT_FETCH_MODE
    timeout: float = DEFAULT_HTTP_TIMEOUT
    browser_timeout: float = DEFAULT_BROWSER_TIMEOUT
    network_idle: float = DEFAULT_NETWORK_IDLE
    wait_selector: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    headers: dict[str, list[str]] = Field(default_factory=dict)
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    min_quality_text: int = DEFAULT_MIN_QUALITY_TEXT
    include_meta: bool = DEFAULT_INCLUDE_META
    browser_path: str = ""

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("timeout", "browser_timeout", "network_idle", mode="after")
    @classmethod
    def _positive_duration(cls, value: float, info: Any) -> float:
        if value > 0:
            return value
        return {
            "timeout": DEFAULT_HTTP_TIMEOUT,
            "browser_timeout": DEFAULT_BROWSER_TIMEOUT,
            "network_idle": DEFAULT_NETWORK_IDLE,
        }[info.field_name]

    @field_validator("max_body_bytes", mode="after")
    @classmethod
    def _default_body_limit(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_MAX_BODY_BYTES

    @field_validator("min_quality_text", mode="after")
    @classmethod
    def _default_quality(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_MIN_QUALITY_TEXT

    @field_validator("headers", mode="before")
    @classmethod
    def _coerce_headers(cls, value: Any) -> Any:
        # Accept {"K": "v"} as shorthand for {"K": ["v"]}
        if isinstance(value, dict):
            return {
                k: [v] if isinstance(v, str) else list(v) for k, v in value.items()
            }
        return value

    def task_timeout(self, slack: float) -> float:
        """Return the per-task ceiling used by the batch executor."""
        return max(self.timeout, self.browser_timeout) + slack


class BatchConfig(BaseModel):
    """Batch execution and output configuration."""

    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1)
    format: Literal["markdown", "jsonl"] = FORMAT_MARKDOWN


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = DEFAULT_LOG_LEVEL
    dir: str | None = None
    rotation: str = DEFAULT_LOG_ROTATION
    retention: str = DEFAULT_LOG_RETENTION


class AgentFetchConfig(BaseModel):
    """Main configuration model."""

    fetch: FetchConfig = Field(default_factory=FetchConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    log: LogConfig = Field(default_factory=LogConfig)


class ConfigManager:
    """Configuration manager for loading config files and merging CLI flags."""

    CONFIG_FILENAME = CONFIG_FILENAME
    DEFAULT_USER_CONFIG_DIR = Path(DEFAULT_USER_CONFIG_DIR).expanduser()

    def __init__(self) -> None:
        self._config: AgentFetchConfig | None = None
        self._config_path: Path | None = None

    @property
    def config(self) -> AgentFetchConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    @property
    def config_path(self) -> Path | None:
        """Get the path of the loaded configuration file."""
        return self._config_path

    def load(
        self,
        config_path: Path | str | None = None,
        env_override: bool = True,
    ) -> AgentFetchConfig:
        """
        Load configuration from file with fallback chain.

        Priority (highest to lowest):
        1. Explicit config_path parameter
        2. AGENT_FETCH_CONFIG environment variable
        3. ./agent-fetch.json (current directory)
        4. ~/.agent-fetch/config.json (user directory)
        5. Default values
        """
        config_data: dict[str, Any] = {}

        resolved_path = self._resolve_config_path(config_path, env_override)
        if resolved_path and resolved_path.exists():
            config_data = self._load_json(resolved_path)
            self._config_path = resolved_path

        self._config = AgentFetchConfig.model_validate(config_data)
        return self._config

    def _resolve_config_path(
        self,
        config_path: Path | str | None,
        env_override: bool,
    ) -> Path | None:
        """Resolve configuration file path based on priority."""
        if config_path:
            return Path(config_path)

        if env_override:
            env_path = os.environ.get("AGENT_FETCH_CONFIG")
            if env_path:
                return Path(env_path)

        cwd_config = Path.cwd() / self.CONFIG_FILENAME
        if cwd_config.exists():
            return cwd_config

        user_config = self.DEFAULT_USER_CONFIG_DIR / "config.json"
        if user_config.exists():
            return user_config

        return None

    def _load_json(self, path: Path) -> dict[str, Any]:
        """Load JSON configuration file."""
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    def merge_fetch_overrides(self, **kwargs: Any) -> FetchConfig:
        """Merge CLI arguments into the fetch section.

        ``None`` values are ignored so unset flags keep the file/default value.
        The merged data is validated again, which re-applies the defaulting
        rules of ``FetchConfig``.
        """
        current = self.config
        data = current.fetch.model_dump()
        data.update({k: v for k, v in kwargs.items() if v is not None})
        fetch = FetchConfig.model_validate(data)
        self._config = current.model_copy(update={"fetch": fetch})
        return fetch
