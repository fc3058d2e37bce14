"""Configuration loader for chainmode.

Loads from chainmode.toml with sensible defaults when file is absent.
Configuration is loaded once at startup and passed via dependency injection.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""


@dataclass(frozen=True)
class ModesConfig:
    """Defaults applied to every mode run unless overridden per call."""

    default_mode: str = "while_needs_response"
    max_runs: int = 0  # 0 = unset
    max_rounds: int = 100  # safety ceiling; 0 = disabled
    max_retry_count: int = 3

    @property
    def resolved_max_runs(self) -> int | None:
        return self.max_runs if self.max_runs > 0 else None

    @property
    def resolved_max_rounds(self) -> int | None:
        return self.max_rounds if self.max_rounds > 0 else None


@dataclass(frozen=True)
class RetryConfig:
    """Model invocation retry settings."""

    max_attempts: int = 3
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 8.0
    jitter_seconds: float = 0.25


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class Config:
    """Top-level chainmode configuration."""

    modes: ModesConfig = field(default_factory=ModesConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _int_setting(data: dict, key: str, default: int, *, minimum: int = 0) -> int:
    raw = data.get(key, default)
    if isinstance(raw, bool):
        raise ConfigError(f"Setting '{key}' must be an integer, got {raw!r}")
    try:
        value = int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Setting '{key}' must be an integer, got {raw!r}") from e
    if value < minimum:
        raise ConfigError(f"Setting '{key}' must be >= {minimum}, got {value}")
    return value


def _float_setting(data: dict, key: str, default: float) -> float:
    raw = data.get(key, default)
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Setting '{key}' must be a number, got {raw!r}") from e
    return max(0.0, value)


def default_config_path() -> Path | None:
    """Return the first existing chainmode.toml (CWD, then ~/.chainmode/)."""
    candidates = [
        Path.cwd() / "chainmode.toml",
        Path.home() / ".chainmode" / "chainmode.toml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_config(path: Path | None = None) -> Config:
    """Load configuration from a TOML file.

    If path is None, searches for chainmode.toml in current directory then
    ~/.chainmode/.  Returns default config if no file is found.
    """
    if path is None:
        path = default_config_path()

    if path is None or not path.exists():
        return Config()

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    modes_data = raw.get("modes", {})
    modes = ModesConfig(
        default_mode=str(modes_data.get("default_mode", "while_needs_response")),
        max_runs=_int_setting(modes_data, "max_runs", 0),
        max_rounds=_int_setting(modes_data, "max_rounds", 100),
        max_retry_count=_int_setting(modes_data, "max_retry_count", 3),
    )

    retry_data = raw.get("retry", {})
    max_attempts = _int_setting(retry_data, "max_attempts", 3, minimum=1)
    base_delay = _float_setting(retry_data, "base_delay_seconds", 0.5)
    retry = RetryConfig(
        max_attempts=min(10, max_attempts),
        base_delay_seconds=base_delay,
        max_delay_seconds=max(
            base_delay, _float_setting(retry_data, "max_delay_seconds", 8.0),
        ),
        jitter_seconds=_float_setting(retry_data, "jitter_seconds", 0.25),
    )

    log_data = raw.get("logging", {})
    logging_cfg = LoggingConfig(
        level=str(log_data.get("level", "INFO")).upper(),
    )

    return Config(modes=modes, retry=retry, logging=logging_cfg)
