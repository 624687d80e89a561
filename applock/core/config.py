"""Configuration for AppLock.

Settings are read from ``~/.applock/config.json``. Every field is optional;
a missing file, invalid JSON or an invalid value falls back to the default
for that field.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from applock.core.store import DEFAULT_STATE_DIR, DEFAULT_STATE_FILE

CONFIG_FILE = DEFAULT_STATE_DIR / "config.json"
DEFAULT_LOG_FILE = DEFAULT_STATE_DIR / "logs" / "applock.log"

# Activity refresh period; must stay well below the shortest autolock timeout
DEFAULT_REFRESH_INTERVAL = 5.0

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class AppLockConfig:
    """Runtime configuration.

    Attributes:
        state_path: Location of the persisted lock state.
        refresh_interval_seconds: Period of the activity re-stamp while the
            app is in the foreground.
        log_path: Location of the rotating log file.
        log_level: Minimum level written to stderr.
    """

    state_path: Path = field(default_factory=lambda: DEFAULT_STATE_FILE)
    refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL
    log_path: Path = field(default_factory=lambda: DEFAULT_LOG_FILE)
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppLockConfig:
        """Build a config, keeping defaults for missing or invalid fields."""
        config = cls()

        state_path = data.get("state_path")
        if isinstance(state_path, str) and state_path:
            config.state_path = Path(state_path).expanduser()

        interval = data.get("refresh_interval_seconds")
        if isinstance(interval, (int, float)) and not isinstance(interval, bool):
            if interval > 0:
                config.refresh_interval_seconds = float(interval)
            else:
                logger.warning("Ignoring non-positive refresh interval {}", interval)

        log_path = data.get("log_path")
        if isinstance(log_path, str) and log_path:
            config.log_path = Path(log_path).expanduser()

        level = data.get("log_level")
        if isinstance(level, str) and level.upper() in LOG_LEVELS:
            config.log_level = level.upper()

        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "state_path": str(self.state_path),
            "refresh_interval_seconds": self.refresh_interval_seconds,
            "log_path": str(self.log_path),
            "log_level": self.log_level,
        }


def load_config(path: Path | None = None) -> AppLockConfig:
    """Load configuration from *path* (default ~/.applock/config.json)."""
    target = path or CONFIG_FILE
    try:
        data = json.loads(target.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return AppLockConfig()
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config at {}: {}", target, e)
        return AppLockConfig()

    if not isinstance(data, dict):
        logger.warning("Ignoring config at {}: expected a JSON object", target)
        return AppLockConfig()
    return AppLockConfig.from_dict(data)


_config: AppLockConfig | None = None  # pylint: disable=invalid-name


def get_config() -> AppLockConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config  # pylint: disable=global-statement

    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next call reloads it."""
    global _config  # pylint: disable=global-statement

    _config = None
