"""
Logging setup for AppLock.
"""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger as _logger

from applock.core.config import DEFAULT_LOG_FILE

_LOG_INITIALISED = False


def configure(
    log_path: Path | None = None, level: str = "INFO", console: bool = True
) -> None:
    """
    Configure loguru for the application.

    Library code logs through ``loguru.logger`` without configuring it; a
    host calls this once at startup. Full-screen hosts pass ``console=False``
    so log lines do not draw over the terminal UI. Later calls are ignored.
    """
    global _LOG_INITIALISED
    if _LOG_INITIALISED:
        return
    target = log_path or DEFAULT_LOG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)

    # Console output plus a persistent file sink.
    _logger.remove()
    if console and sys.stderr is not None:
        _logger.add(sys.stderr, level=level, enqueue=True)
    _logger.add(
        target,
        level="DEBUG",
        rotation="10 MB",
        retention=5,
        encoding="utf-8",
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )
    _LOG_INITIALISED = True

