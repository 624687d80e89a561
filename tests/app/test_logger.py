# Logging setup tests.

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from loguru import logger

from applock import logger as logger_module


@pytest.fixture
def fresh_logging(monkeypatch: pytest.MonkeyPatch):
    """Allow configure() to run again and restore the default sink after."""
    monkeypatch.setattr(logger_module, "_LOG_INITIALISED", False)
    yield
    logger.remove()
    logger.add(sys.stderr)


class TestConfigure:
    """configure() installs the file sink once."""

    @pytest.mark.unit
    def test_writes_to_log_file(self, temp_dir: Path, fresh_logging) -> None:
        log_file = temp_dir / "logs" / "applock.log"

        logger_module.configure(log_file, console=False)
        logger.info("lock state loaded")
        # Removing the sinks drains the enqueued messages
        logger.remove()

        assert "lock state loaded" in log_file.read_text(encoding="utf-8")

    @pytest.mark.unit
    def test_second_call_is_ignored(self, temp_dir: Path, fresh_logging) -> None:
        first = temp_dir / "first.log"
        second = temp_dir / "second.log"

        logger_module.configure(first, console=False)
        logger_module.configure(second, console=False)
        logger.info("only once")
        logger.remove()

        assert first.exists()
        assert not second.exists()
