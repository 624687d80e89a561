# Configuration loading tests.

from __future__ import annotations

import json
from pathlib import Path

import pytest

from applock.core import config as config_module
from applock.core.config import (
    DEFAULT_REFRESH_INTERVAL,
    AppLockConfig,
    get_config,
    load_config,
    reset_config,
)


@pytest.fixture
def config_path(temp_dir: Path) -> Path:
    return temp_dir / "config.json"


class TestLoadConfig:
    """load_config falls back field by field."""

    @pytest.mark.unit
    def test_missing_file_gives_defaults(self, config_path: Path) -> None:
        config = load_config(config_path)
        assert config == AppLockConfig()
        assert config.refresh_interval_seconds == DEFAULT_REFRESH_INTERVAL

    @pytest.mark.unit
    def test_reads_all_fields(self, config_path: Path, temp_dir: Path) -> None:
        config_path.write_text(
            json.dumps(
                {
                    "state_path": str(temp_dir / "state.json"),
                    "refresh_interval_seconds": 2,
                    "log_path": str(temp_dir / "app.log"),
                    "log_level": "debug",
                }
            ),
            encoding="utf-8",
        )

        config = load_config(config_path)

        assert config.state_path == temp_dir / "state.json"
        assert config.refresh_interval_seconds == 2.0
        assert config.log_path == temp_dir / "app.log"
        assert config.log_level == "DEBUG"

    @pytest.mark.unit
    def test_invalid_values_keep_defaults(self, config_path: Path) -> None:
        config_path.write_text(
            json.dumps(
                {
                    "state_path": 42,
                    "refresh_interval_seconds": -1,
                    "log_level": "LOUD",
                }
            ),
            encoding="utf-8",
        )

        assert load_config(config_path) == AppLockConfig()

    @pytest.mark.unit
    def test_boolean_interval_is_rejected(self, config_path: Path) -> None:
        config_path.write_text('{"refresh_interval_seconds": true}', encoding="utf-8")
        assert load_config(config_path).refresh_interval_seconds == DEFAULT_REFRESH_INTERVAL

    @pytest.mark.unit
    @pytest.mark.parametrize("content", ["{broken", "[]", '"text"'])
    def test_unreadable_file_gives_defaults(self, config_path: Path, content: str) -> None:
        config_path.write_text(content, encoding="utf-8")
        assert load_config(config_path) == AppLockConfig()

    @pytest.mark.unit
    def test_round_trip_through_dict(self, temp_dir: Path) -> None:
        config = AppLockConfig(
            state_path=temp_dir / "s.json",
            refresh_interval_seconds=1.5,
            log_path=temp_dir / "l.log",
            log_level="WARNING",
        )
        assert AppLockConfig.from_dict(config.to_dict()) == config


class TestGetConfig:
    """get_config caches the loaded configuration."""

    @pytest.mark.unit
    def test_cached_until_reset(self, config_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)
        reset_config()
        try:
            first = get_config()
            config_path.write_text('{"refresh_interval_seconds": 9}', encoding="utf-8")
            assert get_config() is first

            reset_config()
            assert get_config().refresh_interval_seconds == 9.0
        finally:
            reset_config()
