"""
Unit tests for daemon configuration (BatstatSettings).

Tests verify:
- Defaults apply with no environment.
- BATSTAT_* environment variables override defaults.
- Validation rejects unknown bus types, bad object paths and log levels.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

import pytest
from batstat.src.config import BatstatSettings
from pydantic import ValidationError


class TestBatstatSettingsDefaults:
    def test_defaults_without_env(self) -> None:
        """Settings load with documented defaults when no env vars are set."""
        settings = BatstatSettings()

        assert settings.bus_type == "system"
        assert settings.upower_service == "org.freedesktop.UPower"
        assert settings.battery_path == ""
        assert settings.timestamp_format == "%Y-%m-%d %H:%M:%S %Z"
        assert settings.log_level == "INFO"
        assert settings.log_json is True


class TestBatstatSettingsLoadsFromEnv:
    def test_loads_all_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Every field is read from its BATSTAT_* variable."""
        monkeypatch.setenv("BATSTAT_BUS_TYPE", "session")
        monkeypatch.setenv("BATSTAT_UPOWER_SERVICE", "org.example.FakePower")
        monkeypatch.setenv(
            "BATSTAT_BATTERY_PATH", "/org/freedesktop/UPower/devices/battery_BAT1"
        )
        monkeypatch.setenv("BATSTAT_TIMESTAMP_FORMAT", "%H:%M")
        monkeypatch.setenv("BATSTAT_LOG_LEVEL", "debug")
        monkeypatch.setenv("BATSTAT_LOG_JSON", "false")

        settings = BatstatSettings()

        assert settings.bus_type == "session"
        assert settings.upower_service == "org.example.FakePower"
        assert settings.battery_path == "/org/freedesktop/UPower/devices/battery_BAT1"
        assert settings.timestamp_format == "%H:%M"
        assert settings.log_level == "DEBUG"
        assert settings.log_json is False

    def test_loads_from_dotenv_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A .env file in the working directory is honoured."""
        (tmp_path / ".env").write_text("BATSTAT_BUS_TYPE=session\n")

        settings = BatstatSettings()

        assert settings.bus_type == "session"


class TestBatstatSettingsValidation:
    def test_rejects_unknown_bus_type(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """bus_type must be system or session."""
        monkeypatch.setenv("BATSTAT_BUS_TYPE", "starter")

        with pytest.raises(ValidationError, match="BATSTAT_BUS_TYPE"):
            BatstatSettings()

    def test_bus_type_case_insensitive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """bus_type is normalised to lower case."""
        monkeypatch.setenv("BATSTAT_BUS_TYPE", "SYSTEM")

        assert BatstatSettings().bus_type == "system"

    def test_rejects_relative_battery_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A configured battery path must be an absolute object path."""
        monkeypatch.setenv("BATSTAT_BATTERY_PATH", "battery_BAT0")

        with pytest.raises(ValidationError, match="BATSTAT_BATTERY_PATH"):
            BatstatSettings()

    def test_rejects_unknown_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """log_level must name a standard logging level."""
        monkeypatch.setenv("BATSTAT_LOG_LEVEL", "CHATTY")

        with pytest.raises(ValidationError, match="BATSTAT_LOG_LEVEL"):
            BatstatSettings()

    def test_rejects_empty_timestamp_format(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An empty timestamp format is rejected."""
        monkeypatch.setenv("BATSTAT_TIMESTAMP_FORMAT", "")

        with pytest.raises(ValidationError):
            BatstatSettings()
