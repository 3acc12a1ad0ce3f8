"""
Daemon configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Every variable carries the ``BATSTAT_`` prefix and may also come from a
``.env`` file. All settings have defaults, so the daemon runs unconfigured
on a standard desktop system bus.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings

from batstat.src.engine import DEFAULT_TIMESTAMP_FORMAT
from batstat.src.sources import UPOWER_SERVICE

_BUS_TYPES = ("system", "session")


class BatstatSettings(BaseSettings):
    """Battery statistics daemon configuration.

    Attributes:
        bus_type: D-Bus to connect to, ``"system"`` or ``"session"``.
        upower_service: Bus name of the UPower daemon.
        battery_path: UPower device object path of the battery. Empty means
            enumerate UPower devices and pick the single battery.
        timestamp_format: strftime format of the status line timestamp.
        log_level: Logging level name for diagnostics on stderr.
        log_json: Emit diagnostics as JSON lines instead of plain text.
    """

    bus_type: str = "system"
    upower_service: str = UPOWER_SERVICE
    battery_path: str = ""
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("bus_type")
    @classmethod
    def bus_type_must_be_known(cls, v: str) -> str:
        """Validate the bus type is system or session."""
        v = v.lower()
        if v not in _BUS_TYPES:
            raise ValueError("BATSTAT_BUS_TYPE must be 'system' or 'session'")
        return v

    @field_validator("upower_service", "timestamp_format")
    @classmethod
    def must_not_be_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("value must not be empty")
        return v

    @field_validator("battery_path")
    @classmethod
    def battery_path_must_be_object_path(cls, v: str) -> str:
        """Validate an explicit battery path looks like a D-Bus object path."""
        if v and not v.startswith("/"):
            raise ValueError(
                f"BATSTAT_BATTERY_PATH must be a D-Bus object path (got: '{v}')"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_valid(cls, v: str) -> str:
        """Validate the level against the standard logging level names."""
        v = v.upper()
        if v not in logging.getLevelNamesMapping():
            raise ValueError(f"BATSTAT_LOG_LEVEL '{v}' is not a logging level")
        return v

    model_config = {
        "env_prefix": "BATSTAT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }
