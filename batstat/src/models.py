"""
Domain types for the battery statistics engine.

Defines the immutable Reading sample and the enumerations the engine is
driven with: system power state, battery charge state, and the set of
statistic fields a status line can carry.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, Flag, auto


@dataclass(frozen=True, slots=True)
class Reading:
    """A single battery energy sample.

    Attributes:
        time: Wall-clock time the sample was taken (timezone-aware).
        rel_time: Monotonic clock value in nanoseconds at the same instant.
            Unaffected by wall-clock adjustments, used for elapsed spans.
        energy: Battery energy in watt-hours.
    """

    time: datetime
    rel_time: int
    energy: float


class PowerState(Enum):
    """System sleep state as reported by the sleep hook."""

    AWAKE = auto()
    SUSPENDED = auto()
    HIBERNATING = auto()


class BatteryState(Enum):
    """Battery charge state, collapsed from the UPower state codes."""

    CHARGING = auto()
    DISCHARGING = auto()
    IDLE = auto()


class Stat(Flag):
    """Statistic fields that can be requested for a status line."""

    NONE = 0
    ENERGY = auto()
    RATE = auto()
    AVERAGE_RATE = auto()
    REL_ENERGY = auto()
