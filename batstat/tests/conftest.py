"""
Shared test fixtures for battery stats tests.

Provides a controllable clock pair, a presenter that records lines instead
of printing them, a BatteryMonitor wired to both, and environment isolation
for BatstatSettings tests.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from batstat.src.engine import BatteryMonitor

# All BatstatSettings environment variable names, used for cleanup.
_ALL_BATSTAT_ENV_VARS = (
    "BATSTAT_BUS_TYPE",
    "BATSTAT_UPOWER_SERVICE",
    "BATSTAT_BATTERY_PATH",
    "BATSTAT_TIMESTAMP_FORMAT",
    "BATSTAT_LOG_LEVEL",
    "BATSTAT_LOG_JSON",
)

TEST_TIMESTAMP_FORMAT = "%H:%M:%S"
"""Line timestamp format used by the monitor fixture (no date, no zone)."""

_NS_PER_SECOND = 1_000_000_000


class FakeClock:
    """Wall-clock and monotonic clock that only move when told to.

    ``advance()`` moves both clocks, like time passing while awake.
    ``sleep()`` moves only the wall clock, like a system suspend where
    CLOCK_MONOTONIC stops.
    """

    def __init__(self) -> None:
        self.wall = datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)
        self.mono_ns = 1000 * _NS_PER_SECOND

    def now(self) -> datetime:
        return self.wall

    def monotonic_ns(self) -> int:
        return self.mono_ns

    def advance(self, seconds: float) -> None:
        step = timedelta(seconds=seconds)
        self.wall += step
        self.mono_ns += step // timedelta(microseconds=1) * 1000

    def sleep(self, seconds: float) -> None:
        self.wall += timedelta(seconds=seconds)


class RecordingPresenter:
    """Presenter that keeps every emitted line."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def emit(self, line: str) -> None:
        self.lines.append(line)

    @property
    def last(self) -> str:
        return self.lines[-1]


@pytest.fixture(autouse=True)
def _clean_batstat_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all BATSTAT_* env vars and isolate from .env files.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_BATSTAT_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture()
def monitor(clock: FakeClock, presenter: RecordingPresenter) -> BatteryMonitor:
    """BatteryMonitor driven by the fake clock, recording its output."""
    return BatteryMonitor(
        presenter,
        wall_clock=clock.now,
        mono_clock=clock.monotonic_ns,
        timestamp_format=TEST_TIMESTAMP_FORMAT,
    )
