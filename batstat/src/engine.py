"""
Battery statistics engine.

BatteryMonitor owns all mutable monitoring state and is driven through four
synchronous entry points:

- set_power_state(): suspend/resume transitions from the sleep hook.
- set_battery_state(): charge state changes (charging/discharging reset the
  measurement epoch, idle does not).
- set_battery_limits(): energy bounds used for percentage math.
- update_energy(): a new energy sample.

After each meaningful event it formats one status line and hands it to the
presenter. Readings that arrive while suspended are dropped, and the first
energy delta after a resume is attributed to sleep and excluded from the
average rate.

The monitor never awaits and holds no locks; callers must serialize calls,
which the single asyncio loop in main.py does.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: Integer-nanosecond monotonic clock, exact millisecond spans

TODO:
- None
"""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from batstat.src.duration import format_rel_time
from batstat.src.models import BatteryState, PowerState, Reading, Stat
from batstat.src.window import SampleWindow

if TYPE_CHECKING:
    from collections.abc import Callable

    from batstat.src.presenter import Presenter

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %Z"
"""strftime format for the timestamp that starts every status line."""

_MS_PER_HOUR = 1000 * 60 * 60
_NS_PER_MS = 1_000_000
_ONE_MS = timedelta(milliseconds=1)

_PERCENT_PER_HOUR_THRESHOLD = 1.0
"""Below this absolute %/hr the rate is shown per day instead."""


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _divide(numerator: float, denominator: float) -> float:
    """Float division with IEEE semantics for a zero denominator."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def _span_ms(span: timedelta) -> int:
    """Whole milliseconds in a wall-clock *span*, truncated toward zero."""
    if span < timedelta(0):
        return -(-span // _ONE_MS)
    return span // _ONE_MS


def _mono_span_ms(start_ns: int, end_ns: int) -> int:
    """Whole milliseconds between two monotonic nanosecond stamps."""
    return (end_ns - start_ns) // _NS_PER_MS


class BatteryMonitor:
    """Stateful battery statistics engine.

    Args:
        presenter: Sink that receives each formatted status line.
        wall_clock: Returns the current timezone-aware wall-clock time.
        mono_clock: Returns the current monotonic time in integer nanoseconds.
        timestamp_format: strftime format for the line timestamp.
    """

    def __init__(
        self,
        presenter: Presenter,
        *,
        wall_clock: Callable[[], datetime] = _local_now,
        mono_clock: Callable[[], int] = time.monotonic_ns,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
    ) -> None:
        self._presenter = presenter
        self._wall_clock = wall_clock
        self._mono_clock = mono_clock
        self._timestamp_format = timestamp_format

        self._energy_empty: float | None = None
        self._energy_full: float | None = None
        self._first_reading: Reading | None = None
        self._readings = SampleWindow()

        self._print_suspend_stats = False
        self._enter_suspend_time: datetime | None = None
        self._total_suspend_energy = 0.0

    # -----------------------------------------------------------------------
    # Read-only state
    # -----------------------------------------------------------------------

    @property
    def is_suspended(self) -> bool:
        """True between a suspend notification and the matching resume."""
        return self._enter_suspend_time is not None

    @property
    def first_reading(self) -> Reading | None:
        return self._first_reading

    @property
    def readings(self) -> tuple[Reading, ...]:
        """The sample window contents, oldest first."""
        return tuple(self._readings)

    @property
    def total_suspend_energy(self) -> float:
        return self._total_suspend_energy

    @property
    def energy_limits(self) -> tuple[float, float] | None:
        """``(empty, full)`` once both bounds are known, else None."""
        if self._energy_empty is None or self._energy_full is None:
            return None
        return self._energy_empty, self._energy_full

    # -----------------------------------------------------------------------
    # Entry points
    # -----------------------------------------------------------------------

    def set_power_state(self, power_state: PowerState) -> None:
        """Apply a system suspend or resume transition.

        Resume without a recorded suspend is ignored. Hibernation is not
        tracked.
        """
        if power_state is PowerState.SUSPENDED:
            self._enter_suspend_time = self._wall_clock()
            logger.debug("Suspend entered at %s", self._enter_suspend_time)
            self._print("Going to sleep")
        elif power_state is PowerState.AWAKE:
            if self._enter_suspend_time is None:
                logger.debug("Resume without matching suspend, ignoring")
                return
            suspend_time = timedelta(
                milliseconds=_span_ms(self._wall_clock() - self._enter_suspend_time)
            )
            self._enter_suspend_time = None
            self._print_suspend_stats = True
            self._print(f"Resumed from {format_rel_time(suspend_time)} sleep")

    def set_battery_state(self, battery_state: BatteryState) -> None:
        """Apply a battery charge state change.

        Charging and discharging start a new measurement epoch. Idle keeps
        the accumulated statistics since idle is often a transient report.
        """
        if battery_state is BatteryState.IDLE:
            self._print("Battery idle")
            return

        self._first_reading = None
        self._readings.clear()
        self._total_suspend_energy = 0.0

        if battery_state is BatteryState.CHARGING:
            self._print("Battery charging")
        elif battery_state is BatteryState.DISCHARGING:
            self._print("Battery discharging")

    def set_battery_limits(self, empty: float, full: float) -> None:
        """Overwrite the capacity bounds used for percentages.

        No check that ``full > empty``; percentages are simply whatever the
        arithmetic yields.
        """
        self._energy_empty = empty
        self._energy_full = full

    def update_energy(self, energy: float) -> None:
        """Ingest a new energy sample in watt-hours."""
        if self.is_suspended:
            # Whether a reading in this interval predates the hardware
            # suspend is unknowable, so drop them all.
            logger.debug("Dropping reading %.2f Wh while suspended", energy)
            return

        reading = Reading(
            time=self._wall_clock(),
            rel_time=self._mono_clock(),
            energy=energy,
        )

        if self._first_reading is None:
            self._first_reading = reading

        self._readings.append(reading)

        if self._print_suspend_stats:
            previous = self._readings.previous
            if previous is not None:
                self._total_suspend_energy += energy - previous.energy
            self._print("Sleep energy use", Stat.REL_ENERGY | Stat.RATE)
            self._print_suspend_stats = False
        else:
            self._print("", Stat.ENERGY | Stat.RATE | Stat.AVERAGE_RATE)

    # -----------------------------------------------------------------------
    # Formatting
    # -----------------------------------------------------------------------

    def _print(self, msg: str, flags: Stat = Stat.NONE) -> None:
        self._presenter.emit(self._format_line(msg, flags))

    def _format_line(self, msg: str, flags: Stat) -> str:
        now = self._wall_clock().replace(microsecond=0)
        parts = [now.strftime(self._timestamp_format)]

        first = self._first_reading
        if first is not None:
            elapsed_ms = _mono_span_ms(first.rel_time, self._mono_clock())
            run_time = format_rel_time(timedelta(milliseconds=elapsed_ms))
            if run_time:
                parts.append(f" (+{run_time})")

        if msg:
            parts.append(f" - {msg}")

        current = self._readings.current
        if current is None:
            return "".join(parts)
        previous = self._readings.previous
        limits = self.energy_limits

        if Stat.ENERGY in flags:
            parts.append(f" - {current.energy:.2f} Wh")
            if limits is not None:
                empty, full = limits
                percent = _divide(100 * (current.energy - empty), full - empty)
                parts.append(f" ({percent:.2f}%)")

        if Stat.REL_ENERGY in flags and previous is not None:
            energy_diff = current.energy - previous.energy
            parts.append(f" - {energy_diff:+.2f} Wh")
            if limits is not None:
                empty, full = limits
                percent = _divide(100 * energy_diff, full - empty)
                parts.append(f" ({percent:.2f}%)")

        if Stat.RATE in flags and previous is not None:
            parts.append(" / Rate ")
            parts.append(
                self._format_rate(
                    current.energy - previous.energy,
                    _span_ms(current.time - previous.time),
                )
            )

        if Stat.AVERAGE_RATE in flags and first is not None and previous is not None:
            parts.append(" / Avg ")
            awake_energy = current.energy - first.energy - self._total_suspend_energy
            parts.append(
                self._format_rate(
                    awake_energy,
                    _mono_span_ms(first.rel_time, current.rel_time),
                )
            )

        return "".join(parts)

    def _format_rate(self, energy_diff: float, time_diff_ms: int) -> str:
        """Render watts, plus %/hr or %/day when the limits are known."""
        hours = time_diff_ms / _MS_PER_HOUR
        watts = _divide(energy_diff, hours)
        text = f"{watts:.2f} W"

        limits = self.energy_limits
        if limits is not None:
            empty, full = limits
            percent_per_hour = _divide(_divide(100 * energy_diff, full - empty), hours)
            if abs(percent_per_hour) >= _PERCENT_PER_HOUR_THRESHOLD:
                text += f" ({percent_per_hour:.1f}%/hr)"
            else:
                text += f" ({percent_per_hour * 24:.1f}%/day)"
        return text
