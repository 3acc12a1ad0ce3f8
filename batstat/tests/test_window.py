"""
Tests for the two-slot sample window.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from datetime import UTC, datetime

from batstat.src.models import Reading
from batstat.src.window import SampleWindow

_TS = datetime(2026, 10, 18, 12, 0, 0, tzinfo=UTC)


def _reading(energy: float) -> Reading:
    return Reading(time=_TS, rel_time=0, energy=energy)


class TestSampleWindow:
    def test_empty_window(self) -> None:
        """A new window holds nothing."""
        window = SampleWindow()

        assert len(window) == 0
        assert window.current is None
        assert window.previous is None
        assert list(window) == []

    def test_single_reading_is_current(self) -> None:
        """One reading is current with no previous."""
        window = SampleWindow()
        r1 = _reading(1.0)

        window.append(r1)

        assert len(window) == 1
        assert window.current is r1
        assert window.previous is None

    def test_keeps_two_most_recent_in_arrival_order(self) -> None:
        """A third reading evicts the oldest."""
        window = SampleWindow()
        readings = [_reading(float(i)) for i in range(5)]

        for r in readings:
            window.append(r)
            assert len(window) <= 2

        assert list(window) == readings[-2:]
        assert window.previous is readings[3]
        assert window.current is readings[4]

    def test_clear_empties_both_slots(self) -> None:
        """clear() empties both slots."""
        window = SampleWindow()
        window.append(_reading(1.0))
        window.append(_reading(2.0))

        window.clear()

        assert len(window) == 0
        assert window.previous is None
        assert window.current is None

    def test_append_after_clear_starts_fresh(self) -> None:
        """After clear() the next reading is the only one."""
        window = SampleWindow()
        window.append(_reading(1.0))
        window.append(_reading(2.0))
        window.clear()

        r3 = _reading(3.0)
        window.append(r3)

        assert list(window) == [r3]
