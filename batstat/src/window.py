"""
Fixed two-slot sample window.

Holds the previous and current Reading used for delta and rate math.
Appending to a full window drops the oldest reading, so the window never
holds more than two samples and always keeps arrival order.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from batstat.src.models import Reading


class SampleWindow:
    """Two-slot ring of the most recent readings, oldest first."""

    __slots__ = ("_previous", "_current")

    def __init__(self) -> None:
        self._previous: Reading | None = None
        self._current: Reading | None = None

    @property
    def previous(self) -> Reading | None:
        """The older of the two readings, or None with fewer than two."""
        return self._previous

    @property
    def current(self) -> Reading | None:
        """The most recent reading, or None when empty."""
        return self._current

    def append(self, reading: Reading) -> None:
        """Push a new reading, shifting the current one into the previous slot."""
        if self._current is not None:
            self._previous = self._current
        self._current = reading

    def clear(self) -> None:
        self._previous = None
        self._current = None

    def __len__(self) -> int:
        if self._current is None:
            return 0
        return 1 if self._previous is None else 2

    def __iter__(self) -> Iterator[Reading]:
        if self._previous is not None:
            yield self._previous
        if self._current is not None:
            yield self._current
