"""
Compact relative-duration formatting ("1h1m1s").

Used for the elapsed run time suffix on every status line and for the
suspend duration in the resume notification.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from datetime import timedelta

_SECONDS_IN_HOUR = 3600
_SECONDS_IN_MINUTE = 60


def format_rel_time(duration: timedelta | float) -> str:
    """Format a duration as ``"<h>h<m>m<s>s"``, omitting zero components.

    The duration is truncated to whole seconds first, so anything under one
    second (and any negative duration) yields the empty string.

    Args:
        duration: A ``timedelta`` or a number of seconds.

    Returns:
        The compact string, e.g. ``"1m30s"``, or ``""`` for zero.
    """
    if isinstance(duration, timedelta):
        duration = duration.total_seconds()
    total_secs = int(duration)
    if total_secs <= 0:
        return ""

    hours = total_secs // _SECONDS_IN_HOUR
    minutes = (total_secs - hours * _SECONDS_IN_HOUR) // _SECONDS_IN_MINUTE
    secs = total_secs - hours * _SECONDS_IN_HOUR - minutes * _SECONDS_IN_MINUTE

    output = ""
    if hours > 0:
        output += f"{hours}h"
    if minutes > 0:
        output += f"{minutes}m"
    if secs > 0:
        output += f"{secs}s"
    return output
