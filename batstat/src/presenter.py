"""
Line sinks for the status feed.

The engine formats each status line itself and hands the finished string to
a Presenter. StreamPresenter writes to a text stream (stdout by default);
anything with an ``emit(line)`` method can stand in for it.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import sys
from typing import Protocol, TextIO


class Presenter(Protocol):
    """Anything that accepts one formatted status line at a time."""

    def emit(self, line: str) -> None: ...


class StreamPresenter:
    """Writes each status line to a text stream and flushes immediately.

    Args:
        stream: Target stream. Defaults to ``sys.stdout`` resolved at
            emit time, so pytest's capture and redirection both work.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def emit(self, line: str) -> None:
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write(line + "\n")
        stream.flush()
