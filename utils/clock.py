"""
utils/clock.py
--------------
Source of the current instant for the processing engines.

The Coordinator receives a Clock at construction instead of reading the
wall clock directly, so tests can pin or step time deterministically.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current instant."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Production clock: timezone-aware UTC wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    A clock frozen at a given instant.

    ``advance`` moves it forward, which lets a test walk a template or a
    budget through several cycles without sleeping.
    """

    def __init__(self, instant: datetime):
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = instant

    def advance(self, delta: timedelta) -> datetime:
        self._instant += delta
        return self._instant
