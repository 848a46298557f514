"""
Clock implementations.
"""

from datetime import datetime, timedelta

from taskaway.interfaces.clock import IClock
from taskaway.utils.datetime_utils import ensure_utc, now_utc


class SystemClock(IClock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return now_utc()


class FixedClock(IClock):
    """Clock pinned to a given instant; advanced manually."""

    def __init__(self, current: datetime):
        self._current = ensure_utc(current)

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = ensure_utc(current)

    def advance(self, delta: timedelta) -> datetime:
        self._current = self._current + delta
        return self._current
