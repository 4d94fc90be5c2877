"""
Wall-clock abstraction.

Every "now" used by the booking services comes from a Clock handed to them
at construction, so expiry and reminder logic can be driven deterministically.
Datetimes are naive and expressed in UTC throughout the application.
"""

from datetime import datetime, timedelta, timezone


class Clock:
    """Source of the current time."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, current: datetime):
        self._current = current

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = current

    def advance(self, **delta) -> datetime:
        """Move the clock forward by ``timedelta(**delta)`` and return the new time."""
        self._current = self._current + timedelta(**delta)
        return self._current
