"""Time source for hold expiry decisions.

All timestamps are naive UTC so they compare the same way on PostgreSQL and
SQLite. Services take a clock so tests can move time forward without sleeping.
"""

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat_z(value: datetime) -> str:
    """Render a naive UTC timestamp the way storefront clients expect it."""
    return value.isoformat(timespec="milliseconds") + "Z"


class Clock:
    """Wall clock."""

    def now(self) -> datetime:
        return utcnow()


class FrozenClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self._now = start or utcnow()

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        self._now = self._now + timedelta(seconds=seconds)
        return self._now


system_clock = Clock()
