"""
Clock — the single source of "now" for the engine.

Every service that compares against unlock times takes a Clock instead of
calling datetime.now() itself, so that a request evaluating both
complete-day and can-advance sees one instant.

All datetimes handed out are timezone-aware UTC.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)


class FrozenClock:
    """A clock that only moves when told to. Used by tests and scripts."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = ensure_utc(start) if start else datetime.now(tz=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set(self, when: datetime) -> None:
        self._now = ensure_utc(when)

    def advance(self, delta: Optional[timedelta] = None, **kwargs) -> datetime:
        """Move forward by `delta` or by timedelta(**kwargs). Returns the new now."""
        self._now = self._now + (delta if delta is not None else timedelta(**kwargs))
        return self._now


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes and convert aware ones to UTC.

    SQLite drops tzinfo on DateTime(timezone=True) columns, and clients may
    send naive ISO strings; both are interpreted as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


_system_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency. Tests override it with a FrozenClock."""
    return _system_clock
