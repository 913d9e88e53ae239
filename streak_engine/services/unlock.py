"""
Unlock scheduler — pure function deciding when the next day may be completed.

Policies
--------
  default   : now + 18h                       (after completing a day)
  override  : max(custom_unlock_time, now + 8h)  ("End Day" with a chosen time)

The 8-hour floor is a minimum rest period: an earlier custom time is clamped
silently, never rejected. The result is never earlier than `now`.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Optional

from streak_engine.core.clock import ensure_utc

DEFAULT_UNLOCK_DELAY = timedelta(hours=18)
MIN_REST_PERIOD = timedelta(hours=8)

_ONE_HOUR = timedelta(hours=1)


def schedule_next_unlock(
    now: datetime,
    custom_unlock_time: Optional[datetime] = None,
) -> datetime:
    now = ensure_utc(now)
    if custom_unlock_time is None:
        return now + DEFAULT_UNLOCK_DELAY
    return max(ensure_utc(custom_unlock_time), now + MIN_REST_PERIOD)


def is_locked(next_unlock: Optional[datetime], now: datetime) -> bool:
    """True while an unlock time is set and still in the future."""
    if next_unlock is None:
        return False
    return ensure_utc(now) < ensure_utc(next_unlock)


def hours_until(next_unlock: Optional[datetime], now: datetime) -> int:
    """Whole hours left until `next_unlock`, rounded up; 0 once it has passed."""
    if next_unlock is None:
        return 0
    remaining = ensure_utc(next_unlock) - ensure_utc(now)
    if remaining <= timedelta(0):
        return 0
    return math.ceil(remaining / _ONE_HOUR)
