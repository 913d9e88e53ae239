"""
Streak calculator — pure function, no DB access.

A streak is the number of consecutive completed days ending at a reference
day: as_of_day, as_of_day - 1, ... down to the first gap (a missing day or a
draft that was never completed).
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol


class CompletionLike(Protocol):
    day: int
    completed: bool


def completed_days(completions: Iterable[CompletionLike]) -> set[int]:
    """Days with a completed record. Duplicate rows for one day collapse."""
    return {c.day for c in completions if c.completed}


def compute_streak(completions: Iterable[CompletionLike], as_of_day: int) -> int:
    """
    Count consecutive completed days walking backward from `as_of_day`.
    Returns 0 when `as_of_day` itself is not completed.
    """
    done = completed_days(completions)
    streak = 0
    day = as_of_day
    while day >= 1 and day in done:
        streak += 1
        day -= 1
    return streak
