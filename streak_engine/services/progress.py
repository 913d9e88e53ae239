"""
Day Advancement Engine — completion, drafts, end-day and the time lock.

State per user is (current_day, next_day_unlocks_at):

  Unlocked : next_day_unlocks_at is NULL or <= now  → current_day may be completed
  Locked   : next_day_unlocks_at > now              → no NEW day may be completed;
                                                      past days and drafts still may

Transitions
-----------
complete_day(day)
  1. day > current_day                      → FutureDayError
  2. Locked and day >= current_day          → LockedError(hours_left, next_unlock_time)
  3. upsert completion: completed=True, completed_at stamped once, notes overwritten
  4. total_completed_days = count(completed rows)
  5. streak = compute_streak(rows, day); best_streak = max(best_streak, streak)
  6. current_day = max(current_day, day + 1)
  7. building_level = min(total + 1, 90)
  8. last_day_completed_at = now, next_day_unlocks_at = now + 18h
  9. milestone achievements, then one commit (db.atomic)

end_day(custom_unlock_time)   → reschedules the lock only (8h minimum rest)
save_draft(day, ...)          → notes / reflections / step responses, any state

Re-completing an already completed day is idempotent for the record:
completed_at and total stay where they were. The streak is recomputed and
the unlock is scheduled again from now.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from streak_engine.core.clock import Clock, ensure_utc
from streak_engine.core.config import settings
from streak_engine.core.errors import (
    FutureDayError,
    InvalidDayError,
    LockedError,
    PersistenceError,
)
from streak_engine.db.atomic import atomic, load_progress, lock_progress
from streak_engine.models.completion import DailyCompletion
from streak_engine.models.progress import UserProgress
from streak_engine.models.token_transaction import TokenType
from streak_engine.services.achievements import get_user_achievements, unlock_milestones
from streak_engine.services.ledger import credit
from streak_engine.services.streak import compute_streak
from streak_engine.services.unlock import hours_until, is_locked, schedule_next_unlock

logger = structlog.get_logger(__name__)

MAX_BUILDING_LEVEL = 90


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class CompletionResult:
    completion: DailyCompletion
    progress: UserProgress
    achievements_unlocked: list[str]


@dataclass
class AdvanceStatus:
    can_advance: bool
    time_left: int                       # whole hours, rounded up
    next_unlock_time: Optional[datetime]
    current_day: int


@dataclass
class ProgressSnapshot:
    progress: UserProgress
    completions: list[DailyCompletion]   # newest day first
    achievements: list[dict]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _check_day(day: int) -> None:
    if day < 1:
        raise InvalidDayError(day)


def _get_completion(db: Session, user_id: str, day: int) -> Optional[DailyCompletion]:
    return (
        db.query(DailyCompletion)
        .filter(DailyCompletion.user_id == user_id, DailyCompletion.day == day)
        .first()
    )


def _get_or_create_completion(db: Session, user_id: str, day: int) -> DailyCompletion:
    completion = _get_completion(db, user_id, day)
    if completion is None:
        completion = DailyCompletion(user_id=user_id, day=day, completed=False)
        db.add(completion)
    return completion


def parse_step_responses(raw: Optional[str]) -> Optional[dict[str, str]]:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (ValueError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Public — initialization and queries
# ---------------------------------------------------------------------------

def init_progress(db: Session, user_id: str, clock: Clock) -> tuple[UserProgress, bool]:
    """
    Create the user's progress row if it does not exist yet.
    Returns (progress, created). Starter balances go through the ledger.
    """
    existing = db.query(UserProgress).filter(UserProgress.user_id == user_id).first()
    if existing is not None:
        return existing, False

    now = clock.now()
    progress = UserProgress(
        user_id=user_id,
        current_day=1,
        streak=0,
        best_streak=0,
        total_completed_days=0,
        building_level=1,
        founder_coins=0,
        vision_gems=0,
        experience_points=0,
        journey_started_at=now,
    )
    db.add(progress)
    try:
        db.flush()
        if settings.STARTING_FOUNDER_COINS > 0:
            credit(db, progress, TokenType.founder_coins,
                   settings.STARTING_FOUNDER_COINS, "starting_balance")
        if settings.STARTING_VISION_GEMS > 0:
            credit(db, progress, TokenType.vision_gems,
                   settings.STARTING_VISION_GEMS, "starting_balance")
        db.commit()
    except IntegrityError:
        # Race: another request initialized this user first
        db.rollback()
        return load_progress(db, user_id), False
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError("init_progress") from exc

    db.refresh(progress)
    logger.info("progress_initialized", user_id=user_id)
    return progress, True


def get_progress(db: Session, user_id: str) -> ProgressSnapshot:
    progress = load_progress(db, user_id)
    completions = (
        db.query(DailyCompletion)
        .filter(DailyCompletion.user_id == user_id)
        .order_by(DailyCompletion.day.desc())
        .all()
    )
    return ProgressSnapshot(
        progress=progress,
        completions=completions,
        achievements=get_user_achievements(db, user_id),
    )


def get_day(db: Session, user_id: str, day: int) -> Optional[DailyCompletion]:
    _check_day(day)
    load_progress(db, user_id)
    return _get_completion(db, user_id, day)


def can_advance(db: Session, user_id: str, clock: Clock) -> AdvanceStatus:
    progress = load_progress(db, user_id)
    now = clock.now()
    next_unlock = ensure_utc(progress.next_day_unlocks_at)
    return AdvanceStatus(
        can_advance=not is_locked(next_unlock, now),
        time_left=hours_until(next_unlock, now),
        next_unlock_time=next_unlock,
        current_day=progress.current_day,
    )


# ---------------------------------------------------------------------------
# Public — transitions
# ---------------------------------------------------------------------------

def complete_day(
    db: Session,
    user_id: str,
    day: int,
    clock: Clock,
    notes: Optional[str] = None,
    reflections: Optional[str] = None,
) -> CompletionResult:
    _check_day(day)
    now = clock.now()

    def work(db: Session) -> CompletionResult:
        progress = lock_progress(db, user_id)

        if day > progress.current_day:
            raise FutureDayError(day=day, current_day=progress.current_day)

        next_unlock = ensure_utc(progress.next_day_unlocks_at)
        if day >= progress.current_day and is_locked(next_unlock, now):
            hours_left = hours_until(next_unlock, now)
            logger.info(
                "day_completion_locked",
                user_id=user_id,
                day=day,
                hours_left=hours_left,
            )
            raise LockedError(hours_left=hours_left, next_unlock_time=next_unlock)

        completion = _get_or_create_completion(db, user_id, day)
        completion.completed = True
        if completion.completed_at is None:
            completion.completed_at = now
        if notes is not None:
            completion.notes = notes
        if reflections is not None:
            completion.reflections = reflections
        db.flush()

        rows = db.query(DailyCompletion).filter(DailyCompletion.user_id == user_id).all()
        total = sum(1 for r in rows if r.completed)
        streak = compute_streak(rows, day)

        progress.total_completed_days = total
        progress.streak = streak
        progress.best_streak = max(progress.best_streak, streak)
        progress.current_day = max(progress.current_day, day + 1)
        progress.building_level = min(total + 1, MAX_BUILDING_LEVEL)
        progress.last_day_completed_at = now
        progress.next_day_unlocks_at = schedule_next_unlock(now)

        unlocked = unlock_milestones(db, user_id, total, now)
        return CompletionResult(
            completion=completion,
            progress=progress,
            achievements_unlocked=unlocked,
        )

    result = atomic(db, work, operation="complete_day")
    logger.info(
        "day_completed",
        user_id=user_id,
        day=day,
        streak=result.progress.streak,
        total_completed_days=result.progress.total_completed_days,
    )
    return result


def end_day(
    db: Session,
    user_id: str,
    clock: Clock,
    custom_unlock_time: Optional[datetime] = None,
) -> UserProgress:
    """Close the day now and schedule the next unlock (8h minimum rest)."""
    now = clock.now()

    def work(db: Session) -> UserProgress:
        progress = lock_progress(db, user_id)
        progress.last_day_completed_at = now
        progress.next_day_unlocks_at = schedule_next_unlock(now, custom_unlock_time)
        return progress

    progress = atomic(db, work, operation="end_day")
    logger.info(
        "day_ended",
        user_id=user_id,
        custom_unlock_time=custom_unlock_time.isoformat() if custom_unlock_time else None,
        next_unlock_time=ensure_utc(progress.next_day_unlocks_at).isoformat(),
    )
    return progress


def save_draft(
    db: Session,
    user_id: str,
    day: int,
    notes: Optional[str] = None,
    reflections: Optional[str] = None,
    step_responses: Optional[dict[str, str]] = None,
) -> DailyCompletion:
    """
    Save notes / reflections / step responses for a day without completing it.
    Allowed in any lock state; `completed` keeps its current value.
    """
    _check_day(day)

    def work(db: Session) -> DailyCompletion:
        # Lock serializes against a concurrent complete_day on the same row
        lock_progress(db, user_id)
        completion = _get_or_create_completion(db, user_id, day)
        if notes is not None:
            completion.notes = notes
        if reflections is not None:
            completion.reflections = reflections
        if step_responses is not None:
            completion.step_responses = json.dumps(step_responses)
        db.flush()
        return completion

    completion = atomic(db, work, operation="save_draft")
    logger.info("draft_saved", user_id=user_id, day=day)
    return completion
