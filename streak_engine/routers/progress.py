"""
Progress router — the day-advancement engine over HTTP.

POST /progress/init           — create the user's progress (idempotent)
GET  /progress                — progress, completions, achievements
POST /progress/complete-day   — complete a day
POST /progress/end-day        — close the day and schedule the next unlock
GET  /progress/can-advance    — lock state
POST /progress/draft          — save notes / reflections / step responses
GET  /progress/days/{day}     — one day's completion or draft
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.orm import Session

from streak_engine.core.clock import Clock, ensure_utc, get_clock
from streak_engine.core.deps import get_user_id
from streak_engine.db.base import get_db
from streak_engine.models.completion import DailyCompletion
from streak_engine.models.progress import UserProgress
from streak_engine.schemas.common import ErrorResponse
from streak_engine.schemas.progress import (
    AchievementOut,
    CanAdvanceResponse,
    CompleteDayRequest,
    CompleteDayResponse,
    CompletionOut,
    DayResponse,
    EndDayRequest,
    EndDayResponse,
    ProgressInitResponse,
    ProgressOut,
    ProgressResponse,
    SaveDraftRequest,
)
from streak_engine.services import progress as engine

router = APIRouter(prefix="/progress", tags=["progress"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "User not initialized (PROGRESS_NOT_FOUND)."}}


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _iso(value: Optional[datetime]) -> Optional[str]:
    return ensure_utc(value).isoformat() if value else None


def _progress_to_response(p: UserProgress) -> ProgressOut:
    return ProgressOut(
        user_id=p.user_id,
        current_day=p.current_day,
        streak=p.streak,
        best_streak=p.best_streak,
        total_completed_days=p.total_completed_days,
        building_level=p.building_level,
        founder_coins=p.founder_coins,
        vision_gems=p.vision_gems,
        experience_points=p.experience_points,
        last_day_completed_at=_iso(p.last_day_completed_at),
        next_day_unlocks_at=_iso(p.next_day_unlocks_at),
        journey_started_at=_iso(p.journey_started_at) or "",
    )


def _completion_to_response(c: DailyCompletion) -> CompletionOut:
    return CompletionOut(
        day=c.day,
        completed=c.completed,
        completed_at=_iso(c.completed_at),
        notes=c.notes,
        reflections=c.reflections,
        step_responses=engine.parse_step_responses(c.step_responses),
        updated_at=_iso(c.updated_at),
    )


# ---------------------------------------------------------------------------
# POST /progress/init
# ---------------------------------------------------------------------------

@router.post(
    "/init",
    response_model=ProgressInitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Initialize the user's 90-day journey",
    responses={200: {"description": "Already initialized; existing progress returned."}},
)
def init_progress(
    response: Response,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Create progress on day 1 with the starter balances.
    Calling it again is harmless: the existing row is returned with HTTP 200.
    """
    progress, created = engine.init_progress(db, user_id, clock)
    if not created:
        response.status_code = status.HTTP_200_OK
    return ProgressInitResponse(created=created, progress=_progress_to_response(progress))


# ---------------------------------------------------------------------------
# GET /progress
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=ProgressResponse,
    summary="Progress, completions (newest day first) and achievements",
    responses=_NOT_FOUND,
)
def get_progress(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    snapshot = engine.get_progress(db, user_id)
    return ProgressResponse(
        progress=_progress_to_response(snapshot.progress),
        completions=[_completion_to_response(c) for c in snapshot.completions],
        achievements=[
            AchievementOut(**{**a, "unlocked_at": _iso(a["unlocked_at"])})
            for a in snapshot.achievements
        ],
    )


# ---------------------------------------------------------------------------
# POST /progress/complete-day
# ---------------------------------------------------------------------------

@router.post(
    "/complete-day",
    response_model=CompleteDayResponse,
    summary="Complete a day",
    responses={
        **_NOT_FOUND,
        400: {"model": ErrorResponse, "description": "Day is ahead of current_day (FUTURE_DAY)."},
        429: {"model": ErrorResponse, "description": "Next day still locked (DAY_LOCKED). details.hours_left tells how long."},
    },
)
def complete_day(
    body: CompleteDayRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Mark `day` completed and recompute streak, totals and level.

    | Situation | Result |
    |---|---|
    | `day > current_day` | 400 `FUTURE_DAY` |
    | locked and `day >= current_day` | 429 `DAY_LOCKED` |
    | past day while locked | allowed |
    | day already completed | idempotent; `completed_at` and the total are kept |

    Every completion schedules the next unlock at now + 18h.
    """
    result = engine.complete_day(
        db, user_id, body.day, clock,
        notes=body.notes,
        reflections=body.reflections,
    )
    return CompleteDayResponse(
        completion=_completion_to_response(result.completion),
        progress=_progress_to_response(result.progress),
        achievements_unlocked=result.achievements_unlocked,
    )


# ---------------------------------------------------------------------------
# POST /progress/end-day
# ---------------------------------------------------------------------------

@router.post(
    "/end-day",
    response_model=EndDayResponse,
    summary="End the day now and schedule the next unlock",
    responses=_NOT_FOUND,
)
def end_day(
    body: Optional[EndDayRequest] = None,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Next unlock = now + 18h, or `max(custom_unlock_time, now + 8h)` when a
    custom time is given. Does not touch current_day or the streak.
    """
    custom = ensure_utc(body.custom_unlock_time) if body else None
    progress = engine.end_day(db, user_id, clock, custom_unlock_time=custom)
    return EndDayResponse(
        next_unlock_time=_iso(progress.next_day_unlocks_at) or "",
        progress=_progress_to_response(progress),
    )


# ---------------------------------------------------------------------------
# GET /progress/can-advance
# ---------------------------------------------------------------------------

@router.get(
    "/can-advance",
    response_model=CanAdvanceResponse,
    summary="Whether the next day is unlocked",
    responses=_NOT_FOUND,
)
def can_advance(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    status_ = engine.can_advance(db, user_id, clock)
    return CanAdvanceResponse(
        can_advance=status_.can_advance,
        time_left=status_.time_left,
        next_unlock_time=_iso(status_.next_unlock_time),
        current_day=status_.current_day,
    )


# ---------------------------------------------------------------------------
# POST /progress/draft
# ---------------------------------------------------------------------------

@router.post(
    "/draft",
    response_model=DayResponse,
    summary="Save a draft for a day without completing it",
    responses=_NOT_FOUND,
)
def save_draft(
    body: SaveDraftRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Allowed while locked. Fields left out keep their stored values."""
    completion = engine.save_draft(
        db, user_id, body.day,
        notes=body.notes,
        reflections=body.reflections,
        step_responses=body.step_responses,
    )
    return DayResponse(completion=_completion_to_response(completion))


# ---------------------------------------------------------------------------
# GET /progress/days/{day}
# ---------------------------------------------------------------------------

@router.get(
    "/days/{day}",
    response_model=DayResponse,
    summary="One day's completion or draft",
    responses=_NOT_FOUND,
)
def get_day(
    day: int = Path(ge=1, description="Day number (1-based)."),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    completion = engine.get_day(db, user_id, day)
    return DayResponse(
        completion=_completion_to_response(completion) if completion else None
    )
