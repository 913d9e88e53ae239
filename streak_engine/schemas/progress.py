"""
Progress request / response schemas.

POST /progress/init           → ProgressInitResponse
GET  /progress                → ProgressResponse
POST /progress/complete-day   → CompleteDayRequest → CompleteDayResponse
POST /progress/end-day        → EndDayRequest      → EndDayResponse
GET  /progress/can-advance    → CanAdvanceResponse
POST /progress/draft          → SaveDraftRequest   → DayResponse
GET  /progress/days/{day}     → DayResponse
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

class ProgressOut(BaseModel):
    user_id: str
    current_day: int = Field(description="Next day the user may complete (1-based).")
    streak: int = Field(description="Consecutive completed days ending at the last completed day.")
    best_streak: int
    total_completed_days: int
    building_level: int = Field(description="min(total_completed_days + 1, 90)")
    founder_coins: int
    vision_gems: int
    experience_points: int
    last_day_completed_at: Optional[str] = None
    next_day_unlocks_at: Optional[str] = Field(
        default=None,
        description="UTC timestamp after which the next day may be completed. Null when unlocked from the start.",
    )
    journey_started_at: str


class CompletionOut(BaseModel):
    day: int
    completed: bool
    completed_at: Optional[str] = None
    notes: Optional[str] = None
    reflections: Optional[str] = None
    step_responses: Optional[dict[str, str]] = None
    updated_at: Optional[str] = None


class AchievementOut(BaseModel):
    id: str = Field(examples=["first-week"])
    icon: str
    title: str
    description: str
    requirement: int = Field(description="Completed days needed to unlock.")
    unlocked: bool
    unlocked_at: Optional[str] = None


class ProgressInitResponse(BaseModel):
    created: bool = Field(description="False when the user was already initialized.")
    progress: ProgressOut


class ProgressResponse(BaseModel):
    progress: ProgressOut
    completions: list[CompletionOut] = Field(description="Newest day first.")
    achievements: list[AchievementOut]


class CompleteDayResponse(BaseModel):
    completion: CompletionOut
    progress: ProgressOut
    achievements_unlocked: list[str] = Field(
        default_factory=list,
        description="Achievement ids unlocked by this completion.",
    )


class EndDayResponse(BaseModel):
    next_unlock_time: str
    progress: ProgressOut


class CanAdvanceResponse(BaseModel):
    can_advance: bool
    time_left: int = Field(description="Whole hours until unlock, rounded up. 0 when unlocked.")
    next_unlock_time: Optional[str] = None
    current_day: int


class DayResponse(BaseModel):
    completion: Optional[CompletionOut] = Field(
        default=None,
        description="Null when nothing was saved for this day yet.",
    )


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class CompleteDayRequest(BaseModel):
    day: Annotated[int, Field(ge=1, description="Day to complete (1-based).", examples=[1])]
    notes: Optional[str] = Field(default=None, max_length=10_000)
    reflections: Optional[str] = Field(default=None, max_length=10_000)


class EndDayRequest(BaseModel):
    custom_unlock_time: Optional[datetime] = Field(
        default=None,
        description=(
            "Requested unlock time. Values earlier than now + 8h are raised to "
            "now + 8h. Omit for the default of now + 18h. Naive values are UTC."
        ),
        examples=["2026-03-02T07:00:00Z"],
    )


class SaveDraftRequest(BaseModel):
    day: Annotated[int, Field(ge=1, description="Day the draft belongs to.", examples=[3])]
    notes: Optional[str] = Field(default=None, max_length=10_000)
    reflections: Optional[str] = Field(default=None, max_length=10_000)
    step_responses: Optional[dict[str, str]] = Field(
        default=None,
        description="Free-form answers keyed by step id. Replaces the stored map.",
        examples=[{"step-1": "Called three potential customers"}],
    )
