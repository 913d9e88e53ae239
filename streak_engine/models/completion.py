"""
DailyCompletion — one row per (user, day). `day` is the natural key.

A row may exist as a draft (completed=False, notes saved) before the day is
completed. completed_at is stamped once, on the first transition to
completed, and never moves afterwards.

step_responses: JSON-encoded dict stored as Text.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from streak_engine.db.base import Base


class DailyCompletion(Base):
    __tablename__ = "daily_completions"
    __table_args__ = (
        UniqueConstraint("user_id", "day", name="uq_daily_completion_user_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reflections: Mapped[str | None] = mapped_column(Text, nullable=True)
    step_responses: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        comment="JSON-encoded {step_key: response} map",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
