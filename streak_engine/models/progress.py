"""
UserProgress — one mutable row per user.

Written only through the day-advancement engine and the token ledger, inside
db.atomic(). `version` is SQLAlchemy's optimistic concurrency counter: every
UPDATE checks and bumps it.
"""
from datetime import datetime
from sqlalchemy import Integer, String, DateTime, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from streak_engine.db.base import Base


class UserProgress(Base):
    __tablename__ = "user_progress"
    __table_args__ = (
        CheckConstraint("current_day >= 1", name="ck_progress_current_day_positive"),
        CheckConstraint("streak >= 0", name="ck_progress_streak_non_negative"),
        CheckConstraint("best_streak >= streak", name="ck_progress_best_streak"),
        CheckConstraint("founder_coins >= 0", name="ck_progress_founder_coins"),
        CheckConstraint("vision_gems >= 0", name="ck_progress_vision_gems"),
        CheckConstraint("experience_points >= 0", name="ck_progress_experience_points"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    current_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    best_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_completed_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    building_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_day_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    next_day_unlocks_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Materialized token balances; always equal to the sum of token_transactions.
    founder_coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vision_gems: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    experience_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    journey_started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
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

    __mapper_args__ = {"version_id_col": version}
