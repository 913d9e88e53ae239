from datetime import datetime, date
from sqlalchemy import Integer, String, Text, Boolean, DateTime, Date, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from streak_engine.db.base import Base
from streak_engine.models.token_transaction import TokenType


class DailyChallenge(Base):
    """A bonus task that pays out tokens once per user per UTC date."""

    __tablename__ = "daily_challenges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    challenge_type: Mapped[str] = mapped_column(String(50), nullable=False)
    reward_token_type: Mapped[str] = mapped_column(
        Enum(TokenType, name="token_type_enum"), nullable=False
    )
    reward_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class UserChallengeCompletion(Base):
    __tablename__ = "user_challenge_completions"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "challenge_id", "completed_date",
            name="uq_user_challenge_per_day",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    challenge_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("daily_challenges.id"), nullable=False
    )
    completed_date: Mapped[date] = mapped_column(Date, nullable=False)
    reward_claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
