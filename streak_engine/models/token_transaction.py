"""
TokenTransaction — append-only ledger of Founder Coin / Vision Gem movements.

Never updated or deleted. The balances on user_progress are a materialized
view of this table: per token type, sum(earned) - sum(spent).

metadata: JSON-encoded dict stored as Text.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, Enum, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from streak_engine.db.base import Base


class TransactionKind(str, enum.Enum):
    earned = "earned"
    spent = "spent"


class TokenType(str, enum.Enum):
    founder_coins = "founder_coins"
    vision_gems = "vision_gems"


class TokenTransaction(Base):
    __tablename__ = "token_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_token_transaction_amount_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(
        "type",
        Enum(TransactionKind, name="token_transaction_kind_enum"),
        nullable=False,
    )
    token_type: Mapped[str] = mapped_column(
        Enum(TokenType, name="token_type_enum"),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)
    tx_metadata: Mapped[str | None] = mapped_column(
        "metadata", Text, nullable=True,
        comment="JSON-encoded dict with context (day, item purchased, challenge, ...)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
