"""
Token ledger schemas.

GET  /tokens/transactions → TransactionListResponse
POST /tokens/award|spend  → TokenChangeRequest → TokenChangeResponse
GET  /tokens/audit        → BalanceAuditResponse
"""
from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from streak_engine.models.token_transaction import TokenType
from streak_engine.schemas.common import BalancesOut


class TokenChangeRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    token_type: TokenType = Field(examples=["founder_coins"])
    amount: Annotated[int, Field(gt=0, description="Positive whole number of tokens.", examples=[10])]
    reason: Annotated[str, Field(
        min_length=1,
        max_length=100,
        description="Short machine-friendly reason, e.g. \"daily_bonus\".",
        examples=["daily_bonus"],
    )]
    metadata: Optional[dict[str, Any]] = None

    @field_validator("reason", mode="before")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v


class TokenChangeResponse(BaseModel):
    new_balances: BalancesOut


class TransactionOut(BaseModel):
    id: int
    type: str = Field(description='"earned" | "spent"')
    token_type: str
    amount: int
    reason: str
    metadata: Optional[dict[str, Any]] = None
    created_at: str


class TransactionListResponse(BaseModel):
    total: int
    items: list[TransactionOut]


class BalanceAuditResponse(BaseModel):
    stored: dict[str, int] = Field(description="Balances on the progress row.")
    ledger: dict[str, int] = Field(description="sum(earned) - sum(spent) per token type.")
    consistent: bool
