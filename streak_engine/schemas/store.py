"""
Store and daily challenge schemas.
"""
from __future__ import annotations

from typing import Annotated, Optional

from pydantic import BaseModel, Field

from streak_engine.schemas.common import BalancesOut


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class StoreItemOut(BaseModel):
    id: int
    name: str
    description: str
    category: str = Field(description='"streak_tools" | "power_ups" | "customization" | "charity"')
    token_type: str
    cost: int = Field(description="Price per unit.")
    icon_emoji: Optional[str] = None
    sort_order: int


class StoreItemListResponse(BaseModel):
    items: list[StoreItemOut]


class PurchaseRequest(BaseModel):
    item_id: Annotated[int, Field(ge=1, examples=[1])]
    quantity: Annotated[int, Field(ge=1, le=100, description="Units to buy.")] = 1


class PurchaseOut(BaseModel):
    id: int
    item_id: int
    item_name: str
    quantity: int
    total_cost: int
    token_type: str
    purchased_at: str


class PurchaseResponse(BaseModel):
    purchase: PurchaseOut
    new_balances: BalancesOut


class PurchaseListResponse(BaseModel):
    items: list[PurchaseOut]


# ---------------------------------------------------------------------------
# Daily challenges
# ---------------------------------------------------------------------------

class ChallengeOut(BaseModel):
    id: int
    name: str
    description: str
    challenge_type: str
    reward_token_type: str
    reward_amount: int
    completed_today: bool


class ChallengeListResponse(BaseModel):
    challenges: list[ChallengeOut]
    completed_count: int
    total_count: int


class CompleteChallengeRequest(BaseModel):
    challenge_id: Annotated[int, Field(ge=1, examples=[1])]


class CompleteChallengeResponse(BaseModel):
    challenge_id: int
    new_balances: BalancesOut
