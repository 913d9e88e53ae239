"""
Store and daily challenge routers.

GET  /store/items          — catalog
POST /store/purchase       — buy an item with tokens
GET  /store/purchases      — the user's purchases
GET  /challenges/daily     — today's challenges with completion flags
POST /challenges/complete  — claim a challenge reward (once per UTC day)
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from streak_engine.core.clock import Clock, ensure_utc, get_clock
from streak_engine.core.deps import get_user_id
from streak_engine.db.base import get_db
from streak_engine.models.store import StoreItem, UserPurchase
from streak_engine.routers.tokens import balances_to_response, enum_value
from streak_engine.schemas.common import ErrorResponse
from streak_engine.schemas.store import (
    ChallengeListResponse,
    ChallengeOut,
    CompleteChallengeRequest,
    CompleteChallengeResponse,
    PurchaseListResponse,
    PurchaseOut,
    PurchaseRequest,
    PurchaseResponse,
    StoreItemListResponse,
    StoreItemOut,
)
from streak_engine.services import challenges as challenge_service
from streak_engine.services import store as store_service

router = APIRouter(prefix="/store", tags=["store"])
challenges_router = APIRouter(prefix="/challenges", tags=["challenges"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _item_to_response(item: StoreItem) -> StoreItemOut:
    return StoreItemOut(
        id=item.id,
        name=item.name,
        description=item.description,
        category=enum_value(item.category),
        token_type=enum_value(item.token_type),
        cost=item.cost,
        icon_emoji=item.icon_emoji,
        sort_order=item.sort_order,
    )


def _purchase_to_response(p: UserPurchase) -> PurchaseOut:
    return PurchaseOut(
        id=p.id,
        item_id=p.store_item_id,
        item_name=p.store_item.name,
        quantity=p.quantity,
        total_cost=p.total_cost,
        token_type=enum_value(p.token_type),
        purchased_at=ensure_utc(p.purchased_at).isoformat(),
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

@router.get("/items", response_model=StoreItemListResponse, summary="Active store items")
def list_items(db: Session = Depends(get_db)):
    return StoreItemListResponse(
        items=[_item_to_response(i) for i in store_service.list_store_items(db)]
    )


@router.post(
    "/purchase",
    response_model=PurchaseResponse,
    summary="Buy a store item",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown item or user not initialized."},
        409: {"model": ErrorResponse, "description": "Balance too low (INSUFFICIENT_FUNDS)."},
    },
)
def purchase(
    body: PurchaseRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Spends `cost * quantity` of the item's token type and records the purchase."""
    result = store_service.purchase(db, user_id, body.item_id, clock, quantity=body.quantity)
    return PurchaseResponse(
        purchase=_purchase_to_response(result.purchase),
        new_balances=balances_to_response(result.balances),
    )


@router.get(
    "/purchases",
    response_model=PurchaseListResponse,
    summary="The user's purchases (newest first)",
    responses={404: {"model": ErrorResponse, "description": "User not initialized."}},
)
def list_purchases(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return PurchaseListResponse(
        items=[_purchase_to_response(p) for p in store_service.list_purchases(db, user_id)]
    )


# ---------------------------------------------------------------------------
# Daily challenges
# ---------------------------------------------------------------------------

@challenges_router.get(
    "/daily",
    response_model=ChallengeListResponse,
    summary="Today's challenges",
)
def list_daily_challenges(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """`completed_today` is evaluated against the current UTC date."""
    statuses = challenge_service.list_daily_challenges(db, user_id, clock)
    items = [
        ChallengeOut(
            id=s.challenge.id,
            name=s.challenge.name,
            description=s.challenge.description,
            challenge_type=s.challenge.challenge_type,
            reward_token_type=enum_value(s.challenge.reward_token_type),
            reward_amount=s.challenge.reward_amount,
            completed_today=s.completed_today,
        )
        for s in statuses
    ]
    return ChallengeListResponse(
        challenges=items,
        completed_count=sum(1 for s in statuses if s.completed_today),
        total_count=len(items),
    )


@challenges_router.post(
    "/complete",
    response_model=CompleteChallengeResponse,
    summary="Claim a daily challenge reward",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown challenge or user not initialized."},
        409: {"model": ErrorResponse, "description": "Already claimed today (CHALLENGE_ALREADY_COMPLETED)."},
    },
)
def complete_challenge(
    body: CompleteChallengeRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    balances = challenge_service.complete_challenge(db, user_id, body.challenge_id, clock)
    return CompleteChallengeResponse(
        challenge_id=body.challenge_id,
        new_balances=balances_to_response(balances),
    )
