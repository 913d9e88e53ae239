"""
Store: catalog listing and purchases paid from the token ledger.
A purchase is one unit of work: spend + purchase row, or nothing.
"""
from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy.orm import Session

from streak_engine.core.clock import Clock
from streak_engine.core.errors import InvalidAmountError, StoreItemNotFoundError
from streak_engine.db.atomic import atomic, load_progress, lock_progress
from streak_engine.models.store import StoreItem, UserPurchase
from streak_engine.services.ledger import Balances, debit

logger = structlog.get_logger(__name__)


@dataclass
class PurchaseResult:
    purchase: UserPurchase
    balances: Balances


def list_store_items(db: Session) -> list[StoreItem]:
    return (
        db.query(StoreItem)
        .filter(StoreItem.is_active == True)  # noqa: E712
        .order_by(StoreItem.sort_order.asc(), StoreItem.name.asc())
        .all()
    )


def purchase(
    db: Session,
    user_id: str,
    item_id: int,
    clock: Clock,
    quantity: int = 1,
) -> PurchaseResult:
    if quantity < 1:
        raise InvalidAmountError(quantity)
    now = clock.now()

    def work(db: Session) -> PurchaseResult:
        progress = lock_progress(db, user_id)
        item = db.get(StoreItem, item_id)
        if item is None or not item.is_active:
            raise StoreItemNotFoundError(item_id)

        total_cost = item.cost * quantity
        debit(
            db, progress, item.token_type, total_cost,
            reason="store_purchase",
            metadata={"item_id": item.id, "item_name": item.name, "quantity": quantity},
        )
        row = UserPurchase(
            user_id=user_id,
            store_item_id=item.id,
            quantity=quantity,
            total_cost=total_cost,
            token_type=item.token_type,
            purchased_at=now,
        )
        db.add(row)
        db.flush()
        return PurchaseResult(purchase=row, balances=Balances.from_progress(progress))

    result = atomic(db, work, operation="purchase")
    logger.info(
        "store_purchase",
        user_id=user_id,
        item_id=item_id,
        quantity=quantity,
        total_cost=result.purchase.total_cost,
    )
    return result


def list_purchases(db: Session, user_id: str) -> list[UserPurchase]:
    load_progress(db, user_id)
    return (
        db.query(UserPurchase)
        .filter(UserPurchase.user_id == user_id)
        .order_by(UserPurchase.purchased_at.desc(), UserPurchase.id.desc())
        .all()
    )
