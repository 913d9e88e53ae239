"""
Token ledger router.

GET  /tokens                — current balances
GET  /tokens/transactions   — ledger history (paginated, newest first)
GET  /tokens/audit          — stored balances vs. ledger sums
POST /tokens/award          — credit tokens
POST /tokens/spend          — debit tokens (409 when short)
"""
from __future__ import annotations

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from streak_engine.core.clock import ensure_utc
from streak_engine.core.deps import get_user_id
from streak_engine.db.base import get_db
from streak_engine.models.token_transaction import TokenTransaction
from streak_engine.schemas.common import BalancesOut, ErrorResponse
from streak_engine.schemas.tokens import (
    BalanceAuditResponse,
    TokenChangeRequest,
    TokenChangeResponse,
    TransactionListResponse,
    TransactionOut,
)
from streak_engine.services import ledger
from streak_engine.services.ledger import Balances

router = APIRouter(prefix="/tokens", tags=["tokens"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "User not initialized (PROGRESS_NOT_FOUND)."}}


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def enum_value(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _parse_metadata(raw: Optional[str]) -> Optional[dict[str, Any]]:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (ValueError, TypeError):
        return None


def balances_to_response(b: Balances) -> BalancesOut:
    return BalancesOut(
        founder_coins=b.founder_coins,
        vision_gems=b.vision_gems,
        experience_points=b.experience_points,
    )


def _tx_to_response(tx: TokenTransaction) -> TransactionOut:
    return TransactionOut(
        id=tx.id,
        type=enum_value(tx.kind),
        token_type=enum_value(tx.token_type),
        amount=tx.amount,
        reason=tx.reason,
        metadata=_parse_metadata(tx.tx_metadata),
        created_at=ensure_utc(tx.created_at).isoformat() if tx.created_at else "",
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

@router.get("", response_model=BalancesOut, summary="Current token balances", responses=_NOT_FOUND)
def get_balances(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return balances_to_response(ledger.get_balances(db, user_id))


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    summary="Ledger history (newest first)",
    responses=_NOT_FOUND,
)
def list_transactions(
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    total, items = ledger.list_transactions(db, user_id, limit=limit, offset=offset)
    return TransactionListResponse(
        total=total,
        items=[_tx_to_response(tx) for tx in items],
    )


@router.get(
    "/audit",
    response_model=BalanceAuditResponse,
    summary="Compare stored balances with the ledger",
    responses=_NOT_FOUND,
)
def audit(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """`consistent` is false if any balance drifted from sum(earned) - sum(spent)."""
    result = ledger.audit_balances(db, user_id)
    return BalanceAuditResponse(
        stored=result.stored,
        ledger=result.ledger,
        consistent=result.consistent,
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

@router.post(
    "/award",
    response_model=TokenChangeResponse,
    summary="Award tokens",
    responses={
        **_NOT_FOUND,
        422: {"model": ErrorResponse, "description": "amount <= 0, unknown token_type or bad reason."},
    },
)
def award(
    body: TokenChangeRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    balances = ledger.award(
        db, user_id, body.token_type, body.amount, body.reason, body.metadata
    )
    return TokenChangeResponse(new_balances=balances_to_response(balances))


@router.post(
    "/spend",
    response_model=TokenChangeResponse,
    summary="Spend tokens",
    responses={
        **_NOT_FOUND,
        409: {"model": ErrorResponse, "description": "Balance too low (INSUFFICIENT_FUNDS). Nothing is changed."},
    },
)
def spend(
    body: TokenChangeRequest,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    balances = ledger.spend(
        db, user_id, body.token_type, body.amount, body.reason, body.metadata
    )
    return TokenChangeResponse(new_balances=balances_to_response(balances))
