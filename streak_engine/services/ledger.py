"""
Token ledger: append-only transactions + materialized balances.

Public API
----------
award(db, user_id, token_type, amount, reason, metadata)  -> Balances   (own unit of work)
spend(db, user_id, token_type, amount, reason, metadata)  -> Balances   (own unit of work)
get_balances(db, user_id)                                 -> Balances
list_transactions(db, user_id, limit, offset)             -> (total, page)
audit_balances(db, user_id)                               -> BalanceAudit

Internal (flush only, used inside another unit of work)
--------
credit(db, progress, ...)  → TokenTransaction
debit(db, progress, ...)   → TokenTransaction   (raises InsufficientFundsError)

The ledger row and the balance change are always written in the same
transaction, so stored balances never drift from sum(earned) - sum(spent).
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from streak_engine.core.errors import (
    InsufficientFundsError,
    InvalidAmountError,
)
from streak_engine.db.atomic import atomic, load_progress, lock_progress
from streak_engine.models.progress import UserProgress
from streak_engine.models.token_transaction import TokenTransaction, TokenType, TransactionKind

logger = structlog.get_logger(__name__)

# Column on user_progress holding each token type's balance
_BALANCE_FIELD = {
    TokenType.founder_coins: "founder_coins",
    TokenType.vision_gems: "vision_gems",
}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Balances:
    founder_coins: int
    vision_gems: int
    experience_points: int

    @classmethod
    def from_progress(cls, progress: UserProgress) -> "Balances":
        return cls(
            founder_coins=progress.founder_coins,
            vision_gems=progress.vision_gems,
            experience_points=progress.experience_points,
        )


@dataclass
class BalanceAudit:
    stored: dict[str, int]
    ledger: dict[str, int]

    @property
    def consistent(self) -> bool:
        return self.stored == self.ledger


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(amount)


def _append(
    db: Session,
    progress: UserProgress,
    kind: TransactionKind,
    token_type: TokenType,
    amount: int,
    reason: str,
    metadata: Optional[dict[str, Any]],
) -> TokenTransaction:
    tx = TokenTransaction(
        user_id=progress.user_id,
        kind=kind,
        token_type=token_type,
        amount=amount,
        reason=reason,
        tx_metadata=json.dumps(metadata, default=str) if metadata is not None else None,
    )
    db.add(tx)
    return tx


# ---------------------------------------------------------------------------
# Core — flush only
# ---------------------------------------------------------------------------

def credit(
    db: Session,
    progress: UserProgress,
    token_type: TokenType | str,
    amount: int,
    reason: str,
    metadata: Optional[dict[str, Any]] = None,
) -> TokenTransaction:
    """Append an `earned` entry and raise the balance. Does NOT commit."""
    _check_amount(amount)
    token_type = TokenType(token_type)
    field = _BALANCE_FIELD[token_type]
    setattr(progress, field, getattr(progress, field) + amount)
    return _append(db, progress, TransactionKind.earned, token_type, amount, reason, metadata)


def debit(
    db: Session,
    progress: UserProgress,
    token_type: TokenType | str,
    amount: int,
    reason: str,
    metadata: Optional[dict[str, Any]] = None,
) -> TokenTransaction:
    """
    Append a `spent` entry and lower the balance. Does NOT commit.
    Rejects (never clamps) when the balance is short.
    """
    _check_amount(amount)
    token_type = TokenType(token_type)
    field = _BALANCE_FIELD[token_type]
    balance = getattr(progress, field)
    if balance < amount:
        logger.info(
            "tokens_spend_rejected",
            user_id=progress.user_id,
            token_type=token_type.value,
            balance=balance,
            required=amount,
            reason=reason,
        )
        raise InsufficientFundsError(token_type.value, balance, amount)
    setattr(progress, field, balance - amount)
    return _append(db, progress, TransactionKind.spent, token_type, amount, reason, metadata)


# ---------------------------------------------------------------------------
# Public — award / spend
# ---------------------------------------------------------------------------

def award(
    db: Session,
    user_id: str,
    token_type: TokenType | str,
    amount: int,
    reason: str,
    metadata: Optional[dict[str, Any]] = None,
) -> Balances:
    _check_amount(amount)

    def work(db: Session) -> Balances:
        progress = lock_progress(db, user_id)
        credit(db, progress, token_type, amount, reason, metadata)
        return Balances.from_progress(progress)

    balances = atomic(db, work, operation="award")
    logger.info(
        "tokens_awarded",
        user_id=user_id,
        token_type=TokenType(token_type).value,
        amount=amount,
        reason=reason,
    )
    return balances


def spend(
    db: Session,
    user_id: str,
    token_type: TokenType | str,
    amount: int,
    reason: str,
    metadata: Optional[dict[str, Any]] = None,
) -> Balances:
    _check_amount(amount)

    def work(db: Session) -> Balances:
        progress = lock_progress(db, user_id)
        debit(db, progress, token_type, amount, reason, metadata)
        return Balances.from_progress(progress)

    balances = atomic(db, work, operation="spend")
    logger.info(
        "tokens_spent",
        user_id=user_id,
        token_type=TokenType(token_type).value,
        amount=amount,
        reason=reason,
    )
    return balances


# ---------------------------------------------------------------------------
# Public — queries
# ---------------------------------------------------------------------------

def get_balances(db: Session, user_id: str) -> Balances:
    return Balances.from_progress(load_progress(db, user_id))


def list_transactions(
    db: Session,
    user_id: str,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[TokenTransaction]]:
    """Return (total, page) of the user's ledger, newest first."""
    load_progress(db, user_id)
    q = db.query(TokenTransaction).filter(TokenTransaction.user_id == user_id)
    total = q.count()
    items = (
        q.order_by(TokenTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items


def audit_balances(db: Session, user_id: str) -> BalanceAudit:
    """Recompute balances from the ledger and compare with the stored ones."""
    progress = load_progress(db, user_id)
    signed = case(
        (TokenTransaction.kind == TransactionKind.earned, TokenTransaction.amount),
        else_=-TokenTransaction.amount,
    )
    rows = (
        db.query(TokenTransaction.token_type, func.coalesce(func.sum(signed), 0))
        .filter(TokenTransaction.user_id == user_id)
        .group_by(TokenTransaction.token_type)
        .all()
    )
    ledger = {t.value: 0 for t in TokenType}
    for token_type, total in rows:
        ledger[TokenType(token_type).value] = int(total)

    stored = {t.value: getattr(progress, field) for t, field in _BALANCE_FIELD.items()}
    return BalanceAudit(stored=stored, ledger=ledger)
