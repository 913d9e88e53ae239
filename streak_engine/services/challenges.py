"""
Daily challenges: bonus tokens, claimable once per challenge per UTC date.

The claim row and the ledger credit are written in one unit of work; the
(user_id, challenge_id, completed_date) unique constraint backs the check.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import structlog
from sqlalchemy.orm import Session

from streak_engine.core.clock import Clock
from streak_engine.core.errors import ChallengeAlreadyCompletedError, ChallengeNotFoundError
from streak_engine.db.atomic import atomic, lock_progress
from streak_engine.models.challenge import DailyChallenge, UserChallengeCompletion
from streak_engine.services.ledger import Balances, credit

logger = structlog.get_logger(__name__)


@dataclass
class ChallengeStatus:
    challenge: DailyChallenge
    completed_today: bool


def _active_challenges(db: Session) -> list[DailyChallenge]:
    return (
        db.query(DailyChallenge)
        .filter(DailyChallenge.is_active == True)  # noqa: E712
        .order_by(DailyChallenge.name.asc())
        .all()
    )


def _claimed_on(db: Session, user_id: str, day: date) -> set[int]:
    return {
        row.challenge_id
        for row in db.query(UserChallengeCompletion.challenge_id).filter(
            UserChallengeCompletion.user_id == user_id,
            UserChallengeCompletion.completed_date == day,
        )
    }


def list_daily_challenges(db: Session, user_id: str, clock: Clock) -> list[ChallengeStatus]:
    claimed = _claimed_on(db, user_id, clock.now().date())
    return [
        ChallengeStatus(challenge=c, completed_today=c.id in claimed)
        for c in _active_challenges(db)
    ]


def complete_challenge(
    db: Session,
    user_id: str,
    challenge_id: int,
    clock: Clock,
) -> Balances:
    now = clock.now()
    today = now.date()

    def work(db: Session) -> Balances:
        progress = lock_progress(db, user_id)
        challenge = db.get(DailyChallenge, challenge_id)
        if challenge is None or not challenge.is_active:
            raise ChallengeNotFoundError(challenge_id)
        if challenge_id in _claimed_on(db, user_id, today):
            raise ChallengeAlreadyCompletedError(challenge_id, today.isoformat())

        db.add(UserChallengeCompletion(
            user_id=user_id,
            challenge_id=challenge_id,
            completed_date=today,
            reward_claimed=True,
            completed_at=now,
        ))
        credit(
            db, progress, challenge.reward_token_type, challenge.reward_amount,
            reason="challenge_completion",
            metadata={
                "challenge_id": challenge.id,
                "challenge_type": challenge.challenge_type,
                "completed_date": today.isoformat(),
            },
        )
        return Balances.from_progress(progress)

    balances = atomic(db, work, operation="complete_challenge")
    logger.info("challenge_completed", user_id=user_id, challenge_id=challenge_id)
    return balances
