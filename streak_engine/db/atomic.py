"""
Unit of work for per-user read-modify-write operations.

Every mutating engine operation (complete-day, end-day, drafts, award,
spend, purchases, challenge claims) runs as:

    result = atomic(db, work, operation="complete_day")

`work(db)` loads the user's progress row with SELECT ... FOR UPDATE
(see lock_progress), mutates ORM objects, and returns a result. It must not
commit. atomic() commits exactly once; on any error the session is rolled
back so no half-updated progress row is ever visible.

user_progress also carries a version_id_col. On backends without row locks
(SQLite) a concurrent writer that committed first makes our flush raise
StaleDataError. Rows a concurrent writer inserted first (a draft for the
same day, a challenge claim) surface as IntegrityError on a unique key. In
both cases the whole unit is replayed from a fresh read, up to
settings.WRITE_RETRY_ATTEMPTS times; the replay sees the committed row.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from streak_engine.core.config import settings
from streak_engine.core.errors import (
    ConcurrentUpdateError,
    PersistenceError,
    ProgressNotFoundError,
)
from streak_engine.models.progress import UserProgress

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def load_progress(db: Session, user_id: str) -> UserProgress:
    """Load the user's progress row without locking it. Read paths only."""
    progress = db.query(UserProgress).filter(UserProgress.user_id == user_id).first()
    if progress is None:
        raise ProgressNotFoundError(user_id)
    return progress


def lock_progress(db: Session, user_id: str) -> UserProgress:
    """Load the user's progress row, locked for the rest of the transaction."""
    progress = (
        db.query(UserProgress)
        .filter(UserProgress.user_id == user_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if progress is None:
        raise ProgressNotFoundError(user_id)
    return progress


def atomic(
    db: Session,
    work: Callable[[Session], T],
    operation: str,
    attempts: int | None = None,
) -> T:
    max_attempts = attempts or settings.WRITE_RETRY_ATTEMPTS

    for attempt in range(1, max_attempts + 1):
        try:
            result = work(db)
            db.commit()
            return result
        except StaleDataError:
            db.rollback()
            logger.warning("stale_progress_retry", operation=operation, attempt=attempt)
        except IntegrityError as exc:
            db.rollback()
            logger.warning(
                "conflicting_insert_retry",
                operation=operation,
                attempt=attempt,
                error=str(exc.orig),
            )
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("unit_of_work_failed", operation=operation, error=str(exc))
            raise PersistenceError(operation) from exc
        except Exception:
            # Policy errors and anything unexpected: nothing may be half-applied.
            db.rollback()
            raise

    raise ConcurrentUpdateError(attempts=max_attempts)
