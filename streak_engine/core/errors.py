"""
Custom exception hierarchy for the streak engine.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages. Policy errors (future
day, locked day, insufficient funds) are normal product behavior and carry
enough context in `details` for the client to explain the wait.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class StreakEngineError(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# --- validation ------------------------------------------------------------

class InvalidAmountError(StreakEngineError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_AMOUNT"

    def __init__(self, amount: int):
        super().__init__(
            message=f"Amount must be a positive integer. Received {amount}.",
            details={"amount": amount},
        )


class InvalidDayError(StreakEngineError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_DAY"

    def __init__(self, day: int):
        super().__init__(
            message=f"Day must be 1 or greater. Received {day}.",
            details={"day": day},
        )


# --- not found -------------------------------------------------------------

class ProgressNotFoundError(StreakEngineError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "PROGRESS_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__(
            message=f"No progress found for user {user_id}. Call POST /progress/init first.",
            details={"user_id": user_id},
        )


class StoreItemNotFoundError(StreakEngineError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "STORE_ITEM_NOT_FOUND"

    def __init__(self, item_id: int):
        super().__init__(
            message=f"Store item {item_id} does not exist or is not for sale.",
            details={"item_id": item_id},
        )


class ChallengeNotFoundError(StreakEngineError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "CHALLENGE_NOT_FOUND"

    def __init__(self, challenge_id: int):
        super().__init__(
            message=f"Challenge {challenge_id} does not exist or is inactive.",
            details={"challenge_id": challenge_id},
        )


# --- policy ----------------------------------------------------------------

class FutureDayError(StreakEngineError):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "FUTURE_DAY"

    def __init__(self, day: int, current_day: int):
        super().__init__(
            message=f"Day {day} is not available yet. You are on day {current_day}.",
            details={"day": day, "current_day": current_day},
        )


class LockedError(StreakEngineError):
    http_status = status.HTTP_429_TOO_MANY_REQUESTS
    code = "DAY_LOCKED"

    def __init__(self, hours_left: int, next_unlock_time: datetime):
        self.hours_left = hours_left
        self.next_unlock_time = next_unlock_time
        super().__init__(
            message=f"Next day unlocks in {hours_left} hour(s).",
            details={
                "hours_left": hours_left,
                "next_unlock_time": next_unlock_time.isoformat(),
            },
        )


class InsufficientFundsError(StreakEngineError):
    http_status = status.HTTP_409_CONFLICT
    code = "INSUFFICIENT_FUNDS"

    def __init__(self, token_type: str, balance: int, required: int):
        super().__init__(
            message=f"Not enough {token_type}: have {balance}, need {required}.",
            details={"token_type": token_type, "balance": balance, "required": required},
        )


class ChallengeAlreadyCompletedError(StreakEngineError):
    http_status = status.HTTP_409_CONFLICT
    code = "CHALLENGE_ALREADY_COMPLETED"

    def __init__(self, challenge_id: int, completed_date: str):
        super().__init__(
            message=f"Challenge {challenge_id} was already completed on {completed_date}.",
            details={"challenge_id": challenge_id, "completed_date": completed_date},
        )


# --- consistency / storage -------------------------------------------------

class ConcurrentUpdateError(StreakEngineError):
    http_status = status.HTTP_409_CONFLICT
    code = "CONCURRENT_UPDATE"

    def __init__(self, attempts: int):
        super().__init__(
            message="Progress was modified by another request. Please retry.",
            details={"attempts": attempts},
        )


class PersistenceError(StreakEngineError):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "PERSISTENCE_ERROR"

    def __init__(self, operation: str):
        super().__init__(
            message=f"Could not persist {operation}. No changes were saved.",
            details={"operation": operation},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def streak_engine_exception_handler(
    request: Request, exc: StreakEngineError
) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, **exc.details)
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
