import time
import uuid

import structlog
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from streak_engine.db.base import get_db
from streak_engine.core.config import settings
from streak_engine.core.logging import setup_logging
from streak_engine.routers import progress as progress_router
from streak_engine.routers import tokens as tokens_router
from streak_engine.routers import store as store_router
from streak_engine.core.errors import (
    StreakEngineError,
    streak_engine_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Streak Engine API",
    description=(
        "**Day advancement and streak engine for a 90-day founder journey**\n\n"
        "Completes days under an 18-hour unlock window, tracks streaks and "
        "milestones, and keeps Founder Coin / Vision Gem balances on an "
        "append-only ledger.\n\n"
        "Every request identifies the user with the `X-User-Id` header.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request logging ---
@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    started = time.perf_counter()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response
    finally:
        structlog.contextvars.clear_contextvars()


# --- Exception handlers (most specific first) ---
app.add_exception_handler(StreakEngineError, streak_engine_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(progress_router.router)
app.include_router(tokens_router.router)
app.include_router(store_router.router)
app.include_router(store_router.challenges_router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("health_db_unreachable", error=str(exc))
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": "unreachable"},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
