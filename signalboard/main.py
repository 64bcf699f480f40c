from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from signalboard.db.base import get_db
from signalboard.core.config import settings
from signalboard.core.logging import get_logger, setup_logging
from signalboard.routers import mindshare as mindshare_router
from signalboard.routers import signal_score as signal_score_router
from signalboard.routers import smart_followers as smart_followers_router
from signalboard.routers import leaderboard as leaderboard_router
from signalboard.routers import pipeline as pipeline_router
from signalboard.core.errors import (
    SignalboardException,
    signalboard_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging(log_level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)

app = FastAPI(
    title="Signalboard API",
    description=(
        "**Attention & Reputation Scoring Pipeline**\n\n"
        "Per-project mindshare in basis points, creator signal scores and trust "
        "bands, smart-follower counts and merged arena leaderboards.\n\n"
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

# --- Exception handlers (most specific first) ---
app.add_exception_handler(SignalboardException, signalboard_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(mindshare_router.router)
app.include_router(signal_score_router.router)
app.include_router(smart_followers_router.router)
app.include_router(leaderboard_router.router)
app.include_router(pipeline_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as exc:
        logger.warning("Health check failed", error=str(exc))
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
