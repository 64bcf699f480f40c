"""
Custom exception hierarchy for Signalboard.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from signalboard.core.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class SignalboardException(Exception):
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


class EntityNotFoundError(SignalboardException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "ENTITY_NOT_FOUND"

    def __init__(self, kind: str, handle: str):
        super().__init__(
            message=f"No tracked {kind} with handle '{handle}'.",
            details={"kind": kind, "handle": handle},
        )


class SnapshotNotFoundError(SignalboardException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "SNAPSHOT_NOT_FOUND"

    def __init__(self, what: str, as_of_date: Optional[date] = None):
        when = f" for {as_of_date}" if as_of_date else ""
        super().__init__(
            message=f"No {what} snapshot available{when}.",
            details={"as_of_date": str(as_of_date)} if as_of_date else {},
        )


class InvalidWindowError(SignalboardException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_WINDOW"

    def __init__(self, window: str, allowed: list[str]):
        super().__init__(
            message=f"Unknown time window '{window}'. Allowed: {', '.join(allowed)}.",
            details={"window": window, "allowed": allowed},
        )


class NormalizationInvariantError(SignalboardException):
    """Basis points for a (window, as_of_date) did not sum to 10,000."""
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "NORMALIZATION_INVARIANT"

    def __init__(self, window: str, as_of_date: date, total_bps: int):
        super().__init__(
            message=(
                f"Mindshare for window {window} on {as_of_date} sums to "
                f"{total_bps} bps, expected 10000. Nothing was persisted."
            ),
            details={"window": window, "as_of_date": str(as_of_date), "total_bps": total_bps},
        )


class PipelineCancelledError(SignalboardException):
    http_status = status.HTTP_409_CONFLICT
    code = "PIPELINE_CANCELLED"

    def __init__(self, stage: str, as_of_date: date):
        super().__init__(
            message=f"Pipeline run for {as_of_date} cancelled before stage '{stage}'.",
            details={"stage": stage, "as_of_date": str(as_of_date)},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def signalboard_exception_handler(
    request: Request, exc: SignalboardException
) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("Request failed", path=request.url.path, code=exc.code, error=exc.message)
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
        "Unhandled exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
