"""
Mindshare router.

GET /mindshare/{window}   — normalized project shares for one window and day
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from signalboard.core.windows import TimeWindow
from signalboard.db.base import get_db
from signalboard.schemas.mindshare import MindshareResponse, MindshareRowResponse
from signalboard.services.mindshare import MindshareView, get_mindshare

router = APIRouter(prefix="/mindshare", tags=["mindshare"])


def _view_to_response(view: MindshareView) -> MindshareResponse:
    return MindshareResponse(
        window=view.window,
        as_of_date=str(view.as_of_date),
        projects=[
            MindshareRowResponse(
                project=r.project,
                mindshare_bps=r.mindshare_bps,
                attention_value=r.attention_value,
                delta_1d=r.delta_1d,
                delta_7d=r.delta_7d,
            )
            for r in view.rows
        ],
    )


@router.get(
    "/{window}",
    response_model=MindshareResponse,
    summary="Mindshare by project for a time window",
    responses={
        404: {"description": "No snapshot exists for the requested window/date."},
        422: {"description": "Unknown window."},
    },
)
def mindshare(
    window: str = Path(description="One of 24h, 48h, 7d, 30d.", examples=["7d"]),
    as_of_date: Optional[date] = Query(
        default=None,
        description="Snapshot day. Defaults to the latest day with a snapshot.",
        examples=["2026-03-01"],
    ),
    db: Session = Depends(get_db),
):
    """
    Every tracked project's share of attention for the window, in basis
    points summing to exactly 10,000, with 1-day and 7-day deltas.
    """
    view = get_mindshare(db=db, window=TimeWindow.parse(window), as_of_date=as_of_date)
    return _view_to_response(view)
