"""
Signal score router.

GET /signal-score/{creator}/{project}   — creator signal score and trust band
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from signalboard.core.identity import normalize
from signalboard.core.windows import TimeWindow
from signalboard.db.base import get_db
from signalboard.schemas.signal_score import SignalScoreResponse
from signalboard.services.signal_score import get_signal_score

router = APIRouter(prefix="/signal-score", tags=["signal-score"])


@router.get(
    "/{creator}/{project}",
    response_model=SignalScoreResponse,
    summary="Creator signal score for a project",
    responses={404: {"description": "Project is not tracked."}},
)
def signal_score(
    creator: str,
    project: str,
    window: str = Query(default="7d", description="One of 24h, 48h, 7d, 30d.", examples=["7d"]),
    db: Session = Depends(get_db),
):
    """
    A creator with no scored contributions gets `signal_score=0`,
    `trust_band=D` rather than a 404.
    """
    tw = TimeWindow.parse(window)
    result = get_signal_score(db=db, creator=creator, project=project, window=tw)
    return SignalScoreResponse(
        creator=result.creator_key,
        project=normalize(project),
        window=tw.value,
        signal_score=result.signal_score,
        trust_band=result.trust_band,
        contribution_count=result.contribution_count,
    )
