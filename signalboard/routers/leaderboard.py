"""
Leaderboard router.

GET /leaderboard/{project}   — merged, ranked creator leaderboard
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from signalboard.core.identity import normalize
from signalboard.db.base import get_db
from signalboard.schemas.leaderboard import LeaderboardEntryResponse, LeaderboardResponse
from signalboard.services.leaderboard import get_leaderboard

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get(
    "/{project}",
    response_model=LeaderboardResponse,
    summary="Project leaderboard",
    responses={404: {"description": "Project is not tracked."}},
)
def leaderboard(project: str, db: Session = Depends(get_db)):
    """
    Auto-tracked and joined creators merged into one row per identity.
    An empty list means no leaderboard has been computed yet.
    """
    entries = get_leaderboard(db=db, project=project)
    return LeaderboardResponse(
        project=normalize(project),
        entries=[LeaderboardEntryResponse.model_validate(e) for e in entries],
    )
