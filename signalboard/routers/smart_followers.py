"""
Smart followers router.

GET /smart-followers/{entity}   — smart follower count, pct and deltas
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from signalboard.db.base import get_db
from signalboard.models.entity import EntityKind
from signalboard.schemas.smart_followers import SmartFollowersResponse
from signalboard.services.smart_followers import get_smart_followers

router = APIRouter(prefix="/smart-followers", tags=["smart-followers"])


@router.get(
    "/{entity}",
    response_model=SmartFollowersResponse,
    summary="Smart followers of a tracked project or creator",
    responses={404: {"description": "Unknown entity or no snapshot for the date."}},
)
def smart_followers(
    entity: str,
    as_of_date: Optional[date] = Query(
        default=None, description="Snapshot day. Defaults to the latest available."
    ),
    kind: Optional[EntityKind] = Query(
        default=None, description="Disambiguate when a handle is both a project and a creator."
    ),
    db: Session = Depends(get_db),
):
    """
    `is_estimate=true` means the follow graph was unavailable and the count
    is an audience estimate; deltas never compare an estimate with a graph count.
    """
    view = get_smart_followers(db=db, entity=entity, as_of_date=as_of_date, kind=kind)
    return SmartFollowersResponse(
        entity=view.entity,
        kind=view.kind,
        as_of_date=str(view.as_of_date),
        count=view.count,
        pct=view.pct,
        total_followers=view.total_followers,
        delta_7d=view.delta_7d,
        delta_30d=view.delta_30d,
        is_estimate=view.is_estimate,
    )
