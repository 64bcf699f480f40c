"""
Pipeline router.

POST /pipeline/run   — recompute scores for one as-of date, synchronously
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from signalboard.db.base import get_db
from signalboard.schemas.pipeline import PipelineRunRequest, PipelineRunResponse
from signalboard.services.pipeline import run_pipeline

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


@router.post(
    "/run",
    response_model=PipelineRunResponse,
    summary="Run the scoring pipeline on demand",
)
def run(payload: PipelineRunRequest, db: Session = Depends(get_db)):
    """
    Runs the selected stages in dependency order. Re-running a date
    overwrites that date's snapshots with identical results.
    """
    result = run_pipeline(db=db, as_of_date=payload.as_of_date, stages=payload.stages)
    return PipelineRunResponse(
        as_of_date=str(result.as_of_date),
        stages_completed=result.stages_completed,
        errors=result.errors,
    )
