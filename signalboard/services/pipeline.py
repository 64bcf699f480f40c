"""
Pipeline — runs every scoring stage against one as-of date.

Stage order follows the data dependencies:

  universe         enroll handles into tracked_profiles
  smart_followers  graph ranking + per-entity snapshots
  signal_scores    per (creator, project, window), reads smart-follower rows
  mindshare        per (project, window), reads smart-follower rows
  leaderboards     per project arena

Scoring configuration is loaded once at run start and shared by all stages.
A run can be cancelled between stages via a threading.Event; every write is
an upsert, so re-running the same date converges to the same state.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from signalboard.core.config import ScoringConfig, load_scoring_config
from signalboard.core.errors import PipelineCancelledError
from signalboard.core.logging import get_logger
from signalboard.core.windows import today_utc
from signalboard.services.leaderboard import run_leaderboards
from signalboard.services.mindshare import run_mindshare
from signalboard.services.signal_score import run_signal_scores
from signalboard.services.smart_followers import build_tracked_universe, run_smart_followers

logger = get_logger(__name__)

STAGES: tuple[str, ...] = ("universe", "smart_followers", "signal_scores", "mindshare", "leaderboards")

_STAGE_RUNNERS: dict[str, Callable[[Session, date, ScoringConfig], Any]] = {
    "universe": lambda db, d, cfg: build_tracked_universe(db, d),
    "smart_followers": run_smart_followers,
    "signal_scores": lambda db, d, cfg: run_signal_scores(db, d, cfg),
    "mindshare": lambda db, d, cfg: run_mindshare(db, d, cfg),
    "leaderboards": run_leaderboards,
}


@dataclass
class PipelineResult:
    as_of_date: date
    stages_completed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    results: dict[str, Any] = field(default_factory=dict)


def run_pipeline(
    db: Session,
    as_of_date: Optional[date] = None,
    config: Optional[ScoringConfig] = None,
    stages: Optional[list[str]] = None,
    cancel: Optional[threading.Event] = None,
) -> PipelineResult:
    """
    Run the selected stages (all by default) in dependency order.

    Raises PipelineCancelledError when `cancel` is set before a stage starts;
    stages already completed keep their committed writes.
    """
    as_of_date = as_of_date or today_utc()
    config = config or load_scoring_config()
    selected = [s for s in STAGES if stages is None or s in stages]
    result = PipelineResult(as_of_date=as_of_date)

    logger.info("Pipeline started", as_of_date=str(as_of_date), stages=selected)
    for stage in selected:
        if cancel is not None and cancel.is_set():
            logger.warning("Pipeline cancelled", as_of_date=str(as_of_date), stage=stage)
            raise PipelineCancelledError(stage, as_of_date)

        outcome = _STAGE_RUNNERS[stage](db, as_of_date, config)
        result.results[stage] = outcome
        result.errors.extend(getattr(outcome, "errors", []))
        result.stages_completed.append(stage)

    logger.info(
        "Pipeline finished",
        as_of_date=str(as_of_date),
        stages=result.stages_completed,
        errors=len(result.errors),
    )
    return result
