"""
Background worker runner.

Reads the job name from CLI args or the WORKER_JOB setting and runs that
job on its interval until stopped. Each cycle opens its own session and
recomputes today's date, so no state is carried between cycles.

  pipeline         every stage, daily
  smart_followers  universe + graph ranking, daily
  mindshare        mindshare snapshots, daily
  leaderboard      arena leaderboards, hourly
"""
from __future__ import annotations

import sys
import threading
from typing import Optional

from signalboard.core.config import settings
from signalboard.core.logging import get_logger, setup_logging
from signalboard.db.base import SessionLocal
from signalboard.services.pipeline import run_pipeline

logger = get_logger(__name__)

# job → (stages, default interval in minutes)
JOB_REGISTRY: dict[str, tuple[list[str], int]] = {
    "pipeline": (["universe", "smart_followers", "signal_scores", "mindshare", "leaderboards"], 24 * 60),
    "smart_followers": (["universe", "smart_followers"], 24 * 60),
    "mindshare": (["mindshare"], 24 * 60),
    "leaderboard": (["leaderboards"], 60),
}

# Pause after a failed cycle before retrying.
ERROR_BACKOFF_SECONDS = 60


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or the WORKER_JOB setting."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return settings.WORKER_JOB.strip().lower()


def run_cycle(job_name: str) -> list[str]:
    """Run one cycle of a job; returns the isolated errors it reported."""
    stages, _ = JOB_REGISTRY[job_name]
    db = SessionLocal()
    try:
        result = run_pipeline(db, stages=stages)
    finally:
        db.close()
    logger.info(
        "Worker cycle completed",
        job=job_name,
        as_of_date=str(result.as_of_date),
        stages=result.stages_completed,
        errors=len(result.errors),
    )
    return result.errors


def run_worker(
    job_name: Optional[str] = None,
    once: bool = False,
    stop: Optional[threading.Event] = None,
) -> None:
    """Run the requested job until `stop` is set (or a single cycle when `once`)."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    stop = stop or threading.Event()
    interval_minutes = settings.WORKER_INTERVAL_MINUTES or JOB_REGISTRY[name][1]
    logger.info("Starting background worker", job=name, interval_minutes=interval_minutes)

    while not stop.is_set():
        try:
            run_cycle(name)
            wait_seconds = interval_minutes * 60
        except Exception as e:
            if once:
                raise
            logger.error("Error in worker cycle", job=name, error=str(e), error_type=type(e).__name__)
            wait_seconds = ERROR_BACKOFF_SECONDS
        if once:
            break
        stop.wait(wait_seconds)


def main() -> None:
    """CLI entrypoint."""
    setup_logging(log_level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
    try:
        run_worker(_resolve_job_name())
    except KeyboardInterrupt:
        logger.info("Background worker stopped by user")


if __name__ == "__main__":
    main()
