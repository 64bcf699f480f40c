"""
Pipeline schemas.

POST /pipeline/run → PipelineRunResponse
"""
from datetime import date
from typing import Literal, Optional
from pydantic import BaseModel, Field

StageName = Literal["universe", "smart_followers", "signal_scores", "mindshare", "leaderboards"]


class PipelineRunRequest(BaseModel):
    as_of_date: Optional[date] = Field(
        default=None, description="Date to compute. Defaults to today (UTC).", examples=["2026-03-01"]
    )
    stages: Optional[list[StageName]] = Field(
        default=None, description="Subset of stages to run. Always executed in dependency order."
    )


class PipelineRunResponse(BaseModel):
    as_of_date: str
    stages_completed: list[str]
    errors: list[str] = Field(description="Per-project or per-window failures that were isolated.")
