"""
Smart followers schemas.

GET /smart-followers/{entity} → SmartFollowersResponse
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class SmartFollowersResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entity: str
    kind: str = Field(examples=["project"])
    as_of_date: str
    count: int = Field(description="Smart followers of the entity.")
    pct: float = Field(description="count / total followers × 100; 0 when total is 0.")
    total_followers: int
    delta_7d: Optional[int] = Field(
        default=None, description="Change in count vs. 7 days earlier, same precision level only."
    )
    delta_30d: Optional[int] = Field(
        default=None, description="Change in count vs. 30 days earlier, same precision level only."
    )
    is_estimate: bool = Field(
        description="True when produced in audience-estimate mode (no follow graph)."
    )
