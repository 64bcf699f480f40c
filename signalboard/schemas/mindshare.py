"""
Mindshare schemas.

GET /mindshare/{window} → MindshareResponse
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class MindshareRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project: str = Field(description="Normalized project handle.")
    mindshare_bps: int = Field(description="Share of the window in basis points (0–10000).", examples=[7500])
    attention_value: float = Field(description="Raw attention value before normalization.")
    delta_1d: Optional[int] = Field(
        default=None, description="Change in bps vs. the previous day. Null when no prior snapshot."
    )
    delta_7d: Optional[int] = Field(
        default=None, description="Change in bps vs. 7 days earlier. Null when no prior snapshot."
    )


class MindshareResponse(BaseModel):
    """All projects for one (window, as_of_date); bps sum to 10000."""
    window: str = Field(examples=["7d"])
    as_of_date: str
    projects: list[MindshareRowResponse] = Field(description="Sorted by mindshare_bps, descending.")
