"""
Leaderboard schemas.

GET /leaderboard/{project} → LeaderboardResponse
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class LeaderboardEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rank: int
    identity: str = Field(description="Normalized creator handle.")
    base_points: float
    multiplier: float = Field(description="Follow boost when joined and follow-verified, else 1.0.")
    score: int = Field(description="floor(base_points × multiplier).")
    is_joined: bool
    is_auto_tracked: bool
    follow_verified: bool
    ring: Optional[str] = None
    smart_followers_count: Optional[int] = None
    smart_followers_pct: Optional[float] = None
    smart_followers_is_estimate: Optional[bool] = None
    signal_score: Optional[float] = Field(
        default=None, description="7d signal score for this project; null when never scored."
    )
    trust_band: Optional[str] = Field(default=None, examples=["B"])


class LeaderboardResponse(BaseModel):
    project: str
    entries: list[LeaderboardEntryResponse] = Field(description="Sorted by score, descending.")
