"""
Signal score schemas.

GET /signal-score/{creator}/{project} → SignalScoreResponse
"""
from pydantic import BaseModel, ConfigDict, Field

from signalboard.models.signal_score import TrustBand


class SignalScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    creator: str
    project: str
    window: str = Field(examples=["7d"])
    signal_score: float = Field(description="Bounded score, 0–100.", examples=[64.2])
    trust_band: TrustBand = Field(description="A (highest) to D.")
    contribution_count: int = Field(description="Contributions scored in the window.")
