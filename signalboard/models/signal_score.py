from datetime import datetime, date
from sqlalchemy import Integer, String, Float, DateTime, Date, ForeignKey, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
import enum

from signalboard.db.base import Base


class TrustBand(str, enum.Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class SignalScoreResult(Base):
    """
    Creator signal score for one project and window.

    Recomputed from contribution events on every run and overwritten in
    place by natural key; never accumulated across runs.
    """
    __tablename__ = "signal_score_results"
    __table_args__ = (
        UniqueConstraint(
            "creator_key", "project_id", "time_window", name="uq_signal_creator_project_window"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    creator_key: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracked_entities.id"), nullable=False, index=True
    )
    time_window: Mapped[str] = mapped_column(String(8), nullable=False)
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    raw_points: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    signal_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, comment="0-100")
    trust_band: Mapped[str] = mapped_column(String(1), nullable=False, default=TrustBand.D.value)
    contribution_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
