"""
LeaderboardEntry — merged, ranked row per (project, identity).

Read-only ranking data for display. Being on a leaderboard (in particular as
an auto-tracked participant) never grants permissions. Signal score and
smart-follower columns are copied from their engines at build time.
"""
from datetime import datetime, date
from sqlalchemy import (
    Integer, String, Float, Boolean, DateTime, Date, ForeignKey, func, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from signalboard.db.base import Base


class LeaderboardEntry(Base):
    __tablename__ = "leaderboard_entries"
    __table_args__ = (
        UniqueConstraint("project_id", "identity", name="uq_leaderboard_project_identity"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracked_entities.id"), nullable=False, index=True
    )
    identity: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    base_points: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_joined: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_auto_tracked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    follow_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ring: Mapped[str | None] = mapped_column(String(16), nullable=True)
    smart_followers_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    smart_followers_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    smart_followers_is_estimate: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    signal_score: Mapped[float | None] = mapped_column(
        Float, nullable=True, comment="7d signal score for this project, 0-100"
    )
    trust_band: Mapped[str | None] = mapped_column(String(1), nullable=True)
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
