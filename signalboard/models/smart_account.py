"""
Smart-follower graph outputs.

SmartAccountScore — one row per (handle, as_of_date) per ranking run.
  Earlier dates are kept as history and never rewritten by a later run.

SmartFollowersSnapshot — per tracked entity per day. `is_estimate` marks rows
  produced in audience-estimate mode (no follow graph) so consumers never
  mix the two precision levels. 7d/30d deltas are row lookups on this table.
"""
from datetime import datetime, date
from sqlalchemy import (
    Integer, String, Float, Boolean, DateTime, Date, ForeignKey, func, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from signalboard.db.base import Base


class SmartAccountScore(Base):
    __tablename__ = "smart_account_scores"
    __table_args__ = (
        UniqueConstraint("handle", "as_of_date", name="uq_smart_account_handle_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    handle: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    importance: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0,
        comment="PageRank scaled to 0-1 by the run maximum",
    )
    bot_risk: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    smart_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_smart: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    account_age_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    converged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class SmartFollowersSnapshot(Base):
    __tablename__ = "smart_followers_snapshots"
    __table_args__ = (
        UniqueConstraint("entity_id", "as_of_date", name="uq_smart_followers_entity_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    entity_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracked_entities.id"), nullable=False, index=True
    )
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    smart_followers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_followers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    smart_followers_pct: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, comment="0-100"
    )
    is_estimate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
