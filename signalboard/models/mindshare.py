"""
MindshareSnapshot — normalized attention share per (project, window, day).

For one (time_window, as_of_date) the rows of all projects in the run sum to
exactly 10,000 bps. Rows are upserted by the natural key; a re-run for the
same key replaces the previous values.
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Float, DateTime, Date, ForeignKey, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from signalboard.db.base import Base


class MindshareSnapshot(Base):
    __tablename__ = "mindshare_snapshots"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "time_window", "as_of_date", name="uq_mindshare_project_window_date"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracked_entities.id"), nullable=False, index=True
    )
    time_window: Mapped[str] = mapped_column(
        String(8), nullable=False, index=True, comment='"24h" | "48h" | "7d" | "30d"'
    )
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    attention_value: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, comment="Raw, pre-normalization"
    )
    mindshare_bps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
