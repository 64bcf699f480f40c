from datetime import date
from sqlalchemy import Integer, Float, Date, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from signalboard.db.base import Base


class CommunityHeat(Base):
    """External per-project 'community heat' metric, 0-100, one row per day."""
    __tablename__ = "community_heat_daily"
    __table_args__ = (UniqueConstraint("project_id", "day", name="uq_heat_project_day"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracked_entities.id"), nullable=False, index=True
    )
    day: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    heat: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
