from datetime import datetime
from sqlalchemy import Integer, String, DateTime, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from signalboard.db.base import Base


class FollowEdge(Base):
    """Directed follower → followee edge. Append-only."""
    __tablename__ = "follow_edges"
    __table_args__ = (
        UniqueConstraint("follower_key", "followee_key", name="uq_follow_edge_pair"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    follower_key: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    followee_key: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    first_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
