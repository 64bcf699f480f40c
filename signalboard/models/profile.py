"""
TrackedProfile — one account in the tracked-account universe.

The follow graph is restricted to these accounts, which keeps the ranking
pass bounded regardless of platform size. Follower/following counts and
account creation time feed the bot-risk heuristic and the audience estimate.
"""
from datetime import datetime
from sqlalchemy import Integer, String, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from signalboard.db.base import Base


class TrackedProfile(Base):
    __tablename__ = "tracked_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    handle: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    followers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    following_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    account_created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
