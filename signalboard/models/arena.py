"""
Explicit-join ledger, owned by the surrounding application.

Arena               — a project's leaderboard period (starts_at..ends_at).
ArenaParticipant    — a creator who explicitly joined, with earned arc points.
PointAdjustment     — manual signed corrections to a participant's points.
FollowVerification  — proof that a creator follows the project account.

The merge engine reads these tables and never writes them.
"""
from datetime import datetime
from sqlalchemy import (
    Integer, String, Float, Text, DateTime, Enum, ForeignKey, func, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
import enum

from signalboard.db.base import Base


class ArenaStatus(str, enum.Enum):
    draft = "draft"
    active = "active"
    ended = "ended"


class Ring(str, enum.Enum):
    core = "core"
    momentum = "momentum"
    discovery = "discovery"


class Arena(Base):
    __tablename__ = "arenas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracked_entities.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    status: Mapped[str] = mapped_column(
        Enum(ArenaStatus, name="arena_status_enum"),
        nullable=False,
        default=ArenaStatus.active,
    )
    starts_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class ArenaParticipant(Base):
    __tablename__ = "arena_participants"
    __table_args__ = (
        UniqueConstraint("arena_id", "handle", name="uq_arena_participant_handle"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    arena_id: Mapped[int] = mapped_column(Integer, ForeignKey("arenas.id"), nullable=False, index=True)
    handle: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    arc_points: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    ring: Mapped[str | None] = mapped_column(
        Enum(Ring, name="arena_ring_enum"), nullable=True
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class PointAdjustment(Base):
    __tablename__ = "point_adjustments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    arena_id: Mapped[int] = mapped_column(Integer, ForeignKey("arenas.id"), nullable=False, index=True)
    handle: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    points_delta: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class FollowVerification(Base):
    __tablename__ = "follow_verifications"
    __table_args__ = (
        UniqueConstraint("project_id", "handle", name="uq_follow_verification_project_handle"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracked_entities.id"), nullable=False, index=True
    )
    handle: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
