"""
TrackedEntity — projects and creators enrolled by the onboarding collaborator.

The scoring pipeline only reads these rows. `handle` is stored already
normalized (see signalboard.core.identity) and is the identity key every
engine joins on.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, Enum, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
import enum

from signalboard.db.base import Base


class EntityKind(str, enum.Enum):
    project = "project"
    creator = "creator"


class TrackedEntity(Base):
    __tablename__ = "tracked_entities"
    __table_args__ = (
        UniqueConstraint("kind", "handle", name="uq_tracked_entity_kind_handle"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    kind: Mapped[str] = mapped_column(
        Enum(EntityKind, name="entity_kind_enum"),
        nullable=False,
        index=True,
    )
    handle: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    keywords: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        comment="Comma-separated relevance keywords (projects only)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    @property
    def keyword_list(self) -> list[str]:
        if not self.keywords:
            return []
        return [k.strip().lower() for k in self.keywords.split(",") if k.strip()]
