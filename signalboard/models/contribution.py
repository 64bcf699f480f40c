"""
ContributionEvent — one raw mention/post as written by the ingestion feed.

Immutable once ingested. `content_type` and `sentiment` are stored as plain
strings because the feed may send values this service does not know yet;
they are parsed into the closed enums below at read time, where an
unrecognized value becomes the explicit `unknown` member.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from signalboard.db.base import Base


class ContentType(str, enum.Enum):
    thread = "thread"
    analysis = "analysis"
    meme = "meme"
    quote = "quote"
    retweet = "retweet"
    reply = "reply"
    original = "original"
    unknown = "unknown"

    @classmethod
    def parse(cls, raw: str | None) -> "ContentType":
        if not raw:
            return cls.unknown
        value = raw.strip().lower()
        value = _CONTENT_ALIASES.get(value, value)
        try:
            return cls(value)
        except ValueError:
            return cls.unknown


_CONTENT_ALIASES = {
    "quote_rt": "quote",
    "deep_dive": "analysis",
    "rt": "retweet",
}


class SentimentLabel(str, enum.Enum):
    positive = "positive"
    neutral = "neutral"
    negative = "negative"
    unknown = "unknown"

    @classmethod
    def parse(cls, raw: str | None) -> "SentimentLabel":
        if not raw:
            return cls.unknown
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.unknown


class ContributionEvent(Base):
    __tablename__ = "contribution_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    external_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracked_entities.id"), nullable=False, index=True
    )
    author_handle: Mapped[str | None] = mapped_column(String(64), nullable=True)
    author_key: Mapped[str] = mapped_column(
        String(64), nullable=False, default="", index=True,
        comment="normalize(author_handle); empty = unattributable",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    content_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    replies: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    retweets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sentiment: Mapped[str | None] = mapped_column(String(16), nullable=True)
    sentiment_score: Mapped[float | None] = mapped_column(
        nullable=True, comment="0-100 when the classifier provides a score"
    )
    is_official: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    ingested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
