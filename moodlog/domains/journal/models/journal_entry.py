"""Personal journal entry, the authoritative record for sentiment and version."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from moodlog.extensions import db


class Sentiment(str, enum.Enum):
    PENDING = "PENDING"
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    NEUTRAL = "NEUTRAL"
    FAILED = "FAILED"


CLASSIFIED_LABELS = frozenset({Sentiment.POSITIVE, Sentiment.NEGATIVE, Sentiment.NEUTRAL})


def new_entry_id() -> str:
    return uuid.uuid4().hex


class JournalEntry(db.Model):
    __tablename__ = "journal_entry"
    __table_args__ = (
        db.Index("ix_journal_entry_owner_created_at", "owner_id", "created_at"),
        db.Index("ix_journal_entry_sentiment_updated_at", "sentiment", "updated_at"),
    )

    id: Mapped[str] = mapped_column(db.String(64), primary_key=True, default=new_entry_id)
    owner_id: Mapped[str] = mapped_column(db.String(64), index=True, nullable=False)
    title: Mapped[str | None] = mapped_column(db.String(255))
    content: Mapped[str] = mapped_column(db.Text, nullable=False)
    sentiment: Mapped[str] = mapped_column(db.String(16), nullable=False, default=Sentiment.PENDING.value)
    weather: Mapped[dict | None] = mapped_column(db.JSON)
    version: Mapped[int] = mapped_column(nullable=False, default=1)
    # Last version for which an enrichment event was published successfully.
    published_version: Mapped[int | None] = mapped_column(db.Integer)
    sentiment_updated_at: Mapped[datetime | None] = mapped_column()
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
