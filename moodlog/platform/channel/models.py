"""Partitioned enrichment log tables for the SQL channel backend."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from moodlog.extensions import db


class EnrichmentLogRecord(db.Model):
    """One published event. ``id`` is the log offset; order within a partition is by id."""

    __tablename__ = "enrichment_log"
    __table_args__ = (db.Index("ix_enrichment_log_partition_id", "partition", "id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    partition: Mapped[int] = mapped_column(nullable=False)
    entry_id: Mapped[str] = mapped_column(db.String(64), nullable=False, index=True)
    version: Mapped[int] = mapped_column(nullable=False)
    payload: Mapped[dict] = mapped_column(db.JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)


class ConsumerOffset(db.Model):
    """Highest acknowledged log id per (consumer group, partition)."""

    __tablename__ = "enrichment_consumer_offset"

    consumer_group: Mapped[str] = mapped_column(db.String(128), primary_key=True)
    partition: Mapped[int] = mapped_column(primary_key=True)
    committed_offset: Mapped[int] = mapped_column(nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
