"""Reconciliation sweep: re-publish events for entries stuck in PENDING."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from moodlog.core.telemetry import enrichment_telemetry
from moodlog.domains.journal.models import JournalEntry, Sentiment
from moodlog.domains.journal.services.journal_service import publish_enrichment
from moodlog.extensions import db

logger = logging.getLogger(__name__)


def find_unpublished_pending(
    pending_age_seconds: float,
    now: Optional[datetime] = None,
    limit: int = 500,
) -> List[JournalEntry]:
    """PENDING entries older than the threshold whose current version was never published."""
    now = now or datetime.utcnow()
    cutoff = now - timedelta(seconds=pending_age_seconds)
    return (
        JournalEntry.query.filter(
            JournalEntry.sentiment == Sentiment.PENDING.value,
            JournalEntry.updated_at <= cutoff,
            sa.or_(
                JournalEntry.published_version.is_(None),
                JournalEntry.published_version < JournalEntry.version,
            ),
        )
        .order_by(JournalEntry.updated_at)
        .limit(limit)
        .populate_existing()
        .all()
    )


def run_sweep(
    channel=None,
    pending_age_seconds: float = 120,
    now: Optional[datetime] = None,
    limit: int = 500,
) -> int:
    """One independent pass; returns how many events were re-published.

    Re-publishing for an entry that has since resolved is harmless: the worker
    discards the event on its version check.
    """
    candidates = find_unpublished_pending(pending_age_seconds, now=now, limit=limit)
    republished = 0
    for entry in candidates:
        if publish_enrichment(entry, channel=channel):
            republished += 1
    if candidates:
        logger.info("Reconciliation sweep re-published %s/%s pending entries", republished, len(candidates))
    enrichment_telemetry.record_sweep(republished)
    return republished


def run_sweeper(
    channel,
    interval_seconds: float,
    pending_age_seconds: float,
    stop_event: threading.Event,
) -> None:
    """Run ``run_sweep`` every ``interval_seconds`` until ``stop_event`` is set."""
    logger.info("Starting reconciliation sweeper (interval=%ss, pending_age=%ss)", interval_seconds, pending_age_seconds)
    while not stop_event.is_set():
        try:
            run_sweep(channel=channel, pending_age_seconds=pending_age_seconds)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Database error during reconciliation sweep")
        finally:
            db.session.remove()
        stop_event.wait(interval_seconds)
    logger.info("Reconciliation sweeper stopped")
