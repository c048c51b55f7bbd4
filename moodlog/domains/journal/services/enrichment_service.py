"""Sentiment enrichment of a single event.

The store's version column is the only guard against applying a result to
content it was not computed from: the entry is re-read before classifying and
the sentiment write is conditioned on the event's version.
"""

from __future__ import annotations

import enum
import logging
import time
from datetime import datetime
from typing import Callable, Optional

import sqlalchemy as sa

from moodlog.core.telemetry import enrichment_telemetry
from moodlog.domains.journal.errors import ClassificationFailure
from moodlog.domains.journal.models import JournalEntry, Sentiment
from moodlog.domains.journal.schemas.event_schemas import EnrichmentEvent
from moodlog.domains.journal.services.journal_service import invalidate_entry_views
from moodlog.domains.journal.services.sentiment_service import Classifier, classify_with_timeout
from moodlog.extensions import db

logger = logging.getLogger(__name__)


class EnrichmentOutcome(str, enum.Enum):
    APPLIED = "applied"
    STALE_DISCARDED = "stale_discarded"
    FAILED = "failed"


def compute_backoff_seconds(attempt: int, base: float, multiplier: float) -> float:
    """Exponential backoff based on attempt number (1-indexed)."""
    return base * (multiplier ** max(attempt - 1, 0))


def _current_version(entry_id: str) -> Optional[int]:
    entry = db.session.get(JournalEntry, entry_id, populate_existing=True)
    version = entry.version if entry is not None else None
    db.session.commit()
    return version


def write_sentiment(entry_id: str, version: int, label: Sentiment) -> bool:
    """Store ``label`` only if the entry is still PENDING at ``version``."""
    result = db.session.execute(
        sa.update(JournalEntry)
        .where(
            JournalEntry.id == entry_id,
            JournalEntry.version == version,
            JournalEntry.sentiment == Sentiment.PENDING.value,
        )
        .values(sentiment=label.value, sentiment_updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount == 1


def _discard(event: EnrichmentEvent, reason: str) -> EnrichmentOutcome:
    logger.info(
        "enrichment outcome=stale_discarded entry=%s version=%s reason=%s",
        event.entry_id,
        event.version,
        reason,
    )
    enrichment_telemetry.record_outcome(EnrichmentOutcome.STALE_DISCARDED.value, event.entry_id, event.version)
    return EnrichmentOutcome.STALE_DISCARDED


def enrich_entry(
    event: EnrichmentEvent,
    classify: Classifier,
    *,
    max_retries: int = 3,
    timeout: float = 5.0,
    backoff_seconds: float = 1.0,
    backoff_multiplier: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
) -> EnrichmentOutcome:
    """Classify and store sentiment for one event.

    ``max_retries`` is the total number of classification attempts; once they
    are exhausted the entry settles at FAILED. Returns the durable outcome;
    database errors propagate so the caller can leave the event unacked.
    """
    entry = db.session.get(JournalEntry, event.entry_id, populate_existing=True)
    if entry is None:
        return _discard(event, "entry_missing")
    if entry.version != event.version:
        return _discard(event, f"store_version={entry.version}")
    if entry.sentiment != Sentiment.PENDING.value:
        # Redelivery of an event whose version already settled.
        return _discard(event, "already_enriched")
    owner_id = entry.owner_id
    # End the read transaction before classifying.
    db.session.commit()

    attempts = max(int(max_retries), 1)
    label: Optional[Sentiment] = None
    for attempt in range(1, attempts + 1):
        try:
            label = classify_with_timeout(classify, event.content_snapshot, timeout)
            break
        except ClassificationFailure as exc:
            logger.warning(
                "Classification attempt %s/%s failed for entry %s v%s: %s",
                attempt,
                attempts,
                event.entry_id,
                event.version,
                exc,
            )
            if attempt == attempts:
                break
            enrichment_telemetry.record_retry()
            sleep(compute_backoff_seconds(attempt, backoff_seconds, backoff_multiplier))
            if _current_version(event.entry_id) != event.version:
                return _discard(event, "superseded_during_retry")

    target = label if label is not None else Sentiment.FAILED
    if not write_sentiment(event.entry_id, event.version, target):
        return _discard(event, "conditional_write_lost")
    invalidate_entry_views(event.entry_id, owner_id)

    outcome = EnrichmentOutcome.APPLIED if label is not None else EnrichmentOutcome.FAILED
    log = logger.info if outcome is EnrichmentOutcome.APPLIED else logger.error
    log(
        "enrichment outcome=%s entry=%s version=%s sentiment=%s",
        outcome.value,
        event.entry_id,
        event.version,
        target.value,
    )
    enrichment_telemetry.record_outcome(outcome.value, event.entry_id, event.version, label=target.value)
    return outcome
