"""Journal write path: optimistic writes, cache invalidation and event publish."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import sqlalchemy as sa
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from moodlog.core.cache import entry_key, user_entries_key
from moodlog.core.telemetry import enrichment_telemetry
from moodlog.domains.journal.errors import (
    ConcurrentModification,
    EntryNotFound,
    PermissionDenied,
    PublishFailure,
)
from moodlog.domains.journal.models import JournalEntry, Sentiment
from moodlog.domains.journal.schemas.event_schemas import EnrichmentEvent
from moodlog.extensions import cache, db

logger = logging.getLogger(__name__)

# Pass as ``title`` on update to leave the stored title unchanged.
KEEP_TITLE = object()


def _channel(channel=None):
    return channel or current_app.extensions["enrichment_channel"]


def invalidate_entry_views(entry_id: str, owner_id: str) -> None:
    """Drop both derived views of an entry; the next read repopulates them."""
    cache.invalidate(entry_key(entry_id), user_entries_key(owner_id))


def create_or_update_entry(
    owner_id: str,
    entry_id: Optional[str],
    *,
    title: Any,
    content: str,
    weather: Optional[Dict[str, Any]] = None,
    expected_version: Optional[int] = None,
    channel=None,
) -> JournalEntry:
    """Create (``entry_id`` is None) or update an entry, then request enrichment.

    Raises EntryNotFound, PermissionDenied or ConcurrentModification. A failed
    publish is logged and left to the reconciliation sweep.
    """
    content_text = (content or "").strip()
    if not content_text:
        raise ValueError("validation_error")
    title_norm = title if title is KEEP_TITLE else ((title or "").strip() or None)

    if entry_id is None:
        entry = JournalEntry(
            owner_id=owner_id,
            title=None if title_norm is KEEP_TITLE else title_norm,
            content=content_text,
            sentiment=Sentiment.PENDING.value,
            weather=weather or None,
            version=1,
        )
        db.session.add(entry)
        db.session.commit()
    else:
        entry = _apply_update(owner_id, entry_id, title_norm, content_text, expected_version)
        if weather is not None:
            logger.debug("Ignoring weather on update of entry %s; snapshot is fixed at creation", entry_id)

    invalidate_entry_views(entry.id, owner_id)
    publish_enrichment(entry, channel=channel)
    return entry


def _apply_update(
    owner_id: str,
    entry_id: str,
    title: Any,
    content: str,
    expected_version: Optional[int],
) -> JournalEntry:
    entry = db.session.get(JournalEntry, entry_id, populate_existing=True)
    if entry is None:
        raise EntryNotFound(entry_id)
    if entry.owner_id != owner_id:
        raise PermissionDenied(entry_id)
    expected = expected_version if expected_version is not None else entry.version
    values: Dict[str, Any] = {
        "content": content,
        "version": JournalEntry.version + 1,
        "sentiment": Sentiment.PENDING.value,
        "sentiment_updated_at": None,
        "updated_at": datetime.utcnow(),
    }
    if title is not KEEP_TITLE:
        values["title"] = title

    result = db.session.execute(
        sa.update(JournalEntry)
        .where(
            JournalEntry.id == entry_id,
            JournalEntry.owner_id == owner_id,
            JournalEntry.version == expected,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.session.rollback()
        raise ConcurrentModification(entry_id, expected)
    db.session.commit()
    db.session.refresh(entry)
    return entry


def publish_enrichment(entry: JournalEntry, channel=None) -> bool:
    """Publish an event for the entry's current version; never raises PublishFailure."""
    event = EnrichmentEvent(
        entry_id=entry.id,
        owner_id=entry.owner_id,
        version=entry.version,
        content_snapshot=entry.content,
    )
    try:
        _channel(channel).publish(event)
    except PublishFailure as exc:
        enrichment_telemetry.record_publish_failure()
        logger.warning(
            "Enrichment publish failed for entry %s v%s; left for sweep: %s",
            entry.id,
            entry.version,
            exc,
        )
        return False
    _mark_published(entry.id, entry.version)
    return True


def _mark_published(entry_id: str, version: int) -> None:
    try:
        db.session.execute(
            sa.update(JournalEntry)
            .where(
                JournalEntry.id == entry_id,
                sa.or_(
                    JournalEntry.published_version.is_(None),
                    JournalEntry.published_version < version,
                ),
            )
            .values(published_version=version)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
    except SQLAlchemyError:
        # The event is already out; at worst the sweep republishes it.
        db.session.rollback()
        logger.exception("Could not record published version %s for entry %s", version, entry_id)


def delete_entry(owner_id: str, entry_id: str) -> bool:
    entry = db.session.get(JournalEntry, entry_id)
    if entry is None:
        return False
    if entry.owner_id != owner_id:
        raise PermissionDenied(entry_id)
    db.session.delete(entry)
    db.session.commit()
    invalidate_entry_views(entry_id, owner_id)
    return True


def list_entries(owner_id: str) -> List[JournalEntry]:
    return (
        JournalEntry.query.filter_by(owner_id=owner_id)
        .order_by(JournalEntry.created_at.desc(), JournalEntry.id)
        .populate_existing()
        .all()
    )
