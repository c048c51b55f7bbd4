"""Write path tests.

- create_or_update_entry: create, update, ownership, optimistic versioning
- cache invalidation before the call returns
- best-effort publish (channel outage leaves the entry PENDING)
- delete_entry
"""

from __future__ import annotations

import pytest
import sqlalchemy as sa

pytestmark = pytest.mark.integration

from moodlog.core.cache import entry_key, user_entries_key
from moodlog.core.telemetry import enrichment_telemetry
from moodlog.domains.journal.errors import (
    ConcurrentModification,
    EntryNotFound,
    PermissionDenied,
)
from moodlog.domains.journal.models import JournalEntry, Sentiment
from moodlog.domains.journal.services import entry_read_service, journal_service
from moodlog.extensions import db
from moodlog.platform.channel.models import EnrichmentLogRecord


def _create(owner_id="owner-1", content="Today was wonderful", **kwargs):
    return journal_service.create_or_update_entry(owner_id, None, title=kwargs.pop("title", "Day"), content=content, **kwargs)


# ==================== Create ====================


def test_create_entry_is_pending_at_version_one(app, channel):
    entry = _create()

    stored = db.session.get(JournalEntry, entry.id, populate_existing=True)
    assert stored.sentiment == Sentiment.PENDING.value
    assert stored.version == 1
    assert stored.owner_id == "owner-1"
    assert stored.published_version == 1

    assert len(channel.published) == 1
    event = channel.published[0]
    assert (event.entry_id, event.owner_id, event.version) == (entry.id, "owner-1", 1)
    assert event.content_snapshot == "Today was wonderful"
    assert EnrichmentLogRecord.query.count() == 1


def test_create_entry_strips_and_validates(app):
    entry = _create(content="  padded  ", title="   ")
    assert entry.content == "padded"
    assert entry.title is None

    with pytest.raises(ValueError, match="validation_error"):
        _create(content="   \n ")


def test_create_entry_stores_weather_snapshot(app):
    snapshot = {"temperature_c": 21.5, "weather_code": 1}
    entry = _create(weather=snapshot)
    assert db.session.get(JournalEntry, entry.id).weather == snapshot


# ==================== Update ====================


def test_update_increments_version_and_resets_sentiment(app, channel):
    entry = _create()
    db.session.execute(sa.update(JournalEntry).where(JournalEntry.id == entry.id).values(sentiment="POSITIVE"))
    db.session.commit()

    updated = journal_service.create_or_update_entry(
        "owner-1", entry.id, title="Later", content="Actually awful", expected_version=1
    )

    assert updated.version == 2
    assert updated.sentiment == Sentiment.PENDING.value
    assert updated.content == "Actually awful"
    assert [e.version for e in channel.published] == [1, 2]
    assert channel.published[-1].content_snapshot == "Actually awful"


def test_update_ignores_weather(app):
    entry = _create(weather={"temperature_c": 10})
    updated = journal_service.create_or_update_entry(
        "owner-1", entry.id, title=None, content="new", weather={"temperature_c": 99}
    )
    assert updated.weather == {"temperature_c": 10}


def test_update_can_keep_the_stored_title(app):
    entry = _create()

    kept = journal_service.create_or_update_entry("owner-1", entry.id, title=journal_service.KEEP_TITLE, content="new")
    assert (kept.title, kept.content, kept.version) == ("Day", "new", 2)

    cleared = journal_service.create_or_update_entry("owner-1", entry.id, title=None, content="newer")
    assert cleared.title is None


def test_update_with_stale_version_is_rejected(app, channel):
    entry = _create()
    journal_service.create_or_update_entry("owner-1", entry.id, title=None, content="v2", expected_version=1)

    with pytest.raises(ConcurrentModification):
        journal_service.create_or_update_entry("owner-1", entry.id, title=None, content="v2b", expected_version=1)

    stored = db.session.get(JournalEntry, entry.id, populate_existing=True)
    assert stored.version == 2
    assert stored.content == "v2"
    assert [e.version for e in channel.published] == [1, 2]


def test_update_by_other_owner_is_denied(app):
    entry = _create(owner_id="owner-1")
    with pytest.raises(PermissionDenied):
        journal_service.create_or_update_entry("intruder", entry.id, title=None, content="hacked")
    assert db.session.get(JournalEntry, entry.id, populate_existing=True).content == "Today was wonderful"


def test_update_unknown_entry(app):
    with pytest.raises(EntryNotFound):
        journal_service.create_or_update_entry("owner-1", "missing", title=None, content="x")


# ==================== Cache invalidation ====================


def test_write_invalidates_cached_views_before_returning(app, redis_client):
    entry = _create()
    entry_read_service.get_entry_view("owner-1", entry.id)
    entry_read_service.list_entry_views("owner-1")
    assert redis_client.exists(entry_key(entry.id), user_entries_key("owner-1")) == 2

    journal_service.create_or_update_entry("owner-1", entry.id, title=None, content="Changed my mind")

    assert redis_client.exists(entry_key(entry.id), user_entries_key("owner-1")) == 0
    view = entry_read_service.get_entry_view("owner-1", entry.id)
    assert view["content"] == "Changed my mind"
    assert view["version"] == 2
    assert view["sentiment"] == "PENDING"


# ==================== Publish failure ====================


def test_publish_failure_keeps_entry_pending(app, channel):
    channel.down = True

    entry = _create()

    stored = db.session.get(JournalEntry, entry.id, populate_existing=True)
    assert stored.sentiment == Sentiment.PENDING.value
    assert stored.version == 1
    assert stored.published_version is None
    assert EnrichmentLogRecord.query.count() == 0
    assert enrichment_telemetry.snapshot().publish_failures == 1


# ==================== Delete ====================


def test_delete_entry(app, redis_client):
    entry = _create()
    entry_read_service.get_entry_view("owner-1", entry.id)

    assert journal_service.delete_entry("owner-1", entry.id) is True
    assert db.session.get(JournalEntry, entry.id) is None
    assert redis_client.exists(entry_key(entry.id)) == 0
    assert journal_service.delete_entry("owner-1", entry.id) is False


def test_delete_entry_other_owner(app):
    entry = _create()
    with pytest.raises(PermissionDenied):
        journal_service.delete_entry("intruder", entry.id)
    assert db.session.get(JournalEntry, entry.id) is not None
