import threading
import time

import pytest
from sqlalchemy.exc import OperationalError

from moodlog.domains.journal.models import JournalEntry
from moodlog.domains.journal.services import journal_service
from moodlog.domains.journal.services.enrichment_service import EnrichmentOutcome
from moodlog.domains.journal.services.sentiment_service import analyze_sentiment
from moodlog.extensions import db
from moodlog.platform.worker import EnrichmentConsumer, EnrichmentWorker, WorkerConfig
from moodlog.platform.worker import consumer as consumer_module
from moodlog.platform.channel import partition_for
from moodlog.platform.channel.models import ConsumerOffset, EnrichmentLogRecord
from moodlog.platform.worker.config import parse_partitions


def _config(**overrides):
    values = dict(
        concurrency=2,
        poll_interval=0.01,
        partitions=4,
        backoff_seconds=0,
        classify_timeout=2,
        enable_sweeper=False,
    )
    values.update(overrides)
    return WorkerConfig(**values)


def _consumer(channel, config=None):
    return EnrichmentConsumer(channel.open_consumer(), analyze_sentiment, config or _config(), threading.Event())


def _create(content):
    return journal_service.create_or_update_entry("owner-1", None, title=None, content=content)


def _stored(entry_id):
    return db.session.get(JournalEntry, entry_id, populate_existing=True)


@pytest.mark.unit
def test_worker_config_from_app_config():
    config = WorkerConfig.from_app_config(
        {
            "WORKER_CONCURRENCY": "3",
            "ENRICHMENT_PARTITIONS": "6",
            "ENRICHMENT_OWNED_PARTITIONS": "4,1,9",
            "MAX_ENRICHMENT_RETRIES": "5",
            "ENABLE_SWEEPER": "false",
        }
    )

    assert config.concurrency == 3
    assert config.max_retries == 5
    assert config.enable_sweeper is False
    assert config.partition_ids() == [1, 4]


@pytest.mark.unit
def test_parse_partitions():
    assert parse_partitions(None) is None
    assert parse_partitions("") is None
    assert parse_partitions("3, 1,3") == [1, 3]


@pytest.mark.integration
def test_process_one_applies_and_acks(app, channel):
    entry = _create("Today was wonderful")
    worker = _consumer(channel)

    assert worker.process_one() is EnrichmentOutcome.APPLIED
    assert _stored(entry.id).sentiment == "POSITIVE"
    assert worker.process_one() is None


@pytest.mark.integration
def test_database_error_leaves_delivery_unacked(app, channel, monkeypatch):
    entry = _create("Today was wonderful")
    worker = _consumer(channel)

    def _db_down(*_args, **_kwargs):
        raise OperationalError("UPDATE", {}, Exception("database is locked"))

    monkeypatch.setattr(consumer_module, "enrich_entry", _db_down)
    assert worker.process_one() is None
    assert _stored(entry.id).sentiment == "PENDING"

    monkeypatch.undo()
    assert worker.process_one() is EnrichmentOutcome.APPLIED
    assert _stored(entry.id).sentiment == "POSITIVE"


@pytest.mark.integration
def test_stale_events_are_acked_in_order(app, channel):
    entry = _create("Today was wonderful")
    journal_service.create_or_update_entry("owner-1", entry.id, title=None, content="sad and tired")
    worker = _consumer(channel)

    assert worker.process_one() is EnrichmentOutcome.STALE_DISCARDED
    assert worker.process_one() is EnrichmentOutcome.APPLIED
    stored = _stored(entry.id)
    assert (stored.version, stored.sentiment) == (2, "NEGATIVE")


@pytest.mark.integration
@pytest.mark.slow
def test_worker_threads_enrich_every_entry(app, channel):
    entries = [_create(text) for text in ("so happy", "awful day", "went shopping", "great fun", "tired")]
    worker = EnrichmentWorker(app, config=_config(), channel=channel)

    worker.start()
    try:
        deadline = time.monotonic() + 10
        while time.monotonic() < deadline:
            db.session.commit()
            if all(_stored(e.id).sentiment != "PENDING" for e in entries):
                break
            time.sleep(0.05)
    finally:
        worker.stop()
        worker.join(timeout=5)

    labels = [_stored(e.id).sentiment for e in entries]
    assert labels == ["POSITIVE", "NEGATIVE", "NEUTRAL", "POSITIVE", "NEGATIVE"]


class FlakyConsumer:
    """Fails the first poll, then stops the loop after a few empty polls."""

    blocking_poll = False

    def __init__(self, stop_event):
        self.stop_event = stop_event
        self.polls = 0
        self.closed = False

    def poll(self, timeout):
        self.polls += 1
        if self.polls == 1:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        if self.polls >= 3:
            self.stop_event.set()
        return None

    def close(self):
        self.closed = True


class BlockingClassifier:
    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self.seen = []

    def __call__(self, text):
        self.seen.append(text)
        self.started.set()
        self.release.wait(5)
        return analyze_sentiment(text)


@pytest.mark.integration
def test_consumer_loop_survives_a_failed_poll(app):
    stop = threading.Event()
    flaky = FlakyConsumer(stop)

    EnrichmentConsumer(flaky, analyze_sentiment, _config(), stop).run()

    assert flaky.polls >= 3
    assert flaky.closed is True


@pytest.mark.integration
def test_failed_poll_is_retried_on_next_call(app, channel):
    entry = _create("Today was wonderful")
    worker = _consumer(channel)
    real_poll = worker.consumer.poll
    calls = []

    def _poll(timeout):
        calls.append(timeout)
        if len(calls) == 1:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return real_poll(timeout)

    worker.consumer.poll = _poll

    assert worker.process_one() is None
    assert worker.process_one() is EnrichmentOutcome.APPLIED
    assert _stored(entry.id).sentiment == "POSITIVE"


@pytest.mark.integration
@pytest.mark.slow
def test_stop_lets_in_flight_event_finish_and_ack(app, channel):
    first = _create("so happy")
    second = _create("awful day")
    classifier = BlockingClassifier()
    worker = EnrichmentWorker(app, config=_config(concurrency=1, classify_timeout=10), classify=classifier, channel=channel)

    worker.start()
    try:
        assert classifier.started.wait(5)
        worker.stop()
    finally:
        classifier.release.set()
        worker.join(timeout=5)

    assert len(classifier.seen) == 1
    done, untouched = (first, second) if classifier.seen[0] == "so happy" else (second, first)
    assert _stored(done.id).sentiment == analyze_sentiment(classifier.seen[0]).value
    assert _stored(untouched.id).sentiment == "PENDING"

    record = EnrichmentLogRecord.query.filter_by(entry_id=done.id).one()
    offset = db.session.get(
        ConsumerOffset,
        (channel.inner.consumer_group, partition_for(done.id, 4)),
        populate_existing=True,
    )
    assert offset.committed_offset == record.id
