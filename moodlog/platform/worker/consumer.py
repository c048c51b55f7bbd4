"""Enrichment consumer loops and the worker that runs them."""

from __future__ import annotations

import logging
import threading
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from moodlog.domains.journal.services.enrichment_service import EnrichmentOutcome, enrich_entry
from moodlog.domains.journal.services.reconciliation_service import run_sweeper
from moodlog.domains.journal.services.sentiment_service import Classifier, analyze_sentiment
from moodlog.extensions import db
from moodlog.platform.channel import ChannelConsumer, EnrichmentChannel, assign_partitions
from moodlog.platform.worker.config import WorkerConfig

logger = logging.getLogger(__name__)


class EnrichmentConsumer:
    """Processes one delivery at a time from the partitions it owns.

    A delivery is acked only after ``enrich_entry`` returns a durable outcome.
    On any error the delivery is rewound so the channel hands it out again.
    """

    def __init__(
        self,
        consumer: ChannelConsumer,
        classify: Classifier,
        config: WorkerConfig,
        stop_event: threading.Event,
        name: str = "enrichment-consumer",
    ) -> None:
        self.consumer = consumer
        self.classify = classify
        self.config = config
        self.stop_event = stop_event
        self.name = name

    def process_one(self) -> Optional[EnrichmentOutcome]:
        """Poll once; returns the outcome, or ``None`` if nothing was completed."""
        try:
            delivery = self.consumer.poll(self.config.poll_interval)
        except Exception:
            db.session.rollback()
            logger.exception("%s could not poll; retrying", self.name)
            self.stop_event.wait(max(self.config.backoff_seconds, self.config.poll_interval))
            return None
        if delivery is None:
            return None
        event = delivery.event
        try:
            outcome = enrich_entry(
                event,
                self.classify,
                max_retries=self.config.max_retries,
                timeout=self.config.classify_timeout,
                backoff_seconds=self.config.backoff_seconds,
                backoff_multiplier=self.config.backoff_multiplier,
            )
            self.consumer.ack(delivery)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception(
                "Database error enriching entry %s v%s; leaving unacked for redelivery",
                event.entry_id,
                event.version,
            )
            self._back_off(delivery)
            return None
        except Exception:
            db.session.rollback()
            logger.exception("Unexpected error enriching entry %s v%s", event.entry_id, event.version)
            self._back_off(delivery)
            return None
        return outcome

    def _back_off(self, delivery) -> None:
        try:
            self.consumer.rewind(delivery)
        except Exception:
            # Still unacked, so the channel redelivers it after a rebalance or restart.
            logger.exception("%s could not rewind partition %s offset %s", self.name, delivery.partition, delivery.offset)
        self.stop_event.wait(max(self.config.backoff_seconds, self.config.poll_interval))

    def run(self) -> None:
        logger.info("%s started", self.name)
        try:
            while not self.stop_event.is_set():
                outcome = self.process_one()
                if outcome is None and not getattr(self.consumer, "blocking_poll", False):
                    self.stop_event.wait(self.config.poll_interval)
        finally:
            # In-flight work has finished by now; closing releases the partitions.
            self.consumer.close()
            db.session.remove()
            logger.info("%s stopped", self.name)


class EnrichmentWorker:
    """Runs ``concurrency`` consumer threads over disjoint partition groups, plus the sweeper."""

    def __init__(
        self,
        app,
        config: Optional[WorkerConfig] = None,
        classify: Optional[Classifier] = None,
        channel: Optional[EnrichmentChannel] = None,
    ) -> None:
        self.app = app
        self.config = config or WorkerConfig.from_app_config(app.config)
        self.classify = classify or analyze_sentiment
        self.channel = channel or app.extensions["enrichment_channel"]
        self.stop_event = threading.Event()
        self._threads: List[threading.Thread] = []

    def _in_app_context(self, target, *args) -> None:
        with self.app.app_context():
            target(*args)

    def start(self) -> None:
        cfg = self.config
        groups = assign_partitions(cfg.partition_ids(), cfg.concurrency)
        logger.info(
            "Starting enrichment worker (consumers=%s, partitions=%s, max_retries=%s, timeout=%ss)",
            len(groups),
            groups,
            cfg.max_retries,
            cfg.classify_timeout,
        )
        for index, group in enumerate(groups):
            consumer = EnrichmentConsumer(
                self.channel.open_consumer(group),
                self.classify,
                cfg,
                self.stop_event,
                name=f"enrichment-consumer-{index}",
            )
            self._spawn(consumer.run, name=consumer.name)
        if cfg.enable_sweeper:
            self._spawn(
                run_sweeper,
                self.channel,
                cfg.sweep_interval,
                cfg.sweep_pending_age,
                self.stop_event,
                name="reconciliation-sweeper",
            )

    def _spawn(self, target, *args, name: str) -> None:
        thread = threading.Thread(target=self._in_app_context, args=(target, *args), name=name, daemon=True)
        thread.start()
        self._threads.append(thread)

    def stop(self) -> None:
        """Stop polling; each consumer finishes its in-flight event first."""
        self.stop_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        for thread in self._threads:
            thread.join(timeout)
        self.channel.close()

    def wait(self) -> None:
        """Block until stopped."""
        while not self.stop_event.wait(1.0):
            pass
