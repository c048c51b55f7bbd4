"""Kafka-backed enrichment channel (confluent-kafka).

Events are keyed by entry id so the broker's partitioner keeps every event for
one entry on one partition; partition ownership within the consumer group is
assigned by the broker.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from confluent_kafka import Consumer, KafkaError, KafkaException, Producer, TopicPartition
from pydantic import ValidationError

from moodlog.domains.journal.errors import PublishFailure
from moodlog.domains.journal.events import JOURNAL_ENTRY_ENRICHMENT_REQUESTED
from moodlog.domains.journal.schemas.event_schemas import EnrichmentEvent
from moodlog.platform.channel.base import ChannelConsumer, Delivery, EnrichmentChannel

logger = logging.getLogger(__name__)


class KafkaEnrichmentChannel(EnrichmentChannel):
    def __init__(
        self,
        brokers: str,
        topic: str,
        consumer_group: str,
        publish_timeout: float = 5.0,
        producer=None,
        consumer_factory: Optional[Callable[[dict], object]] = None,
    ) -> None:
        self.brokers = brokers
        self.topic = topic
        self.consumer_group = consumer_group
        self.publish_timeout = publish_timeout
        self._producer = producer
        self._consumer_factory = consumer_factory or Consumer

    @property
    def producer(self):
        if self._producer is None:
            self._producer = Producer({"bootstrap.servers": self.brokers, "enable.idempotence": True})
        return self._producer

    def publish(self, event: EnrichmentEvent) -> None:
        errors: List[object] = []

        def _on_delivery(err, _msg) -> None:
            if err is not None:
                errors.append(err)

        try:
            self.producer.produce(
                self.topic,
                key=event.entry_id.encode("utf-8"),
                value=event.to_bytes(),
                headers=[("event_type", JOURNAL_ENTRY_ENRICHMENT_REQUESTED.encode("utf-8"))],
                on_delivery=_on_delivery,
            )
            remaining = self.producer.flush(self.publish_timeout)
        except (KafkaException, BufferError) as exc:
            raise PublishFailure(f"kafka publish failed: {exc}") from exc
        if remaining:
            raise PublishFailure(f"{remaining} message(s) undelivered after {self.publish_timeout}s")
        if errors:
            raise PublishFailure(f"kafka delivery failed: {errors[0]}")

    def open_consumer(self, partitions: Optional[Sequence[int]] = None) -> "KafkaPartitionConsumer":
        if partitions:
            logger.debug("Ignoring explicit partitions %s; the broker assigns them", list(partitions))
        consumer = self._consumer_factory(
            {
                "bootstrap.servers": self.brokers,
                "group.id": self.consumer_group,
                "enable.auto.commit": False,
                "auto.offset.reset": "earliest",
            }
        )
        return KafkaPartitionConsumer(consumer, self.topic)

    def close(self) -> None:
        if self._producer is not None:
            self._producer.flush(self.publish_timeout)


class KafkaPartitionConsumer(ChannelConsumer):
    blocking_poll = True

    def __init__(self, consumer, topic: str) -> None:
        self._consumer = consumer
        self.topic = topic
        self._consumer.subscribe([topic])

    def poll(self, timeout: float) -> Optional[Delivery]:
        msg = self._consumer.poll(timeout)
        if msg is None:
            return None
        if msg.error():
            if msg.error().code() != KafkaError._PARTITION_EOF:
                logger.warning("Kafka consumer error: %s", msg.error())
            return None
        try:
            event = EnrichmentEvent.from_payload(msg.value())
        except ValidationError:
            logger.error(
                "Skipping malformed enrichment message at %s[%s]@%s",
                msg.topic(),
                msg.partition(),
                msg.offset(),
            )
            self._consumer.commit(message=msg, asynchronous=False)
            return None
        return Delivery(event=event, partition=msg.partition(), offset=msg.offset(), handle=msg)

    def ack(self, delivery: Delivery) -> None:
        self._consumer.commit(message=delivery.handle, asynchronous=False)

    def rewind(self, delivery: Delivery) -> None:
        self._consumer.seek(TopicPartition(self.topic, delivery.partition, delivery.offset))

    def close(self) -> None:
        # Leaves the group so the broker reassigns our partitions.
        self._consumer.close()
