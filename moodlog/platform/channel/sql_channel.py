"""Database-backed partitioned enrichment log."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from moodlog.domains.journal.errors import PublishFailure
from moodlog.domains.journal.schemas.event_schemas import EnrichmentEvent
from moodlog.extensions import db
from moodlog.platform.channel.base import ChannelConsumer, Delivery, EnrichmentChannel
from moodlog.platform.channel.models import ConsumerOffset, EnrichmentLogRecord
from moodlog.platform.channel.partitioning import partition_for

logger = logging.getLogger(__name__)


class SqlEnrichmentChannel(EnrichmentChannel):
    """Append-only log table split into ``partitions`` by entry id.

    Publishing commits its own transaction so a failure here never rolls back
    the caller's entry write.
    """

    def __init__(self, partitions: int, consumer_group: str, session=None) -> None:
        self.partitions = partitions
        self.consumer_group = consumer_group
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    def publish(self, event: EnrichmentEvent) -> None:
        record = EnrichmentLogRecord(
            partition=partition_for(event.entry_id, self.partitions),
            entry_id=event.entry_id,
            version=event.version,
            payload=event.to_payload(),
        )
        try:
            self.session.add(record)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PublishFailure(f"enrichment log unavailable: {exc}") from exc

    def open_consumer(self, partitions: Optional[Sequence[int]] = None) -> "SqlPartitionConsumer":
        owned = list(partitions) if partitions is not None else list(range(self.partitions))
        return SqlPartitionConsumer(self, owned)


class SqlPartitionConsumer(ChannelConsumer):
    """Reads the owned partitions in id order, one record at a time.

    Offsets only move on ``ack``; an unacked delivery is returned again by the
    next ``poll`` on its partition.
    """

    blocking_poll = False

    def __init__(self, channel: SqlEnrichmentChannel, partitions: List[int]) -> None:
        self.channel = channel
        self.partitions = sorted(partitions)
        self._offsets: Dict[int, int] = {}
        self._next_index = 0

    def poll(self, timeout: float = 0) -> Optional[Delivery]:
        if not self.partitions:
            return None
        count = len(self.partitions)
        for step in range(count):
            partition = self.partitions[(self._next_index + step) % count]
            delivery = self._next_in_partition(partition)
            if delivery is not None:
                self._next_index = (self._next_index + step + 1) % count
                return delivery
        return None

    def _next_in_partition(self, partition: int) -> Optional[Delivery]:
        session = self.channel.session
        while True:
            committed = self._committed_offset(partition)
            record = (
                session.query(EnrichmentLogRecord)
                .filter(
                    EnrichmentLogRecord.partition == partition,
                    EnrichmentLogRecord.id > committed,
                )
                .order_by(EnrichmentLogRecord.id)
                .first()
            )
            if record is None:
                # Release the read snapshot so later polls see new rows.
                session.commit()
                return None
            try:
                event = EnrichmentEvent.from_payload(record.payload)
            except ValidationError:
                logger.error("Skipping malformed enrichment record %s in partition %s", record.id, partition)
                self._commit_offset(partition, record.id)
                continue
            return Delivery(event=event, partition=partition, offset=record.id)

    def _committed_offset(self, partition: int) -> int:
        if partition not in self._offsets:
            row = self.channel.session.get(ConsumerOffset, (self.channel.consumer_group, partition))
            self._offsets[partition] = row.committed_offset if row else 0
        return self._offsets[partition]

    def _commit_offset(self, partition: int, offset: int) -> None:
        session = self.channel.session
        row = session.get(ConsumerOffset, (self.channel.consumer_group, partition))
        if row is None:
            row = ConsumerOffset(
                consumer_group=self.channel.consumer_group,
                partition=partition,
                committed_offset=0,
            )
            session.add(row)
        row.committed_offset = max(row.committed_offset or 0, offset)
        row.updated_at = datetime.utcnow()
        session.commit()
        self._offsets[partition] = row.committed_offset

    def ack(self, delivery: Delivery) -> None:
        self._commit_offset(delivery.partition, delivery.offset)

    def rewind(self, delivery: Delivery) -> None:
        # Offsets advance only on ack; the record is re-read on the next poll.
        self._offsets.pop(delivery.partition, None)

    def close(self) -> None:
        self._offsets.clear()
