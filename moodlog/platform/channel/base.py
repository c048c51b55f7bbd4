"""Channel contracts shared by the SQL and Kafka backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from moodlog.domains.journal.schemas.event_schemas import EnrichmentEvent


@dataclass
class Delivery:
    """An event handed to a consumer, plus what the backend needs to ack it."""

    event: EnrichmentEvent
    partition: int
    offset: int
    handle: Any = None


class ChannelConsumer:
    """Pulls deliveries from the partitions owned by one consumer."""

    def poll(self, timeout: float) -> Optional[Delivery]:
        raise NotImplementedError

    def ack(self, delivery: Delivery) -> None:
        raise NotImplementedError

    def rewind(self, delivery: Delivery) -> None:
        """Arrange for ``delivery`` to be handed out again on a later poll."""
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


class EnrichmentChannel:
    """Ordered, partitioned event log (publish side plus consumer factory)."""

    def publish(self, event: EnrichmentEvent) -> None:
        """Publish one event; raises ``PublishFailure`` when the log is unreachable."""
        raise NotImplementedError

    def open_consumer(self, partitions: Optional[Sequence[int]] = None) -> ChannelConsumer:
        raise NotImplementedError

    def close(self) -> None:
        pass


__all__ = ["ChannelConsumer", "Delivery", "EnrichmentChannel"]
