"""Enrichment event channel backends and factory."""

from __future__ import annotations

from typing import Mapping

from moodlog.platform.channel.base import ChannelConsumer, Delivery, EnrichmentChannel
from moodlog.platform.channel.partitioning import assign_partitions, partition_for
from moodlog.platform.channel.sql_channel import SqlEnrichmentChannel


def build_channel(config: Mapping) -> EnrichmentChannel:
    """Build the channel selected by ``ENRICHMENT_CHANNEL`` (``sql`` or ``kafka``)."""
    backend = (config.get("ENRICHMENT_CHANNEL") or "sql").lower()
    group = config.get("ENRICHMENT_CONSUMER_GROUP", "sentiment-enrichment")
    if backend == "kafka":
        from moodlog.platform.channel.kafka_channel import KafkaEnrichmentChannel

        return KafkaEnrichmentChannel(
            brokers=config["KAFKA_BROKERS"],
            topic=config["ENRICHMENT_TOPIC"],
            consumer_group=group,
            publish_timeout=float(config.get("KAFKA_PUBLISH_TIMEOUT_SECONDS", 5)),
        )
    if backend == "sql":
        return SqlEnrichmentChannel(
            partitions=int(config.get("ENRICHMENT_PARTITIONS", 8)),
            consumer_group=group,
        )
    raise ValueError(f"Unknown ENRICHMENT_CHANNEL: {backend}")


__all__ = [
    "ChannelConsumer",
    "Delivery",
    "EnrichmentChannel",
    "SqlEnrichmentChannel",
    "assign_partitions",
    "build_channel",
    "partition_for",
]
