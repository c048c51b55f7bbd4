"""Configuration helpers for the enrichment worker."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional


def parse_partitions(raw: Optional[str]) -> Optional[List[int]]:
    if not raw:
        return None
    return sorted({int(part) for part in raw.split(",") if part.strip()})


@dataclass
class WorkerConfig:
    """Runtime knobs for the consumer loops and the sweeper."""

    concurrency: int = 2
    poll_interval: float = 1.0
    partitions: int = 8
    owned_partitions: Optional[List[int]] = field(default=None)
    max_retries: int = 3
    classify_timeout: float = 5.0
    backoff_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    sweep_interval: float = 60.0
    sweep_pending_age: float = 120.0
    enable_sweeper: bool = True

    def partition_ids(self) -> List[int]:
        """Partitions this process consumes (all of them unless narrowed)."""
        if self.owned_partitions is not None:
            return [p for p in self.owned_partitions if 0 <= p < self.partitions]
        return list(range(self.partitions))

    @classmethod
    def from_app_config(cls, config: Mapping) -> "WorkerConfig":
        """Build config from a Flask config mapping."""
        return cls(
            concurrency=int(config.get("WORKER_CONCURRENCY", 2)),
            poll_interval=float(config.get("WORKER_POLL_INTERVAL", 1)),
            partitions=int(config.get("ENRICHMENT_PARTITIONS", 8)),
            owned_partitions=parse_partitions(config.get("ENRICHMENT_OWNED_PARTITIONS")),
            max_retries=int(config.get("MAX_ENRICHMENT_RETRIES", 3)),
            classify_timeout=float(config.get("CLASSIFY_TIMEOUT_SECONDS", 5)),
            backoff_seconds=float(config.get("ENRICHMENT_BACKOFF_SECONDS", 1)),
            backoff_multiplier=float(config.get("ENRICHMENT_BACKOFF_MULTIPLIER", 2)),
            sweep_interval=float(config.get("SWEEP_INTERVAL_SECONDS", 60)),
            sweep_pending_age=float(config.get("SWEEP_PENDING_AGE_SECONDS", 120)),
            enable_sweeper=str(config.get("ENABLE_SWEEPER", "true")).lower() in ("1", "true", "yes"),
        )

    @classmethod
    def from_env(cls) -> "WorkerConfig":
        """Build config from environment with sensible defaults."""
        return cls.from_app_config(os.environ)
