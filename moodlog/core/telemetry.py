"""Lightweight telemetry counters for the enrichment pipeline."""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List


@dataclass
class EnrichmentTelemetrySnapshot:
    applied: int
    stale_discarded: int
    failed: int
    classification_retries: int
    publish_failures: int
    cache_unavailable: int
    sweep_republished: int
    per_label_counts: Dict[str, int]
    recent_outcomes: List[Dict[str, str]]


class EnrichmentTelemetry:
    """In-memory counters; one instance per process."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._reset_state()

    def _reset_state(self) -> None:
        self.applied = 0
        self.stale_discarded = 0
        self.failed = 0
        self.classification_retries = 0
        self.publish_failures = 0
        self.cache_unavailable = 0
        self.sweep_republished = 0
        self.per_label_counts: Counter[str] = Counter()
        self.recent_outcomes = deque(maxlen=50)

    def reset(self) -> None:
        """Clear all counters (useful in tests)."""
        with self._lock:
            self._reset_state()

    def record_outcome(self, outcome: str, entry_id: str, version: int, label: str | None = None) -> None:
        """Record the terminal outcome of one enrichment event."""
        with self._lock:
            if outcome == "applied":
                self.applied += 1
                if label:
                    self.per_label_counts[label] += 1
            elif outcome == "stale_discarded":
                self.stale_discarded += 1
            elif outcome == "failed":
                self.failed += 1
                self.per_label_counts["FAILED"] += 1
            self.recent_outcomes.append(
                {
                    "outcome": outcome,
                    "entry_id": entry_id,
                    "version": str(version),
                    "at": datetime.now(timezone.utc).isoformat(),
                }
            )

    def record_retry(self) -> None:
        with self._lock:
            self.classification_retries += 1

    def record_publish_failure(self) -> None:
        with self._lock:
            self.publish_failures += 1

    def record_cache_unavailable(self) -> None:
        with self._lock:
            self.cache_unavailable += 1

    def record_sweep(self, republished: int) -> None:
        with self._lock:
            self.sweep_republished += republished

    def snapshot(self) -> EnrichmentTelemetrySnapshot:
        with self._lock:
            return EnrichmentTelemetrySnapshot(
                applied=self.applied,
                stale_discarded=self.stale_discarded,
                failed=self.failed,
                classification_retries=self.classification_retries,
                publish_failures=self.publish_failures,
                cache_unavailable=self.cache_unavailable,
                sweep_republished=self.sweep_republished,
                per_label_counts=dict(self.per_label_counts),
                recent_outcomes=list(self.recent_outcomes),
            )


# Global singleton
enrichment_telemetry = EnrichmentTelemetry()
