"""Worker runtime for the sentiment enrichment pipeline."""

from moodlog.platform.worker.config import WorkerConfig
from moodlog.platform.worker.consumer import EnrichmentConsumer, EnrichmentWorker

__all__ = [
    "EnrichmentConsumer",
    "EnrichmentWorker",
    "WorkerConfig",
]
