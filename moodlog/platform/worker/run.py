"""CLI entrypoint to run the enrichment worker."""

from __future__ import annotations

import logging
import os
import signal

from moodlog import create_app
from moodlog.platform.worker.config import WorkerConfig
from moodlog.platform.worker.consumer import EnrichmentWorker

logger = logging.getLogger(__name__)


def run_worker(app, config: WorkerConfig | None = None) -> None:
    """Start consumers and sweeper, block until SIGINT/SIGTERM, then drain."""
    worker = EnrichmentWorker(app, config or WorkerConfig.from_app_config(app.config))

    def _shutdown(signum, _frame) -> None:
        logger.info("Received signal %s; finishing in-flight events", signum)
        worker.stop()

    signal.signal(signal.SIGTERM, _shutdown)
    worker.start()
    try:
        worker.wait()
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")
        worker.stop()
    finally:
        worker.join()


def main() -> None:
    logging.basicConfig(level=os.environ.get("WORKER_LOGLEVEL", "INFO"))
    env = os.environ.get("APP_ENV", "development")
    app = create_app(env)
    run_worker(app)


if __name__ == "__main__":
    main()
