"""CLI commands for the enrichment pipeline.

Usage:
    flask enrichment-worker                 # consumers + sweeper until SIGTERM
    flask enrichment-worker --no-sweeper
    flask reconcile-sweep                   # one sweep pass
    flask reconcile-sweep --pending-age 30
"""

from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext


@click.command("enrichment-worker")
@click.option("--concurrency", "-c", type=int, help="Consumer threads (defaults to WORKER_CONCURRENCY)")
@click.option("--partitions", "-p", help="Comma-separated partition ids this process owns")
@click.option("--sweeper/--no-sweeper", default=True, help="Also run the reconciliation sweeper")
@with_appcontext
def enrichment_worker_command(concurrency: int | None, partitions: str | None, sweeper: bool):
    """Consume enrichment events and write sentiment back to entries."""
    from moodlog.platform.worker.config import WorkerConfig, parse_partitions
    from moodlog.platform.worker.run import run_worker

    config = WorkerConfig.from_app_config(current_app.config)
    if concurrency:
        config.concurrency = concurrency
    if partitions:
        config.owned_partitions = parse_partitions(partitions)
    config.enable_sweeper = sweeper
    click.echo(f"Starting enrichment worker ({config.concurrency} consumers)...")
    run_worker(current_app._get_current_object(), config)


@click.command("reconcile-sweep")
@click.option("--pending-age", type=float, help="Seconds an entry must sit in PENDING (defaults to SWEEP_PENDING_AGE_SECONDS)")
@with_appcontext
def reconcile_sweep_command(pending_age: float | None):
    """Re-publish enrichment events for entries whose publish never succeeded."""
    from moodlog.domains.journal.services.reconciliation_service import run_sweep

    age = pending_age if pending_age is not None else float(current_app.config["SWEEP_PENDING_AGE_SECONDS"])
    republished = run_sweep(pending_age_seconds=age)
    click.echo(f"  ✓ Re-published {republished} pending entr{'y' if republished == 1 else 'ies'}")


def register_commands(app):
    """Register CLI commands with the app."""
    app.cli.add_command(enrichment_worker_command)
    app.cli.add_command(reconcile_sweep_command)
