import pytest

from moodlog.platform.worker import WorkerConfig

pytestmark = pytest.mark.integration


def test_reconcile_sweep_command(app, channel):
    from moodlog.domains.journal.services import journal_service

    channel.down = True
    journal_service.create_or_update_entry("owner-1", None, title=None, content="calm evening")
    channel.down = False

    result = app.test_cli_runner().invoke(args=["reconcile-sweep", "--pending-age", "0"])

    assert result.exit_code == 0, result.output
    assert "Re-published 1 pending entry" in result.output
    assert len(channel.published) == 1


def test_enrichment_worker_command_builds_config(app, monkeypatch):
    captured = {}

    def _run_worker(run_app, config):
        captured["app"] = run_app
        captured["config"] = config

    monkeypatch.setattr("moodlog.platform.worker.run.run_worker", _run_worker)

    result = app.test_cli_runner().invoke(args=["enrichment-worker", "-c", "3", "-p", "0,2", "--no-sweeper"])

    assert result.exit_code == 0, result.output
    config = captured["config"]
    assert isinstance(config, WorkerConfig)
    assert config.concurrency == 3
    assert config.owned_partitions == [0, 2]
    assert config.enable_sweeper is False
    assert captured["app"] is app
