import sys
from pathlib import Path

import fakeredis
import pytest
from flask_jwt_extended import create_access_token

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from moodlog import create_app
from moodlog.core.telemetry import enrichment_telemetry
from moodlog.domains.journal.errors import PublishFailure
from moodlog.extensions import cache, db


# ==================== Pytest Markers ====================
def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (database, cache, channel)")
    config.addinivalue_line("markers", "slow: Slow running tests (worker threads)")


class SwitchableChannel:
    """Wraps a real channel; ``down = True`` makes publish fail like a broker outage."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.down = False
        self.published = []

    def publish(self, event) -> None:
        if self.down:
            raise PublishFailure("channel unreachable")
        self.inner.publish(event)
        self.published.append(event)

    def open_consumer(self, partitions=None):
        return self.inner.open_consumer(partitions)

    def close(self) -> None:
        self.inner.close()


@pytest.fixture()
def redis_client():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture()
def app(tmp_path, redis_client):
    """Per-test app on its own SQLite file with a fresh fake Redis."""
    app = create_app(
        "testing",
        overrides={
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
            "JWT_SECRET_KEY": "test-secret-key-with-enough-length-for-hs256",
        },
    )
    cache.init_app(app, client=redis_client)
    app.extensions["enrichment_channel"] = SwitchableChannel(app.extensions["enrichment_channel"])
    enrichment_telemetry.reset()

    ctx = app.app_context()
    ctx.push()
    try:
        yield app
    finally:
        db.session.remove()
        db.drop_all()
        db.engine.dispose()
        ctx.pop()


@pytest.fixture()
def channel(app):
    return app.extensions["enrichment_channel"]


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def auth_headers(app):
    """Build bearer headers for an owner id; identity and roles come from the JWT."""

    def _headers(owner_id: str, roles=()) -> dict[str, str]:
        token = create_access_token(identity=owner_id, additional_claims={"roles": list(roles)})
        return {"Authorization": f"Bearer {token}"}

    return _headers
