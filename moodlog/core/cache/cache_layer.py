"""Redis-backed cache-aside layer that fails open."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import redis

from moodlog.core.telemetry import enrichment_telemetry

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


def entry_key(entry_id: str) -> str:
    return f"entry:{entry_id}"


def user_entries_key(owner_id: str) -> str:
    return f"userEntries:{owner_id}"


class CacheLayer:
    """Thin wrapper over a Redis client.

    Values are stored as a JSON envelope ``{"cached_at", "value"}``; ``cached_at``
    is the freshness marker and the TTL bounds staleness.
    Every Redis error is logged and swallowed here: a failed ``get`` is a miss,
    a failed ``set``/``invalidate`` is a no-op. Callers never see cache outages.
    """

    def __init__(self, client: Optional[redis.Redis] = None, default_ttl: int = DEFAULT_TTL_SECONDS) -> None:
        self.client = client
        self.default_ttl = default_ttl

    def init_app(self, app, client: Optional[redis.Redis] = None) -> None:
        self.default_ttl = int(app.config.get("CACHE_TTL_SECONDS", DEFAULT_TTL_SECONDS))
        if client is not None:
            self.client = client
        elif self.client is None:
            timeout = float(app.config.get("CACHE_SOCKET_TIMEOUT_SECONDS", 0.5))
            self.client = redis.Redis.from_url(
                app.config["REDIS_URL"],
                decode_responses=True,
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
            )
        app.extensions["cache"] = self

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value for ``key`` or ``None`` on miss/outage."""
        if self.client is None:
            return None
        try:
            raw = self.client.get(key)
        except redis.RedisError as exc:
            self._unavailable("get", key, exc)
            return None
        if raw is None:
            return None
        try:
            envelope = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding undecodable cache record %s", key)
            self.invalidate(key)
            return None
        return envelope.get("value")

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if self.client is None:
            return False
        envelope = {
            "cached_at": datetime.now(timezone.utc).isoformat(),
            "value": value,
        }
        try:
            self.client.setex(key, int(ttl or self.default_ttl), json.dumps(envelope))
        except redis.RedisError as exc:
            self._unavailable("set", key, exc)
            return False
        return True

    def invalidate(self, *keys: str) -> bool:
        if self.client is None or not keys:
            return False
        try:
            self.client.delete(*keys)
        except redis.RedisError as exc:
            self._unavailable("invalidate", ",".join(keys), exc)
            return False
        return True

    def _unavailable(self, op: str, key: str, exc: Exception) -> None:
        enrichment_telemetry.record_cache_unavailable()
        logger.warning("Cache unavailable during %s of %s: %s", op, key, exc)
