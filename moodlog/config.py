"""Application configuration for MoodLog."""

from __future__ import annotations

import os
from datetime import timedelta
from typing import Dict, Type

from dotenv import load_dotenv
from sqlalchemy.engine.url import make_url

load_dotenv()


def _engine_options_from_uri(uri: str) -> dict:
    url = make_url(uri)
    # Always keep pool_pre_ping, vary connect_args by dialect.
    if url.get_backend_name() == "sqlite":
        return {
            "pool_pre_ping": True,
            "connect_args": {"timeout": 30, "check_same_thread": False},
        }
    if url.get_backend_name() in {"postgresql", "postgres"}:
        timeout = int(os.environ.get("DB_CONNECT_TIMEOUT_SECONDS", "10"))
        return {"pool_pre_ping": True, "connect_args": {"connect_timeout": timeout}}
    return {"pool_pre_ping": True}


class BaseConfig:
    """Base configuration loaded for all environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///instance/moodlog.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options_from_uri(SQLALCHEMY_DATABASE_URI)

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.environ.get("JWT_ACCESS_MINUTES", "30")))

    # Read-side cache
    REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
    CACHE_TTL_SECONDS = int(os.environ.get("CACHE_TTL_SECONDS", "300"))
    CACHE_SOCKET_TIMEOUT_SECONDS = float(os.environ.get("CACHE_SOCKET_TIMEOUT_SECONDS", "0.5"))

    # Enrichment pipeline
    MAX_ENRICHMENT_RETRIES = int(os.environ.get("MAX_ENRICHMENT_RETRIES", "3"))
    ENRICHMENT_BACKOFF_SECONDS = float(os.environ.get("ENRICHMENT_BACKOFF_SECONDS", "1"))
    ENRICHMENT_BACKOFF_MULTIPLIER = float(os.environ.get("ENRICHMENT_BACKOFF_MULTIPLIER", "2"))
    CLASSIFY_TIMEOUT_SECONDS = float(os.environ.get("CLASSIFY_TIMEOUT_SECONDS", "5"))
    SWEEP_INTERVAL_SECONDS = float(os.environ.get("SWEEP_INTERVAL_SECONDS", "60"))
    SWEEP_PENDING_AGE_SECONDS = float(os.environ.get("SWEEP_PENDING_AGE_SECONDS", "120"))

    # Event channel: "sql" (partitioned log table) or "kafka"
    ENRICHMENT_CHANNEL = os.environ.get("ENRICHMENT_CHANNEL", "sql").lower()
    ENRICHMENT_PARTITIONS = int(os.environ.get("ENRICHMENT_PARTITIONS", "8"))
    ENRICHMENT_TOPIC = os.environ.get("ENRICHMENT_TOPIC", "journal.entry.enrichment")
    ENRICHMENT_CONSUMER_GROUP = os.environ.get("ENRICHMENT_CONSUMER_GROUP", "sentiment-enrichment")
    KAFKA_BROKERS = os.environ.get("KAFKA_BROKERS", "localhost:9092")
    KAFKA_PUBLISH_TIMEOUT_SECONDS = float(os.environ.get("KAFKA_PUBLISH_TIMEOUT_SECONDS", "5"))

    WORKER_CONCURRENCY = int(os.environ.get("WORKER_CONCURRENCY", "2"))
    WORKER_POLL_INTERVAL = float(os.environ.get("WORKER_POLL_INTERVAL", "1"))

    # Weather lookup (Open-Meteo current weather)
    WEATHER_API_URL = os.environ.get("WEATHER_API_URL", "https://api.open-meteo.com/v1/forecast")
    WEATHER_TIMEOUT_SECONDS = float(os.environ.get("WEATHER_TIMEOUT_SECONDS", "3"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///instance/test.db")
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options_from_uri(SQLALCHEMY_DATABASE_URI)
    ENRICHMENT_BACKOFF_SECONDS = 0
    ENRICHMENT_PARTITIONS = 4
    WORKER_POLL_INTERVAL = 0.01


class ProductionConfig(BaseConfig):
    ENV = "production"


config_by_name: Dict[str, Type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    # CI pipelines set APP_ENV=ci; map to testing defaults.
    "ci": TestingConfig,
}
