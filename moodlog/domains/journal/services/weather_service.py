"""Point-in-time weather lookup (Open-Meteo current weather)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
from flask import current_app

logger = logging.getLogger(__name__)


class WeatherLookupError(Exception):
    """Raised when the weather provider cannot be reached or answers garbage."""

    pass


def fetch_current_weather(latitude: float, longitude: float) -> Dict[str, Any]:
    """
    Query the provider for current conditions at a coordinate.

    Raises:
        WeatherLookupError: On transport errors or an unexpected payload
    """
    config = current_app.config
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current_weather": "true",
    }
    try:
        resp = requests.get(
            config["WEATHER_API_URL"],
            params=params,
            timeout=float(config.get("WEATHER_TIMEOUT_SECONDS", 3)),
        )
        resp.raise_for_status()
        payload = resp.json()
    except (requests.RequestException, ValueError) as e:
        raise WeatherLookupError(f"Weather lookup failed: {e}") from e

    current = payload.get("current_weather") if isinstance(payload, dict) else None
    if not isinstance(current, dict):
        raise WeatherLookupError("Weather response missing current_weather")
    return current


def fetch_weather_snapshot(latitude: float, longitude: float) -> Optional[Dict[str, Any]]:
    """Snapshot stored opaquely on a new entry; ``None`` when lookup fails."""
    try:
        current = fetch_current_weather(latitude, longitude)
    except WeatherLookupError as e:
        logger.warning("%s", e)
        return None
    return {
        "latitude": latitude,
        "longitude": longitude,
        "temperature_c": current.get("temperature"),
        "windspeed_kmh": current.get("windspeed"),
        "weather_code": current.get("weathercode"),
        "observed_at": current.get("time"),
        "fetched_at": datetime.now(timezone.utc).isoformat(),
        "source": "open-meteo",
    }
