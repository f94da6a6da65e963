"""Centralized configuration for environment variables and the search backend.

This module is the single source of truth for configuration used across the
application. Import constants from here rather than calling os.getenv directly
in multiple places.

NOTE: Credentials are only read here. Services receive an already constructed
search gateway and never touch the environment themselves.
"""

from __future__ import annotations

import os
from typing import Final

from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# --- Elasticsearch Connection ---
# Either a cloud id or a plain URL; the cloud id wins when both are set.
ELASTIC_CLOUD_ID: Final[str | None] = os.getenv("ELASTIC_CLOUD_ID") or None
ELASTIC_URL: Final[str] = os.getenv("ELASTIC_URL", "http://localhost:9200")
ELASTIC_USERNAME: Final[str | None] = os.getenv("ELASTIC_USERNAME") or None
ELASTIC_PASSWORD: Final[str | None] = os.getenv("ELASTIC_PASSWORD") or None

# Index names
TRIPS_INDEX: Final[str] = os.getenv("TRIPS_INDEX", "prod_trips")
RIDE_LOCATION_INDEX: Final[str] = os.getenv(
    "RIDE_LOCATION_INDEX",
    "prod_ride_location_history",
)

# --- Timeouts and retries ---
SEARCH_TIMEOUT_MS: Final[int] = _env_int("SEARCH_TIMEOUT_MS", 30_000)
ANALYTICS_TIMEOUT_MS: Final[int] = _env_int("ANALYTICS_TIMEOUT_MS", 60_000)
# Connection-level retries only; timeouts and API errors are never retried.
SEARCH_MAX_RETRIES: Final[int] = _env_int("SEARCH_MAX_RETRIES", 2)

# --- Query cache ---
QUERY_CACHE_TTL_MS: Final[int] = _env_int("QUERY_CACHE_TTL_MS", 300_000)

# --- Polyline validation ---
# 1 keeps bulk validation strictly sequential.
POLYLINE_VALIDATION_CONCURRENCY: Final[int] = max(
    1,
    _env_int("POLYLINE_VALIDATION_CONCURRENCY", 1),
)


__all__ = [
    "ANALYTICS_TIMEOUT_MS",
    "ELASTIC_CLOUD_ID",
    "ELASTIC_PASSWORD",
    "ELASTIC_URL",
    "ELASTIC_USERNAME",
    "POLYLINE_VALIDATION_CONCURRENCY",
    "QUERY_CACHE_TTL_MS",
    "RIDE_LOCATION_INDEX",
    "SEARCH_MAX_RETRIES",
    "SEARCH_TIMEOUT_MS",
    "TRIPS_INDEX",
]
