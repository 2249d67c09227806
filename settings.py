from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_HOST_ENV = "HOST"
_PORT_ENV = "PORT"
_MONGO_URI_ENV = "MONGO_URI"
_COLLECTION_ENV = "MONGO_COLLECTION"
_CONNECT_TIMEOUT_ENV = "MONGO_CONNECT_TIMEOUT_MS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_MONGO_URI = "mongodb://localhost:27017/esp32_iot"


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    mongo_uri: str
    collection_name: str
    connect_timeout_ms: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 3000),
        mongo_uri=_read_str_env(_MONGO_URI_ENV, DEFAULT_MONGO_URI),
        collection_name=_read_str_env(_COLLECTION_ENV, "sensordatas"),
        connect_timeout_ms=_read_positive_int(_CONNECT_TIMEOUT_ENV, 5000),
        log_level=_read_log_level("INFO"),
    )
