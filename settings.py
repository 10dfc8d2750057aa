from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DATABASE_URL_ENV = "TELEMETRY_DATABASE_URL"
_UPLINK_ENDPOINT_ENV = "TELEMETRY_UPLINK_ENDPOINT"
_UPLINK_TIMEOUT_ENV = "TELEMETRY_UPLINK_TIMEOUT"
_FLOAT_POLICY_ENV = "TELEMETRY_FLOAT_POLICY"
_SEND_TIMEOUT_ENV = "TELEMETRY_SUBSCRIBER_SEND_TIMEOUT"
_DEVICE_PATH_ENV = "TELEMETRY_DEVICE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_FLOAT_POLICIES = ("zero", "drop")


@dataclass(frozen=True)
class Settings:
    database_url: str
    uplink_endpoint: Optional[str]
    uplink_timeout: float
    float_policy: str
    subscriber_send_timeout: float
    device_path: str
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float_policy(default: str) -> str:
    value = os.getenv(_FLOAT_POLICY_ENV)
    if value is None:
        return default
    candidate = value.strip().lower()
    return candidate if candidate in _FLOAT_POLICIES else default


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
    endpoint = _read_optional_env(_UPLINK_ENDPOINT_ENV, None)
    return Settings(
        database_url=_read_str_env(_DATABASE_URL_ENV, "sqlite:///./tmp/telemetry.db"),
        uplink_endpoint=endpoint.rstrip("/") if endpoint else None,
        uplink_timeout=_read_positive_float(_UPLINK_TIMEOUT_ENV, 2.0),
        float_policy=_read_float_policy("zero"),
        subscriber_send_timeout=_read_positive_float(_SEND_TIMEOUT_ENV, 5.0),
        device_path=_read_str_env(_DEVICE_PATH_ENV, "/dev/rfm70"),
        log_level=_read_log_level("INFO"),
    )
