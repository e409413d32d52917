from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_PROBE_INTERVAL_ENV = "CO2_PROBE_INTERVAL_SECONDS"
_PROBE_ATTEMPTS_ENV = "CO2_PROBE_ATTEMPTS"
_DEBOUNCE_ENV = "CO2_RECOVERY_DEBOUNCE_SECONDS"
_MEMBER_PREFIX_ENV = "CO2_MEMBER_PREFIX"
_DEFAULT_MODE_ENV = "CO2_DEFAULT_MODE"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    probe_interval: float
    probe_attempts: int
    recovery_debounce: float
    member_prefix: str
    default_mode: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


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


def _read_default_mode(default: int) -> int:
    parsed = _read_positive_int(_DEFAULT_MODE_ENV, default)
    return parsed if parsed in (1, 2, 3) else default


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
        probe_interval=_read_positive_float(_PROBE_INTERVAL_ENV, 5.0),
        probe_attempts=_read_positive_int(_PROBE_ATTEMPTS_ENV, 60),
        recovery_debounce=_read_positive_float(_DEBOUNCE_ENV, 2.0),
        member_prefix=_read_str_env(_MEMBER_PREFIX_ENV, "CO2_"),
        default_mode=_read_default_mode(3),
        log_level=_read_log_level("INFO"),
    )
