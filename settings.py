from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_BANNER_MARKERS_ENV = "TELEMETRY_BANNER_MARKERS"
_POLL_INTERVAL_ENV = "TELEMETRY_POLL_INTERVAL"
_CHUNK_SIZE_ENV = "TELEMETRY_READ_CHUNK_SIZE"
_SOURCE_PATH_ENV = "TELEMETRY_SOURCE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_BANNER_MARKERS: Tuple[str, ...] = ("===", "Arduino", "Formato")
DEFAULT_POLL_INTERVAL = 0.01
DEFAULT_CHUNK_SIZE = 64


@dataclass(frozen=True)
class Settings:
    banner_markers: Tuple[str, ...]
    poll_interval: float
    read_chunk_size: int
    source_path: Optional[str]
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_banner_markers(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_BANNER_MARKERS_ENV)
    if value is None:
        return default
    markers = tuple(part.strip() for part in value.split(",") if part.strip())
    return markers or default


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
        banner_markers=_read_banner_markers(DEFAULT_BANNER_MARKERS),
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, DEFAULT_POLL_INTERVAL),
        read_chunk_size=_read_positive_int(_CHUNK_SIZE_ENV, DEFAULT_CHUNK_SIZE),
        source_path=_read_optional_env(_SOURCE_PATH_ENV, None),
        log_level=_read_log_level("INFO"),
    )
