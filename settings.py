from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional


_DATA_DIR_ENV = "SAVINGS_DATA_DIR"
_DEVICES_FILE_ENV = "SAVINGS_DEVICES_FILE"
_RECORDS_FILE_ENV = "SAVINGS_RECORDS_FILE"
_WINDOW_DAYS_ENV = "SAVINGS_WINDOW_DAYS"
_FIXED_NOW_ENV = "SAVINGS_FIXED_NOW"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    data_dir: str
    devices_file: str
    records_file: str
    default_window_days: int
    fixed_now: Optional[datetime]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_window_days(default: int) -> int:
    value = os.getenv(_WINDOW_DAYS_ENV)
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


def _read_fixed_now() -> Optional[datetime]:
    value = os.getenv(_FIXED_NOW_ENV)
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


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
        data_dir=_read_str_env(_DATA_DIR_ENV, "./data"),
        devices_file=_read_str_env(_DEVICES_FILE_ENV, "devices.csv"),
        records_file=_read_str_env(_RECORDS_FILE_ENV, "device-saving.csv"),
        default_window_days=_read_window_days(30),
        fixed_now=_read_fixed_now(),
        log_level=_read_log_level("INFO"),
    )
