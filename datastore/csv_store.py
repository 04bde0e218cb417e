"""CSV-backed store of devices and their savings records."""

from __future__ import annotations

import csv
import logging
import math
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Iterator, Optional, Tuple

from models.records import Device, DeviceSavingRecord
from services.date_chunks import to_tick
from settings import get_settings

logger = logging.getLogger(__name__)

_DEVICE_COLUMNS = ("id", "name", "timezone")
_SAVING_COLUMNS = ("device_id", "timestamp", "carbon_saved", "fuel_saved")
# Older exports spell the fuel column "fueld_saved".
_COLUMN_ALIASES = {"fueld_saved": "fuel_saved"}


class CsvDataStore:
    """In-memory snapshot of the device and savings CSV files.

    Accessors return ``None`` until :meth:`load` has completed. Each load
    swaps in fresh immutable tuples, so callers holding an older snapshot are
    never affected by a reload.
    """

    def __init__(
        self,
        data_dir: Path,
        devices_file: str = "devices.csv",
        savings_file: str = "device-saving.csv",
    ) -> None:
        self.data_dir = data_dir
        self.devices_path = data_dir / devices_file
        self.savings_path = data_dir / savings_file
        self._devices: Optional[Tuple[Device, ...]] = None
        self._savings: Optional[Tuple[DeviceSavingRecord, ...]] = None
        self._lock = Lock()

    @property
    def is_loaded(self) -> bool:
        with self._lock:
            return self._devices is not None and self._savings is not None

    def get_devices(self) -> Optional[Tuple[Device, ...]]:
        with self._lock:
            return self._devices

    def get_device_savings(self) -> Optional[Tuple[DeviceSavingRecord, ...]]:
        with self._lock:
            return self._savings

    def load(self) -> None:
        """Read both CSV files and publish them as the current snapshot."""
        devices = tuple(self._read_devices())
        savings = tuple(self._read_savings())
        with self._lock:
            self._devices = devices
            self._savings = savings
        logger.info(
            "Loaded device data",
            extra={"device_count": len(devices), "record_count": len(savings)},
        )

    def _read_devices(self) -> Iterator[Device]:
        for row_number, row in _read_rows(self.devices_path, _DEVICE_COLUMNS):
            name = row["name"]
            tz_name = row["timezone"]
            try:
                device_id = int(row["id"])
            except ValueError:
                _skip(self.devices_path, row_number, "invalid device id")
                continue
            if not name:
                _skip(self.devices_path, row_number, "missing name")
                continue
            yield Device(id=device_id, name=name, timezone=tz_name)

    def _read_savings(self) -> Iterator[DeviceSavingRecord]:
        for row_number, row in _read_rows(self.savings_path, _SAVING_COLUMNS):
            try:
                device_id = int(row["device_id"])
            except ValueError:
                _skip(self.savings_path, row_number, "invalid device id")
                continue

            try:
                timestamp = parse_timestamp(row["timestamp"])
            except ValueError:
                _skip(self.savings_path, row_number, "invalid timestamp")
                continue

            device_timestamp: Optional[datetime] = None
            device_raw = row.get("device_timestamp") or ""
            if device_raw:
                try:
                    device_timestamp = parse_timestamp(device_raw)
                except ValueError:
                    _skip(self.savings_path, row_number, "invalid device timestamp")
                    continue

            try:
                carbon = float(row["carbon_saved"])
                fuel = float(row["fuel_saved"])
            except ValueError:
                _skip(self.savings_path, row_number, "invalid numeric value")
                continue
            if not (math.isfinite(carbon) and math.isfinite(fuel)):
                _skip(self.savings_path, row_number, "invalid numeric value")
                continue

            yield DeviceSavingRecord(
                device_id=device_id,
                timestamp=timestamp,
                device_timestamp=device_timestamp,
                carbon_saved=carbon,
                fuel_saved=fuel,
            )


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into a naive UTC datetime at millisecond precision."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError(f"Invalid timestamp format: {value!r}") from exc

    return to_tick(parsed)


def _read_rows(path: Path, required: Tuple[str, ...]) -> Iterator[Tuple[int, Dict[str, str]]]:
    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise ValueError(f"CSV file {path} is missing a header row.")

        normalized: Dict[str, str] = {}
        for name in reader.fieldnames:
            key = name.lower().strip()
            normalized[_COLUMN_ALIASES.get(key, key)] = name
        missing = sorted(set(required) - normalized.keys())
        if missing:
            raise ValueError(
                f"CSV file {path} missing required columns: {', '.join(missing)}"
            )

        for row_number, row in enumerate(reader, start=2):
            cleaned = {
                column: (row.get(source) or "").strip()
                for column, source in normalized.items()
            }
            yield row_number, cleaned


def _skip(path: Path, row_number: int, reason: str) -> None:
    logger.warning(
        "Skipping malformed row",
        extra={"path": str(path), "row_number": row_number, "reason": reason},
    )


@lru_cache
def build_default_store(data_dir: Optional[str] = None) -> CsvDataStore:
    settings = get_settings()
    root = Path(settings.data_dir if data_dir is None else data_dir)
    return CsvDataStore(
        data_dir=root,
        devices_file=settings.devices_file,
        savings_file=settings.records_file,
    )
