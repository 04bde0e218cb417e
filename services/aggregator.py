"""Aggregation of device savings records into totals."""

from __future__ import annotations

import asyncio
from datetime import datetime
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from datastore.csv_store import build_default_store
from models.records import (
    Device,
    DeviceSavingRecord,
    DeviceSummary,
    SavingsTotal,
    SavingsWindow,
)
from services.date_chunks import records_in_range
from services.errors import AggregationFailure, DataUnavailable

_ZERO = SavingsTotal()


class DataProvider(Protocol):
    """Source of devices and raw savings records.

    Both accessors return ``None`` while the underlying data is still loading.
    """

    def get_devices(self) -> Optional[Sequence[Device]]:
        ...

    def get_device_savings(self) -> Optional[Sequence[DeviceSavingRecord]]:
        ...


def sum_savings(records: Iterable[DeviceSavingRecord]) -> SavingsTotal:
    carbon = 0.0
    diesel = 0.0
    for record in records:
        carbon += record.carbon_saved
        diesel += record.fuel_saved
    return SavingsTotal(total_carbon=carbon, total_diesel=diesel)


def _totals_by_device(records: Iterable[DeviceSavingRecord]) -> Dict[int, SavingsTotal]:
    grouped: Dict[int, List[DeviceSavingRecord]] = {}
    for record in records:
        grouped.setdefault(record.device_id, []).append(record)
    return {device_id: sum_savings(owned) for device_id, owned in grouped.items()}


class SavingsAggregator:
    """Computes per-device savings totals on top of an injected data provider.

    Totals are derived once per records snapshot and reused until the provider
    hands back a different snapshot. The cache is only replaced after the
    provider call has returned, so an abandoned request leaves nothing behind.
    """

    def __init__(self, provider: DataProvider) -> None:
        self.provider = provider
        self._snapshot: Optional[Sequence[DeviceSavingRecord]] = None
        self._totals: Dict[int, SavingsTotal] = {}

    async def get_savings_total(self, device_id: int) -> SavingsTotal:
        """Whole-history carbon and diesel totals for ``device_id``."""
        records = await self._fetch_savings()
        return self._totals_for(records).get(device_id, _ZERO)

    async def get_savings_window(
        self, device_id: int, start: datetime, end: datetime
    ) -> SavingsWindow:
        """Whole-history total plus the device's records inside ``[start, end]``."""
        records = await self._fetch_savings()
        total = self._totals_for(records).get(device_id, _ZERO)
        owned = (record for record in records if record.device_id == device_id)
        return SavingsWindow(total=total, records=tuple(records_in_range(owned, start, end)))

    async def list_devices(self, include_savings: bool = False) -> List[DeviceSummary]:
        """List every device, resolving savings concurrently when requested.

        The listing is all-or-nothing: the first failing device cancels the
        remaining lookups and surfaces as ``AggregationFailure``.
        """
        devices = await self._fetch_devices()
        if not include_savings:
            return [DeviceSummary(device=device) for device in devices]

        tasks: List[asyncio.Future[SavingsTotal]] = []
        try:
            for device in devices:
                tasks.append(asyncio.ensure_future(self.get_savings_total(device.id)))
            totals = await asyncio.gather(*tasks)
        except (AggregationFailure, DataUnavailable):
            _cancel_all(tasks)
            raise
        except Exception as exc:
            _cancel_all(tasks)
            raise AggregationFailure("Unable to retrieve savings data for devices.") from exc

        return [
            DeviceSummary(device=device, savings=total)
            for device, total in zip(devices, totals)
        ]

    async def _fetch_devices(self) -> Sequence[Device]:
        try:
            devices = await asyncio.to_thread(self.provider.get_devices)
        except Exception as exc:
            raise AggregationFailure("Unable to retrieve devices.") from exc
        if not devices:
            raise DataUnavailable("Device data has not been loaded yet.")
        return devices

    async def _fetch_savings(self) -> Sequence[DeviceSavingRecord]:
        try:
            records = await asyncio.to_thread(self.provider.get_device_savings)
        except Exception as exc:
            raise AggregationFailure("Unable to retrieve savings data.") from exc
        if records is None:
            raise DataUnavailable("Savings data has not been loaded yet.")
        return records

    def _totals_for(self, records: Sequence[DeviceSavingRecord]) -> Dict[int, SavingsTotal]:
        if records is not self._snapshot:
            totals = _totals_by_device(records)
            self._snapshot = records
            self._totals = totals
        return self._totals


def _cancel_all(tasks: Iterable[asyncio.Future[SavingsTotal]]) -> None:
    for task in tasks:
        task.cancel()


@lru_cache
def build_default_aggregator() -> SavingsAggregator:
    """Factory that wires the aggregator to the default CSV store."""
    return SavingsAggregator(provider=build_default_store())
