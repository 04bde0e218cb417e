"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class TimeChunk:
    """A closed sub-interval ``[start, end]`` produced by the range segmenter."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True, slots=True)
class Device:
    id: int
    name: str
    timezone: str


@dataclass(frozen=True, slots=True)
class DeviceSavingRecord:
    """A single carbon/fuel saving measurement attributed to a device."""

    device_id: int
    timestamp: datetime
    carbon_saved: float
    fuel_saved: float
    # Device-local wall clock, kept for display only.
    device_timestamp: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class SavingsTotal:
    total_carbon: float = 0.0
    total_diesel: float = 0.0


@dataclass(frozen=True, slots=True)
class DeviceSummary:
    """A device, optionally projected with its whole-history savings."""

    device: Device
    savings: Optional[SavingsTotal] = None


@dataclass(frozen=True, slots=True)
class SavingsWindow:
    """Whole-history total plus the records that fall inside a window."""

    total: SavingsTotal
    records: Tuple[DeviceSavingRecord, ...] = field(default_factory=tuple)
