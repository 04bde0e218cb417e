"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import DeviceSavingRecord, DeviceSummary, SavingsWindow, TimeChunk


class DeviceResponse(BaseModel):
    """A device, extended with savings totals when they were requested."""

    id: int
    name: str
    timezone: str
    carbon: Optional[float] = Field(default=None, description="Whole-history carbon saved.")
    diesel: Optional[float] = Field(default=None, description="Whole-history fuel saved.")

    @classmethod
    def from_summary(cls, summary: DeviceSummary) -> DeviceResponse:
        device = summary.device
        response = cls(id=device.id, name=device.name, timezone=device.timezone)
        if summary.savings is not None:
            response.carbon = summary.savings.total_carbon
            response.diesel = summary.savings.total_diesel
        return response


class SavingRecordResponse(BaseModel):
    """A raw savings record as stored for a device."""

    device_id: int
    timestamp: datetime
    device_timestamp: Optional[datetime] = None
    carbon_saved: float
    fuel_saved: float

    @classmethod
    def from_record(cls, record: DeviceSavingRecord) -> SavingRecordResponse:
        return cls(
            device_id=record.device_id,
            timestamp=record.timestamp,
            device_timestamp=record.device_timestamp,
            carbon_saved=record.carbon_saved,
            fuel_saved=record.fuel_saved,
        )


class SavingsResponse(BaseModel):
    """Whole-history totals plus the records inside the requested window."""

    model_config = ConfigDict(populate_by_name=True)

    total_carbon: float = Field(..., alias="totalCarbon")
    total_diesel: float = Field(..., alias="totalDiesel")
    savings_data: List[SavingRecordResponse] = Field(
        default_factory=list, alias="savingsData"
    )

    @classmethod
    def from_window(cls, window: SavingsWindow) -> SavingsResponse:
        return cls(
            total_carbon=window.total.total_carbon,
            total_diesel=window.total.total_diesel,
            savings_data=[SavingRecordResponse.from_record(record) for record in window.records],
        )


class TimeChunkResponse(BaseModel):
    start: datetime
    end: datetime

    @classmethod
    def from_chunk(cls, chunk: TimeChunk) -> TimeChunkResponse:
        return cls(start=chunk.start, end=chunk.end)
