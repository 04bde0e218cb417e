"""Calendar-aligned segmentation of time ranges.

A range ``[start, end]`` is split into day, week (Monday to Sunday) or month
chunks computed in UTC. Interior chunks cover whole units, running from
00:00:00.000 on the unit's first day to 23:59:59.999 on its last day. The
first and last chunks are clipped to the requested ``start`` and ``end``.
A range that stays inside one unit comes back as a single, unclamped chunk.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from models.records import DeviceSavingRecord, TimeChunk
from services.errors import InvalidRange

# Chunks end one tick before the next unit starts.
TICK = timedelta(milliseconds=1)


class Resolution(str, Enum):
    """Calendar unit used to align interior chunk boundaries."""

    day = "day"
    week = "week"
    month = "month"


DEFAULT_RESOLUTION = Resolution.month


def resolve_resolution(value: Optional[str]) -> Resolution:
    """Map a user-supplied resolution onto a supported one.

    Missing or unrecognised values fall back to ``DEFAULT_RESOLUTION`` rather
    than failing, so callers can pass query parameters straight through.
    """
    if value is None:
        return DEFAULT_RESOLUTION
    candidate = value.strip().lower()
    try:
        return Resolution(candidate)
    except ValueError:
        return DEFAULT_RESOLUTION


def _start_of_day(instant: datetime) -> datetime:
    return instant.replace(hour=0, minute=0, second=0, microsecond=0)


def _start_of_week(instant: datetime) -> datetime:
    return _start_of_day(instant) - timedelta(days=instant.weekday())


def _start_of_month(instant: datetime) -> datetime:
    return _start_of_day(instant).replace(day=1)


def _next_day(unit_start: datetime) -> datetime:
    return unit_start + timedelta(days=1)


def _next_week(unit_start: datetime) -> datetime:
    return unit_start + timedelta(days=7)


def _next_month(unit_start: datetime) -> datetime:
    if unit_start.month == 12:
        return unit_start.replace(year=unit_start.year + 1, month=1)
    return unit_start.replace(month=unit_start.month + 1)


_UNITS: Dict[Resolution, tuple[Callable[[datetime], datetime], Callable[[datetime], datetime]]] = {
    Resolution.day: (_start_of_day, _next_day),
    Resolution.week: (_start_of_week, _next_week),
    Resolution.month: (_start_of_month, _next_month),
}


def to_tick(instant: datetime) -> datetime:
    """Normalise ``instant`` to naive UTC at millisecond precision."""
    if instant.tzinfo is not None:
        instant = instant.astimezone(timezone.utc).replace(tzinfo=None)
    return instant.replace(microsecond=instant.microsecond // 1000 * 1000)


def segment(start: datetime, end: datetime, resolution: Resolution | str) -> List[TimeChunk]:
    """Split ``[start, end]`` into ordered, contiguous calendar chunks.

    Naive datetimes are taken to be UTC; aware ones are converted to naive
    UTC. Both bounds are truncated to whole milliseconds first, so every
    instant of the range falls inside exactly one chunk. Raises
    ``InvalidRange`` when ``start`` is after ``end``.
    """
    start = to_tick(start)
    end = to_tick(end)
    if start > end:
        raise InvalidRange(
            f"Range start {start.isoformat()} is after range end {end.isoformat()}."
        )

    start_of_unit, next_unit = _UNITS[Resolution(resolution)]
    first_unit = start_of_unit(start)
    last_unit = start_of_unit(end)

    if first_unit == last_unit:
        return [TimeChunk(start=start, end=end)]

    chunks = [TimeChunk(start=start, end=next_unit(first_unit) - TICK)]
    cursor = next_unit(first_unit)
    while cursor < last_unit:
        following = next_unit(cursor)
        chunks.append(TimeChunk(start=cursor, end=following - TICK))
        cursor = following
    chunks.append(TimeChunk(start=last_unit, end=end))
    return chunks


def records_in_range(
    records: Iterable[DeviceSavingRecord],
    start: datetime,
    end: datetime,
) -> List[DeviceSavingRecord]:
    """Return the records whose timestamp lies in ``[start, end]`` inclusive."""
    window = TimeChunk(start=to_tick(start), end=to_tick(end))
    return [record for record in records if window.contains(to_tick(record.timestamp))]
