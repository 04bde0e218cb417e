"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.schemas import DeviceResponse, SavingsResponse, TimeChunkResponse
from datastore.csv_store import parse_timestamp
from services.aggregator import SavingsAggregator, build_default_aggregator
from services.clock import Clock, build_default_clock
from services.date_chunks import resolve_resolution, segment
from services.errors import AggregationFailure, DataUnavailable, InvalidRange
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def get_aggregator() -> SavingsAggregator:
    return build_default_aggregator()


def get_clock() -> Clock:
    return build_default_clock()


def _parse_query_instant(value: str, name: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Query parameter {name!r} is not a valid ISO-8601 date: {value!r}.",
        ) from exc


def _resolve_window(
    start_date: Optional[str],
    end_date: Optional[str],
    clock: Clock,
    settings: Settings,
) -> Tuple[datetime, datetime]:
    now = clock()
    start = (
        now - timedelta(days=settings.default_window_days)
        if start_date is None
        else _parse_query_instant(start_date, "startDate")
    )
    end = now if end_date is None else _parse_query_instant(end_date, "endDate")
    return start, end


@router.get(
    "/devices",
    response_model=List[DeviceResponse],
    response_model_exclude_none=True,
    summary="List devices, optionally with whole-history savings totals.",
)
async def list_devices(
    include_savings: bool = Query(False, alias="includeSavings"),
    aggregator: SavingsAggregator = Depends(get_aggregator),
) -> List[DeviceResponse]:
    try:
        summaries = await aggregator.list_devices(include_savings=include_savings)
    except DataUnavailable as exc:
        logger.warning("Device data requested before it was loaded", extra={"reason": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Device data has not been loaded yet. Please retry shortly.",
        ) from exc
    except AggregationFailure as exc:
        logger.exception("Failed to aggregate savings for devices")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching device savings data.",
        ) from exc
    return [DeviceResponse.from_summary(summary) for summary in summaries]


@router.get(
    "/savings/{device_id}",
    response_model=SavingsResponse,
    summary="Fetch savings totals and the raw records inside a date window.",
)
async def get_device_savings(
    device_id: int,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    resolution: Optional[str] = Query(None),
    aggregator: SavingsAggregator = Depends(get_aggregator),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> SavingsResponse:
    start, end = _resolve_window(start_date, end_date, clock, settings)
    resolved = resolve_resolution(resolution)
    try:
        chunks = segment(start, end, resolved)
    except InvalidRange as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    logger.debug(
        "Resolved savings window",
        extra={"device_id": device_id, "resolution": resolved.value, "chunk_count": len(chunks)},
    )

    try:
        window = await aggregator.get_savings_window(device_id, start, end)
    except DataUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Savings data has not been loaded yet. Please retry shortly.",
        ) from exc
    except AggregationFailure as exc:
        logger.exception("Failed to aggregate device savings", extra={"device_id": device_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching device savings data.",
        ) from exc
    return SavingsResponse.from_window(window)


@router.get(
    "/date-chunks",
    response_model=List[TimeChunkResponse],
    summary="Split a date window into calendar-aligned chunks.",
)
async def get_date_chunks(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    resolution: Optional[str] = Query(None),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> List[TimeChunkResponse]:
    start, end = _resolve_window(start_date, end_date, clock, settings)
    try:
        chunks = segment(start, end, resolve_resolution(resolution))
    except InvalidRange as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return [TimeChunkResponse.from_chunk(chunk) for chunk in chunks]


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(request: Request) -> dict[str, str]:
    load_error = getattr(request.app.state, "load_error", None)
    if load_error:
        return {"status": "degraded", "detail": f"Device data failed to load: {load_error}"}
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
