from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from datastore.csv_store import CsvDataStore, build_default_store
from logging_config import configure_logging
from services.aggregator import build_default_aggregator

logger = logging.getLogger(__name__)


async def _load_store(fastapi_app: FastAPI, store: CsvDataStore) -> None:
    try:
        await asyncio.to_thread(store.load)
    except Exception as exc:
        logger.exception("Unable to load device data", extra={"path": str(store.data_dir)})
        fastapi_app.state.load_error = f"{type(exc).__name__}: {exc}"


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncIterator[None]:
    store = build_default_store()
    fastapi_app.state.load_error = None
    loader = None
    if not store.is_loaded:
        # Requests are answered with 503 until the load completes.
        loader = asyncio.create_task(_load_store(fastapi_app, store))
    try:
        yield
    finally:
        if loader is not None:
            loader.cancel()
        build_default_aggregator.cache_clear()
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Device Savings API",
        description="Carbon and fuel savings per device, sliced into calendar-aligned windows.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
