from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import router
from app.realtime import router as realtime_router
from datastore.telemetry_db import build_default_store
from logging_config import configure_logging
from services.ingest import build_default_ingest
from services.query import build_default_query
from services.registry import build_default_registry


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    store = build_default_store()
    registry = build_default_registry()
    try:
        yield
    finally:
        await registry.close_all()
        store.dispose()
        build_default_ingest.cache_clear()
        build_default_query.cache_clear()
        build_default_registry.cache_clear()
        build_default_store.cache_clear()


async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Radio Telemetry Collector",
        description="Stores sensor readings relayed by base stations and streams them live.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.include_router(router)
    app.include_router(realtime_router)
    return app

app = create_app()
