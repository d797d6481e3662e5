"""FastAPI application entrypoint for the economic calendar service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import api_router
from .core.clock import Clock, SystemClock
from .core.config import CalendarSettings, get_settings
from .core.logging import setup_logging
from .core.telemetry import setup_telemetry
from .db.session import Database
from .schemas import ErrorResponse
from .services.gateway import EventLookupError
from .services.refresh import AllSourcesFailedError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    database: Database = app.state.database
    await database.create_all()
    owns_client = app.state.http_client is None
    if owns_client:
        app.state.http_client = httpx.AsyncClient()
    try:
        yield
    finally:
        if owns_client:
            await app.state.http_client.aclose()
            app.state.http_client = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request payload"


def create_app(
    database: Database | None = None,
    *,
    settings: CalendarSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    database = database or Database(settings.database_url)
    setup_logging()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=_lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.http_client = http_client
    app.state.clock = clock or SystemClock()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def _invalid_payload(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, _validation_message(exc))

    @app.exception_handler(AllSourcesFailedError)
    async def _sources_failed(request: Request, exc: AllSourcesFailedError) -> JSONResponse:
        logger.error("Calendar refresh failed: %s", exc)
        return _error(status.HTTP_502_BAD_GATEWAY, str(exc))

    @app.exception_handler(EventLookupError)
    async def _lookup_failed(request: Request, exc: EventLookupError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    app.include_router(api_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    setup_telemetry(app, settings, engine=database.engine)
    logger.info("Calendar service configuration: %s", settings.dict_for_logging())
    return app


app = create_app()


__all__ = ["app", "create_app"]
