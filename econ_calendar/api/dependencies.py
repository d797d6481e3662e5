"""Service wiring shared by the HTTP routes and the command-line entrypoint."""

from __future__ import annotations

from datetime import timedelta

import httpx
from fastapi import Depends, Request

from ..core.clock import Clock
from ..core.config import CalendarSettings
from ..db.session import Database
from ..providers.calendar import Mql5Source, MyFxBookSource
from ..services.gateway import EventLookupGateway
from ..services.metadata import DirectionInferenceEngine
from ..services.refresh import CalendarRefresher
from ..services.store import EventStore


def build_store(database: Database, settings: CalendarSettings, clock: Clock) -> EventStore:
    return EventStore(database, clock=clock, batch_size=settings.store_batch_size)


def build_refresher(
    store: EventStore,
    client: httpx.AsyncClient,
    settings: CalendarSettings,
    clock: Clock,
) -> CalendarRefresher:
    """MyFXBook first, MQL5 as fallback; the direction engine gets fresh caches per call."""

    mql5 = Mql5Source(client, settings)
    engine = DirectionInferenceEngine(
        store,
        mql5.fetch_detail_page,
        clock=clock,
        group_size=settings.detail_group_size,
        group_pause=settings.detail_group_pause_seconds,
        fetch_timeout=settings.detail_timeout_seconds,
    )
    return CalendarRefresher(
        [MyFxBookSource(client, settings), mql5],
        store,
        engine,
        clock=clock,
        max_attempts=settings.refresh_max_attempts,
        major_currencies=settings.major_currencies,
        min_refresh_interval=timedelta(hours=settings.auto_refresh_min_interval_hours),
    )


def build_gateway(
    store: EventStore,
    client: httpx.AsyncClient,
    settings: CalendarSettings,
    clock: Clock,
) -> EventLookupGateway:
    return EventLookupGateway(
        store,
        Mql5Source(client, settings),
        clock=clock,
        freshness=timedelta(seconds=settings.freshness_seconds),
    )


def get_app_settings(request: Request) -> CalendarSettings:
    return request.app.state.settings


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_event_store(request: Request) -> EventStore:
    return build_store(request.app.state.database, get_app_settings(request), get_clock(request))


def get_refresher(request: Request, store: EventStore = Depends(get_event_store)) -> CalendarRefresher:
    return build_refresher(store, get_http_client(request), get_app_settings(request), get_clock(request))


def get_lookup_gateway(request: Request, store: EventStore = Depends(get_event_store)) -> EventLookupGateway:
    return build_gateway(store, get_http_client(request), get_app_settings(request), get_clock(request))


__all__ = [
    "build_gateway",
    "build_refresher",
    "build_store",
    "get_app_settings",
    "get_clock",
    "get_event_store",
    "get_http_client",
    "get_lookup_gateway",
    "get_refresher",
]
