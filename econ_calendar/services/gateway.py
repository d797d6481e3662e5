"""Single-event lookups served from the store under a freshness window."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError

from ..core.clock import Clock, SystemClock, as_utc
from ..domain import DataSource
from ..models import EconomicEvent
from ..parsers.mql5_event_page import EventPageSnapshot, parse_event_page
from ..providers.http import SourceFetchError
from .store import EventStore

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS = timedelta(minutes=5)


class EventLookupError(RuntimeError):
    """No live data and no stored row for the requested event."""


class EventPageSource(Protocol):
    def event_page_url(self, event_name: str, country: str) -> str | None: ...

    async def fetch_event_page(self, event_name: str, country: str) -> tuple[str, str]: ...


@dataclass
class LookupResult:
    event_name: str
    country: str
    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    cached: bool = False
    stale: bool = False
    cache_age_seconds: int | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "event_name": self.event_name,
            "country": self.country,
            "success": self.success,
            "cached": self.cached,
            "cache_age_seconds": self.cache_age_seconds,
        }
        if self.success:
            payload["data"] = self.data
        else:
            payload["error"] = self.error
        if self.stale:
            payload["stale"] = True
        return payload


@dataclass
class BatchLookupResult:
    results: list[LookupResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded


def _row_payload(row: EconomicEvent, url: str | None) -> dict[str, Any]:
    return {
        "event_name": row.event_name,
        "country": row.country,
        "mql5_url": url,
        "last_release_date": row.event_date.isoformat() if row.event_date else None,
        "actual_value": row.actual_value,
        "forecast_value": row.forecast_value,
        "previous_value": row.previous_value,
        "impact": row.impact,
        "actual_result_type": row.actual_result_type,
        "next_release_date": None,
        "next_forecast": None,
        "days_until_next": None,
        "source": row.data_source,
        "sector": None,
        "fetched_at": row.last_updated.isoformat() if row.last_updated else None,
    }


def _snapshot_payload(
    event_name: str, country: str, url: str, snapshot: EventPageSnapshot, fetched_at: datetime
) -> dict[str, Any]:
    return {
        "event_name": event_name,
        "country": country,
        "mql5_url": url,
        "last_release_date": snapshot.last_release.isoformat() if snapshot.last_release else None,
        "actual_value": snapshot.actual_value,
        "forecast_value": snapshot.forecast_value,
        "previous_value": snapshot.previous_value,
        "impact": snapshot.impact.value if snapshot.impact else None,
        "actual_result_type": snapshot.actual_result_type.value if snapshot.actual_result_type else None,
        "next_release_date": snapshot.next_release.isoformat() if snapshot.next_release else None,
        "next_forecast": snapshot.next_forecast,
        "days_until_next": snapshot.days_until_next,
        "source": snapshot.source,
        "sector": snapshot.sector,
        "fetched_at": fetched_at.isoformat(),
    }


class EventLookupGateway:
    """Serve one event per request with at most one page fetch.

    Rows updated less than ``freshness`` ago are returned as-is. Older or
    missing rows trigger a fetch of the event page; when that fails an old row
    is still served, flagged ``stale``. A successful fetch updates the stored
    row but never inserts one, since new rows only come from calendar refreshes.
    """

    def __init__(
        self,
        store: EventStore,
        pages: EventPageSource,
        *,
        clock: Clock | None = None,
        freshness: timedelta = DEFAULT_FRESHNESS,
    ):
        self._store = store
        self._pages = pages
        self._clock = clock or SystemClock()
        self._freshness = freshness

    async def _cached_row(self, event_name: str, country: str) -> EconomicEvent | None:
        try:
            return await self._store.latest_matching(event_name, country)
        except SQLAlchemyError:
            logger.warning("Cache lookup failed for %s (%s)", event_name, country, exc_info=True)
            return None

    def _age(self, row: EconomicEvent, now: datetime) -> timedelta | None:
        if row.last_updated is None:
            return None
        return now - as_utc(row.last_updated)

    async def lookup(self, event_name: str, country: str) -> LookupResult:
        now = self._clock.now()
        row = await self._cached_row(event_name, country)
        age = self._age(row, now) if row is not None else None

        if row is not None and age is not None and age < self._freshness:
            logger.info("Serving fresh cached data for %s (%s)", event_name, country)
            return LookupResult(
                event_name=event_name,
                country=country,
                success=True,
                data=_row_payload(row, self._pages.event_page_url(event_name, country)),
                cached=True,
                cache_age_seconds=round(age.total_seconds()),
            )

        logger.info("Cache miss or stale for %s (%s); fetching event page", event_name, country)
        try:
            url, snapshot = await self._fetch_snapshot(event_name, country, now)
        except SourceFetchError as exc:
            if row is None:
                raise EventLookupError(f'Could not fetch event data for "{event_name}" in "{country}"') from exc
            logger.warning("Event page fetch failed for %s; serving stale row: %s", event_name, exc)
            return LookupResult(
                event_name=event_name,
                country=country,
                success=True,
                data=_row_payload(row, self._pages.event_page_url(event_name, country)),
                cached=True,
                stale=True,
                cache_age_seconds=round(age.total_seconds()) if age is not None else None,
            )

        if row is not None:
            await self._update_row(row, snapshot, now)
        else:
            logger.info("No stored row for %s (%s); not inserting", event_name, country)
        return LookupResult(
            event_name=event_name,
            country=country,
            success=True,
            data=_snapshot_payload(event_name, country, url, snapshot, now),
            cached=False,
            cache_age_seconds=0,
        )

    async def _fetch_snapshot(
        self, event_name: str, country: str, now: datetime
    ) -> tuple[str, EventPageSnapshot]:
        """Fetch and parse the event page; an unreadable page counts as a failed fetch."""

        url, html = await self._pages.fetch_event_page(event_name, country)
        try:
            return url, parse_event_page(html, now=now)
        except Exception as exc:  # noqa: BLE001 - markup drift is reported like a failed fetch
            raise SourceFetchError("mql5", f"unreadable event page {url}: {exc}") from exc

    async def _update_row(self, row: EconomicEvent, snapshot: EventPageSnapshot, now: datetime) -> None:
        values: dict[str, Any] = {"last_updated": now, "data_source": DataSource.MQL5.value}
        for column, value in (
            ("actual_value", snapshot.actual_value),
            ("forecast_value", snapshot.forecast_value),
            ("previous_value", snapshot.previous_value),
            ("impact", snapshot.impact.value if snapshot.impact else None),
            ("actual_result_type", snapshot.actual_result_type.value if snapshot.actual_result_type else None),
        ):
            if value is not None:
                values[column] = value
        try:
            await self._store.update_fields(row.id, values)
        except SQLAlchemyError:
            logger.exception("Failed to update event %s with page data", row.id)
        else:
            logger.info("Updated event %s with page data", row.id)

    async def lookup_safe(self, event_name: str, country: str) -> LookupResult:
        """``lookup`` that reports failure on the result instead of raising."""

        try:
            return await self.lookup(event_name, country)
        except EventLookupError as exc:
            return LookupResult(event_name=event_name, country=country, success=False, error=str(exc))
        except Exception:  # noqa: BLE001 - one event never fails the whole batch
            logger.exception("Lookup failed for %s (%s)", event_name, country)
            return LookupResult(
                event_name=event_name,
                country=country,
                success=False,
                error=f'Unexpected error while fetching "{event_name}" in "{country}"',
            )

    async def lookup_many(self, requests: Sequence[tuple[str, str]]) -> BatchLookupResult:
        results = await asyncio.gather(*(self.lookup_safe(name, country) for name, country in requests))
        batch = BatchLookupResult(results=list(results))
        logger.info("Batch lookup complete: %d succeeded, %d failed", batch.succeeded, batch.failed)
        return batch


__all__ = [
    "BatchLookupResult",
    "DEFAULT_FRESHNESS",
    "EventLookupError",
    "EventLookupGateway",
    "EventPageSource",
    "LookupResult",
]
