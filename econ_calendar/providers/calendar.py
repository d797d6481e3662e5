"""Weekly calendar sources and the MQL5 per-event page client."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, timedelta

import httpx

from ..core.config import CalendarSettings
from ..domain import RawEventFields
from ..parsers import Mql5Parser, MyFxBookParser, ParseError
from .http import SourceFetchError, fetch_html
from .slugs import build_event_page_url

logger = logging.getLogger(__name__)


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


class CalendarSource(ABC):
    """A site that publishes a week of economic events on one page."""

    name: str

    @abstractmethod
    async def fetch_week(self, target: date) -> list[RawEventFields]:
        """Fetch and parse the week containing ``target``.

        Raises ``SourceFetchError`` for network failures and for pages that
        match no known layout.
        """


class MyFxBookSource(CalendarSource):
    name = "myfxbook"

    def __init__(self, client: httpx.AsyncClient, settings: CalendarSettings):
        self._client = client
        self._settings = settings
        self._parser = MyFxBookParser()

    async def fetch_week(self, target: date) -> list[RawEventFields]:
        # The page always shows the current week; there is no date parameter.
        html = await fetch_html(
            self._client,
            self._settings.myfxbook_url,
            source=self.name,
            timeout=self._settings.calendar_timeout_seconds,
            scraper_api_key=self._settings.scraper_api_key,
            scraper_api_url=self._settings.scraper_api_url,
            proxy_timeout=self._settings.proxy_timeout_seconds,
        )
        try:
            return self._parser.parse(html)
        except ParseError as exc:
            raise SourceFetchError(self.name, str(exc)) from exc


class Mql5Source(CalendarSource):
    name = "mql5"

    def __init__(self, client: httpx.AsyncClient, settings: CalendarSettings):
        self._client = client
        self._settings = settings
        self._parser = Mql5Parser()

    def week_url(self, target: date) -> str:
        return f"{self._settings.mql5_calendar_url}?date={week_start(target).isoformat()}"

    async def fetch_week(self, target: date) -> list[RawEventFields]:
        html = await fetch_html(
            self._client,
            self.week_url(target),
            source=self.name,
            timeout=self._settings.calendar_timeout_seconds,
        )
        try:
            return self._parser.parse(html)
        except ParseError as exc:
            raise SourceFetchError(self.name, str(exc)) from exc

    async def fetch_detail_page(self, path: str) -> str:
        """Fetch an event page by the site-relative path found on the weekly grid."""

        url = path if path.startswith("http") else f"{self._settings.mql5_base_url.rstrip('/')}{path}"
        return await fetch_html(
            self._client,
            url,
            source=self.name,
            timeout=self._settings.detail_timeout_seconds,
        )

    def event_page_url(self, event_name: str, country: str) -> str | None:
        return build_event_page_url(event_name, country, self._settings.mql5_base_url)

    async def fetch_event_page(self, event_name: str, country: str) -> tuple[str, str]:
        url = self.event_page_url(event_name, country)
        if url is None:
            raise SourceFetchError(self.name, f"no page known for {event_name!r} in {country!r}")
        html = await fetch_html(
            self._client,
            url,
            source=self.name,
            timeout=self._settings.lookup_timeout_seconds,
        )
        return url, html


__all__ = ["CalendarSource", "Mql5Source", "MyFxBookSource", "week_start"]
