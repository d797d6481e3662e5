from datetime import date, datetime, timezone

import pytest

from econ_calendar.domain import DataSource, EconomicEventRecord, Impact
from econ_calendar.providers.http import SourceFetchError
from econ_calendar.services.gateway import EventLookupError, EventLookupGateway
from econ_calendar.services.store import EventStore


class StubPages:
    def __init__(
        self,
        html: str,
        failing: set[str] | None = None,
        overrides: dict[str, str] | None = None,
        crashing: set[str] | None = None,
    ):
        self.html = html
        self.failing = failing or set()
        self.overrides = overrides or {}
        self.crashing = crashing or set()
        self.calls: list[tuple[str, str]] = []

    def event_page_url(self, event_name: str, country: str) -> str:
        slug = event_name.lower().replace(" ", "-")
        return f"https://www.mql5.com/en/economic-calendar/{country.lower().replace(' ', '-')}/{slug}"

    async def fetch_event_page(self, event_name: str, country: str) -> tuple[str, str]:
        self.calls.append((event_name, country))
        if event_name in self.failing:
            raise SourceFetchError("mql5", "HTTP 503")
        if event_name in self.crashing:
            raise RuntimeError("connection pool closed")
        return self.event_page_url(event_name, country), self.overrides.get(event_name, self.html)


async def _seeded_store(database, clock) -> EventStore:
    await database.create_all()
    store = EventStore(database, clock=clock)
    await store.upsert(
        [
            EconomicEventRecord(
                external_id="usd-unemployment",
                currency="USD",
                event_name="Unemployment Rate",
                impact=Impact.HIGH,
                event_date=date(2026, 1, 29),
                time_utc=datetime(2026, 1, 29, 13, 30, tzinfo=timezone.utc),
                actual_value="4.3%",
                forecast_value="4.5%",
                previous_value="4.4%",
                country="United States",
                data_source=DataSource.MYFXBOOK,
            )
        ]
    )
    return store


async def test_fresh_row_is_served_without_fetching(database, clock, event_page_html):
    store = await _seeded_store(database, clock)
    pages = StubPages(event_page_html)
    gateway = EventLookupGateway(store, pages, clock=clock)
    clock.advance(minutes=4, seconds=59)

    result = await gateway.lookup("Unemployment Rate", "United States")

    assert pages.calls == []
    assert result.cached is True
    assert result.cache_age_seconds == 299
    assert result.data["actual_value"] == "4.3%"
    assert result.data["impact"] == "High"
    assert result.data["mql5_url"].endswith("/united-states/unemployment-rate")


async def test_stale_row_is_refetched_and_updated(database, clock, event_page_html):
    store = await _seeded_store(database, clock)
    pages = StubPages(event_page_html)
    gateway = EventLookupGateway(store, pages, clock=clock)
    clock.advance(minutes=5, seconds=1)

    result = await gateway.lookup("unemployment", "united states")

    assert len(pages.calls) == 1
    assert (result.cached, result.cache_age_seconds) == (False, 0)
    assert result.data["impact"] == "Medium"
    assert result.data["actual_result_type"] == "good"
    assert result.data["next_forecast"] == "4.4%"
    assert result.data["days_until_next"] == 28
    assert result.data["sector"] == "Labor Market"
    [row] = await store.get_many(["usd-unemployment"])
    assert row.impact == "Medium"
    assert row.data_source == "mql5"
    assert row.last_updated.replace(tzinfo=timezone.utc) == clock.now()


async def test_row_at_exactly_the_window_is_stale(database, clock, event_page_html):
    store = await _seeded_store(database, clock)
    pages = StubPages(event_page_html)
    gateway = EventLookupGateway(store, pages, clock=clock)
    clock.advance(minutes=5)

    result = await gateway.lookup("Unemployment Rate", "United States")

    assert len(pages.calls) == 1
    assert result.cached is False


async def test_failed_fetch_serves_stale_row(database, clock, event_page_html):
    store = await _seeded_store(database, clock)
    gateway = EventLookupGateway(store, StubPages(event_page_html, {"Unemployment Rate"}), clock=clock)
    clock.advance(minutes=5, seconds=1)

    result = await gateway.lookup("Unemployment Rate", "United States")

    assert result.success is True
    assert (result.cached, result.stale) == (True, True)
    assert result.cache_age_seconds == 301
    assert result.as_dict()["stale"] is True
    [row] = await store.get_many(["usd-unemployment"])
    assert row.impact == "High"


async def test_missing_row_and_failed_fetch_raise(database, clock, event_page_html):
    store = await _seeded_store(database, clock)
    gateway = EventLookupGateway(store, StubPages(event_page_html, {"Retail Sales"}), clock=clock)

    with pytest.raises(EventLookupError, match="Retail Sales"):
        await gateway.lookup("Retail Sales", "United States")


async def test_fetch_without_stored_row_does_not_insert(database, clock, event_page_html):
    store = await _seeded_store(database, clock)
    gateway = EventLookupGateway(store, StubPages(event_page_html), clock=clock)

    result = await gateway.lookup("Retail Sales", "United States")

    assert result.success is True
    assert result.cached is False
    assert result.data["event_name"] == "Retail Sales"
    assert "stale" not in result.as_dict()
    assert await store.count() == 1


async def test_batch_reports_partial_failure(database, clock, event_page_html):
    store = await _seeded_store(database, clock)
    gateway = EventLookupGateway(store, StubPages(event_page_html, {"Retail Sales"}), clock=clock)

    batch = await gateway.lookup_many([("Unemployment Rate", "United States"), ("Retail Sales", "Germany")])

    assert (batch.succeeded, batch.failed) == (1, 1)
    failed = batch.results[1].as_dict()
    assert failed["success"] is False
    assert "Retail Sales" in failed["error"]


MALFORMED_PAGE = """
<span id="actualValueDate" data-date="99999999999999999999"></span>
<td class="event-table__actual green">4.1%</td>
"""


async def test_unreadable_page_serves_stale_row(database, clock, event_page_html):
    store = await _seeded_store(database, clock)
    pages = StubPages(event_page_html, overrides={"Unemployment Rate": MALFORMED_PAGE})
    gateway = EventLookupGateway(store, pages, clock=clock)
    clock.advance(minutes=6)

    result = await gateway.lookup("Unemployment Rate", "United States")

    assert result.success is True
    assert (result.cached, result.stale) == (True, True)
    assert result.data["actual_value"] == "4.3%"
    [row] = await store.get_many(["usd-unemployment"])
    assert row.impact == "High"


async def test_batch_isolates_unreadable_and_crashing_lookups(database, clock, event_page_html):
    store = await _seeded_store(database, clock)
    pages = StubPages(
        event_page_html,
        overrides={"Unemployment Rate": MALFORMED_PAGE, "Retail Sales": MALFORMED_PAGE},
        crashing={"Trade Balance"},
    )
    gateway = EventLookupGateway(store, pages, clock=clock)
    clock.advance(minutes=6)

    batch = await gateway.lookup_many(
        [
            ("Unemployment Rate", "United States"),
            ("Retail Sales", "Germany"),
            ("Trade Balance", "Japan"),
        ]
    )

    assert (batch.succeeded, batch.failed) == (1, 2)
    stale, unreadable, crashed = (result.as_dict() for result in batch.results)
    assert stale["stale"] is True
    assert unreadable["error"] == 'Could not fetch event data for "Retail Sales" in "Germany"'
    assert crashed["error"] == 'Unexpected error while fetching "Trade Balance" in "Japan"'
