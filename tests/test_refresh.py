from datetime import date, datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from econ_calendar.core.config import CalendarSettings
from econ_calendar.domain import DataSource, RawEventFields, RequestedEvent
from econ_calendar.providers.calendar import CalendarSource, Mql5Source, MyFxBookSource
from econ_calendar.providers.http import SourceFetchError
from econ_calendar.services.refresh import AllSourcesFailedError, CalendarRefresher
from econ_calendar.services.store import EventStore, StoreResult

TARGET = date(2026, 1, 29)


def _raw(external_id: str, currency: str = "USD", actual: str | None = None, day: date = TARGET) -> RawEventFields:
    return RawEventFields(
        source=DataSource.MQL5,
        currency=currency,
        event_name=f"Event {external_id}",
        time_utc=datetime(day.year, day.month, day.day, 13, 30, tzinfo=timezone.utc),
        actual=actual,
        external_id=external_id,
    )


class StubSource(CalendarSource):
    def __init__(self, name: str, *batches: list[RawEventFields], error: str | None = None):
        self.name = name
        self.batches = list(batches)
        self.error = error
        self.calls = 0

    async def fetch_week(self, target: date) -> list[RawEventFields]:
        self.calls += 1
        if self.error is not None:
            raise SourceFetchError(self.name, self.error)
        if len(self.batches) > 1:
            return self.batches.pop(0)
        return self.batches[0] if self.batches else []


class FlakySource(StubSource):
    async def fetch_week(self, target: date) -> list[RawEventFields]:
        if self.calls >= 1:
            self.calls += 1
            raise SourceFetchError(self.name, "HTTP 503")
        return await super().fetch_week(target)


class RecordingStore:
    def __init__(self, count_today: int = 0, last_refresh: datetime | None = None, error: Exception | None = None):
        self.upserts: list[list] = []
        self.count_today = count_today
        self.last_refresh = last_refresh
        self.error = error

    async def upsert(self, records):
        self.upserts.append(list(records))
        return StoreResult(existing=0, upserted=len(records))

    async def count_on(self, day: date) -> int:
        if self.error is not None:
            raise self.error
        return self.count_today

    async def last_refreshed_at(self):
        return self.last_refresh


async def test_falls_back_to_second_source(clock):
    primary = StubSource("myfxbook", error="HTTP 403")
    secondary = StubSource("mql5", [_raw("a"), _raw("b")])
    store = RecordingStore()
    refresher = CalendarRefresher([primary, secondary], store, clock=clock)

    result = await refresher.refresh(TARGET, ["usd"])

    assert (primary.calls, secondary.calls) == (1, 1)
    assert result.source == "mql5"
    assert result.updated_count == 2
    assert result.message == "Updated 2 events for 2026-01-29."


async def test_all_sources_failing_names_each_cause(clock):
    store = RecordingStore()
    refresher = CalendarRefresher(
        [StubSource("myfxbook", error="HTTP 403"), StubSource("mql5", error="request timed out")],
        store,
        clock=clock,
    )

    with pytest.raises(AllSourcesFailedError) as excinfo:
        await refresher.refresh(TARGET, ["USD"])

    assert "myfxbook: HTTP 403" in str(excinfo.value)
    assert "mql5: request timed out" in str(excinfo.value)
    assert len(excinfo.value.failures) == 2
    assert store.upserts == []


async def test_refresh_keeps_only_target_day_and_currencies(clock):
    source = StubSource(
        "myfxbook",
        [_raw("a"), _raw("b", currency="EUR"), _raw("c", currency="JPY"), _raw("d", day=date(2026, 1, 30))],
    )
    store = RecordingStore()
    refresher = CalendarRefresher([source], store, clock=clock)

    result = await refresher.refresh(TARGET, ["USD", "eur"])

    assert [event.external_id for event in result.target_events] == ["a", "b"]
    assert [event.external_id for event in store.upserts[0]] == ["a", "b"]


async def test_targeted_refresh_stops_when_actual_changes(clock):
    source = StubSource("mql5", [_raw("nfp")], [_raw("nfp", actual="143K")])
    store = RecordingStore()
    refresher = CalendarRefresher([source], store, clock=clock)

    result = await refresher.refresh(TARGET, ["USD"], [RequestedEvent(external_id="nfp", actual=None)])

    assert result.changed is True
    assert result.attempts == 2
    assert clock.sleeps == [1]
    assert [event.actual_value for event in result.found_events] == ["143K"]
    assert len(store.upserts) == 1
    assert result.message == "Updated 1 events for 2026-01-29. Found 1/1 requested events."


async def test_targeted_refresh_gives_up_after_max_attempts(clock):
    source = StubSource("mql5", [_raw("nfp", actual="143K")])
    store = RecordingStore()
    refresher = CalendarRefresher([source], store, clock=clock, max_attempts=3)

    result = await refresher.refresh(TARGET, ["USD"], [RequestedEvent(external_id="nfp", actual="143K")])

    assert result.changed is False
    assert result.attempts == 3
    assert clock.sleeps == [1, 2]
    assert len(store.upserts) == 1


async def test_targeted_refresh_stops_when_nothing_requested_is_present(clock):
    source = StubSource("mql5", [_raw("other")])
    store = RecordingStore()
    refresher = CalendarRefresher([source], store, clock=clock)

    result = await refresher.refresh(TARGET, ["USD"], [RequestedEvent(external_id="nfp")])

    assert result.attempts == 1
    assert result.found_events == []
    assert clock.sleeps == []
    assert result.message.endswith("Found 0/1 requested events.")
    assert len(store.upserts) == 1


async def test_targeted_refresh_persists_when_a_later_fetch_fails(clock):
    source = FlakySource("mql5", [_raw("nfp")])
    store = RecordingStore()
    refresher = CalendarRefresher([source], store, clock=clock)

    result = await refresher.refresh(TARGET, ["USD"], [RequestedEvent(external_id="nfp")])

    assert result.attempts == 1
    assert [event.external_id for event in store.upserts[0]] == ["nfp"]


async def test_bootstrap_skips_weekends(clock):
    clock.current = datetime(2026, 1, 31, 9, 0, tzinfo=timezone.utc)
    source = StubSource("mql5", [_raw("a")])
    refresher = CalendarRefresher([source], RecordingStore(), clock=clock)

    result = await refresher.bootstrap()

    assert result.skipped is True
    assert result.reason == "Weekend (Saturday) - no events"
    assert source.calls == 0


async def test_bootstrap_refreshes_when_today_has_events(clock):
    source = StubSource("mql5", [_raw("a"), _raw("b", currency="NZD")])
    store = RecordingStore(count_today=4, last_refresh=clock.now() - timedelta(minutes=10))
    refresher = CalendarRefresher([source], store, clock=clock)

    result = await refresher.bootstrap()

    assert result.skipped is False
    assert result.reason == "Events exist today - refreshing for updates"
    assert result.updated_count == 1


async def test_bootstrap_skips_recent_empty_fetch(clock):
    store = RecordingStore(last_refresh=(clock.now() - timedelta(hours=3)).replace(tzinfo=None))
    refresher = CalendarRefresher([StubSource("mql5", [_raw("a")])], store, clock=clock)

    result = await refresher.bootstrap()

    assert result.skipped is True
    assert result.reason == "No events today and last fetch was 3.0h ago"
    assert result.updated_count == 0


async def test_bootstrap_refreshes_after_interval_or_without_history(clock):
    old = CalendarRefresher(
        [StubSource("mql5", [_raw("a")])], RecordingStore(last_refresh=clock.now() - timedelta(hours=13)), clock=clock
    )
    empty = CalendarRefresher([StubSource("mql5", [_raw("a")])], RecordingStore(), clock=clock)

    stale = await old.bootstrap()
    first = await empty.bootstrap()

    assert stale.skipped is False
    assert stale.reason == "No events today but last fetch was 13.0h ago"
    assert first.skipped is False
    assert first.reason == "No previous fetch found - need initial data"


async def test_bootstrap_proceeds_when_skip_check_fails(clock):
    store = RecordingStore(error=OperationalError("SELECT", {}, Exception("connection refused")))
    refresher = CalendarRefresher([StubSource("mql5", [_raw("a")])], store, clock=clock)

    skip, reason = await refresher.should_skip()

    assert skip is False
    assert reason == "Error checking events, proceeding anyway"


async def test_process_html_is_idempotent(database, clock, myfxbook_table_html):
    await database.create_all()
    store = EventStore(database, clock=clock)
    refresher = CalendarRefresher([], store, clock=clock)

    first = await refresher.process_html(myfxbook_table_html)
    second = await refresher.process_html(myfxbook_table_html)

    assert first.parsed_total == 3
    assert (first.existing, first.inserted, first.upserted) == (0, 3, 3)
    assert (second.existing, second.inserted) == (3, 0)
    assert [event.currency for event in second.events] == ["USD", "EUR", "JPY"]
    assert await store.count() == 3


async def test_process_html_without_events(clock):
    store = RecordingStore()
    refresher = CalendarRefresher([], store, clock=clock)

    result = await refresher.process_html("<html><body><p>Calendar unavailable</p></body></html>")

    assert result.parsed_total == 0
    assert result.message == "No events found in HTML content"
    assert store.upserts == []


async def test_process_html_filters_minor_currencies(clock, mql5_inline_html):
    store = RecordingStore()
    refresher = CalendarRefresher([], store, clock=clock)

    result = await refresher.process_html(mql5_inline_html)

    assert [event.currency for event in result.events] == ["USD"]
    assert [event.external_id for event in store.upserts[0]] == ["mql5_20260129_1330_USD_Nonfarm_Payrolls"]


async def test_unparseable_primary_page_falls_back_to_mql5(clock, mql5_inline_html):
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.host)
        if request.url.host == "www.myfxbook.com":
            return httpx.Response(200, text="<html><body><h1>Just a moment...</h1></body></html>")
        return httpx.Response(200, text=mql5_inline_html)

    settings = CalendarSettings()
    store = RecordingStore()
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        refresher = CalendarRefresher(
            [MyFxBookSource(client, settings), Mql5Source(client, settings)], store, clock=clock
        )
        result = await refresher.refresh(TARGET, ["USD"])

    assert requested == ["www.myfxbook.com", "www.mql5.com"]
    assert result.source == "mql5"
    assert [event.external_id for event in store.upserts[0]] == ["mql5_20260129_1330_USD_Nonfarm_Payrolls"]
