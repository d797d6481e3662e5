"""Calendar refresh orchestration: source fallback, targeted waits, persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Sequence

from sqlalchemy.exc import SQLAlchemyError

from ..core.clock import Clock, SystemClock, as_utc
from ..core.config import DEFAULT_MAJOR_CURRENCIES
from ..domain import EconomicEventRecord, RawEventFields, RequestedEvent
from ..parsers import Mql5Parser, MyFxBookParser, ParseError
from ..providers.calendar import CalendarSource
from ..providers.http import SourceFetchError
from .metadata import DirectionInferenceEngine
from .normalizer import normalize
from .store import EventStore

logger = logging.getLogger(__name__)


class AllSourcesFailedError(RuntimeError):
    """Every configured calendar source failed for one fetch."""

    def __init__(self, failures: Sequence[SourceFetchError]):
        self.failures = list(failures)
        causes = "; ".join(str(failure) for failure in self.failures) or "no sources configured"
        super().__init__(f"All calendar sources failed: {causes}")


@dataclass
class ProcessResult:
    parsed_total: int
    existing: int
    upserted: int
    events: list[EconomicEventRecord]

    @property
    def inserted(self) -> int:
        return max(0, len(self.events) - self.existing)

    @property
    def message(self) -> str:
        if not self.parsed_total:
            return "No events found in HTML content"
        return (
            f"Processed {self.parsed_total} events; upserted={self.upserted}, "
            f"existing={self.existing}, inserted={self.inserted}"
        )


@dataclass
class RefreshResult:
    target_date: date
    currencies: list[str]
    requested: list[RequestedEvent]
    source: str | None = None
    target_events: list[EconomicEventRecord] = field(default_factory=list)
    found_events: list[EconomicEventRecord] = field(default_factory=list)
    updated_count: int = 0
    attempts: int = 0
    changed: bool = False

    @property
    def message(self) -> str:
        summary = f"Updated {self.updated_count} events for {self.target_date.isoformat()}."
        if not self.requested:
            return summary
        return f"{summary} Found {len(self.found_events)}/{len(self.requested)} requested events."


@dataclass
class BootstrapResult:
    skipped: bool
    reason: str
    refresh: RefreshResult | None = None

    @property
    def updated_count(self) -> int:
        return self.refresh.updated_count if self.refresh else 0


def _same_value(left: str | None, right: str | None) -> bool:
    return (left or None) == (right or None)


class CalendarRefresher:
    def __init__(
        self,
        sources: Sequence[CalendarSource],
        store: EventStore,
        engine: DirectionInferenceEngine | None = None,
        *,
        clock: Clock | None = None,
        max_attempts: int = 5,
        major_currencies: Sequence[str] = DEFAULT_MAJOR_CURRENCIES,
        min_refresh_interval: timedelta = timedelta(hours=12),
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._sources = list(sources)
        self._store = store
        self._engine = engine
        self._clock = clock or SystemClock()
        self._max_attempts = max_attempts
        self._major_currencies = [currency.upper() for currency in major_currencies]
        self._min_refresh_interval = min_refresh_interval

    async def _prepare(self, raw: Iterable[RawEventFields]) -> list[EconomicEventRecord]:
        records = [normalize(item) for item in raw]
        if self._engine is not None and records:
            records = await self._engine.enrich(records)
        return records

    async def fetch(self, target: date) -> tuple[str, list[EconomicEventRecord]]:
        """Fetch the week around ``target`` from the first source that answers."""

        failures: list[SourceFetchError] = []
        for source in self._sources:
            try:
                raw = await source.fetch_week(target)
            except SourceFetchError as exc:
                logger.warning("Calendar source %s failed: %s", source.name, exc)
                failures.append(exc)
                continue
            logger.info("Fetched %d events from %s", len(raw), source.name)
            return source.name, await self._prepare(raw)
        raise AllSourcesFailedError(failures)

    @staticmethod
    def select(
        records: Iterable[EconomicEventRecord], target: date, currencies: Iterable[str]
    ) -> list[EconomicEventRecord]:
        wanted = {currency.upper() for currency in currencies}
        return [record for record in records if record.event_date == target and record.currency in wanted]

    async def refresh(
        self,
        target: date,
        currencies: Sequence[str],
        requested: Sequence[RequestedEvent] | None = None,
    ) -> RefreshResult:
        """Refresh one day, waiting on requested events until a value moves.

        Without requested events a single fetch is made. With them, the fetch
        repeats after ``attempt`` seconds until any requested event shows a new
        actual value, none of them is present, or ``max_attempts`` fetches have
        been made. Whatever was collected is persisted either way.
        """

        result = RefreshResult(
            target_date=target,
            currencies=[currency.upper() for currency in currencies],
            requested=list(requested or []),
        )
        wanted = {event.external_id: event for event in result.requested}

        while True:
            try:
                source, records = await self.fetch(target)
            except AllSourcesFailedError:
                if result.attempts == 0:
                    raise
                logger.warning("Stopping targeted refresh after %d attempt(s): sources failed", result.attempts)
                break
            result.attempts += 1
            result.source = source
            result.target_events = self.select(records, target, result.currencies)
            if not wanted:
                break

            result.found_events = [event for event in result.target_events if event.external_id in wanted]
            logger.info(
                "Found %d/%d requested events in %d events (attempt %d)",
                len(result.found_events),
                len(wanted),
                len(result.target_events),
                result.attempts,
            )
            result.changed = any(
                not _same_value(event.actual_value, wanted[event.external_id].actual) for event in result.found_events
            )
            if result.changed or not result.found_events or result.attempts >= self._max_attempts:
                break
            await self._clock.sleep(result.attempts)

        stored = await self._store.upsert(result.target_events)
        result.updated_count = stored.upserted
        logger.info(
            "Refresh for %s finished after %d attempt(s): %d events stored",
            target.isoformat(),
            result.attempts,
            result.updated_count,
        )
        return result

    async def process_html(self, html: str) -> ProcessResult:
        """Parse an uploaded calendar page and store its major-currency events."""

        raw: list[RawEventFields] = []
        for parser in (MyFxBookParser(), Mql5Parser()):
            try:
                raw = parser.parse(html)
            except ParseError:
                continue
            if raw:
                break
        records = await self._prepare(raw)
        major = [record for record in records if record.currency in self._major_currencies]
        logger.info("Filtered %d parsed events to %d major currency events", len(records), len(major))
        if not major:
            return ProcessResult(parsed_total=len(records), existing=0, upserted=0, events=[])
        stored = await self._store.upsert(major)
        return ProcessResult(parsed_total=len(records), existing=stored.existing, upserted=stored.upserted, events=major)

    async def should_skip(self) -> tuple[bool, str]:
        now = self._clock.now()
        if now.weekday() >= 5:
            return True, f"Weekend ({now:%A}) - no events"
        try:
            if await self._store.count_on(now.date()) > 0:
                return False, "Events exist today - refreshing for updates"
            last = await self._store.last_refreshed_at()
        except SQLAlchemyError:
            logger.warning("Skip check failed; refreshing anyway", exc_info=True)
            return False, "Error checking events, proceeding anyway"
        if last is None:
            return False, "No previous fetch found - need initial data"
        age = now - as_utc(last)
        hours = age.total_seconds() / 3600
        if age < self._min_refresh_interval:
            return True, f"No events today and last fetch was {hours:.1f}h ago"
        return False, f"No events today but last fetch was {hours:.1f}h ago"

    async def bootstrap(self) -> BootstrapResult:
        """Timer-driven refresh of today's events for the major currencies."""

        skip, reason = await self.should_skip()
        if skip:
            logger.info("Skipping scheduled refresh: %s", reason)
            return BootstrapResult(skipped=True, reason=reason)
        logger.info("Proceeding with scheduled refresh: %s", reason)
        refreshed = await self.refresh(self._clock.now().date(), self._major_currencies)
        return BootstrapResult(skipped=False, reason=reason, refresh=refreshed)


__all__ = [
    "AllSourcesFailedError",
    "BootstrapResult",
    "CalendarRefresher",
    "ProcessResult",
    "RefreshResult",
]
