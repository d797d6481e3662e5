"""Impact and direction inference for freshly scraped events.

History in the store is consulted first: prior releases of the same
``(event_name, currency)`` pair tell us the usual impact and whether a
higher reading was reported as good or bad. Pairs without usable history
fall back to the event's MQL5 detail page.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Generic, Hashable, Iterable, Protocol, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from ..core.clock import Clock, SystemClock
from ..domain import CachedDirectionMetadata, EconomicEventRecord, Impact, PageMarkers
from ..parsers.mql5_event_page import extract_page_markers
from .classifier import classify, infer_direction
from .store import HistoryRow

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

PageFetcher = Callable[[str], Awaitable[str]]
PairKey = tuple[str, str]


class HistorySource(Protocol):
    async def history(self, event_names: Sequence[str], currencies: Sequence[str]) -> list[HistoryRow]: ...


@dataclass
class _Entry(Generic[V]):
    value: V
    stored_at: datetime


class MetadataCache(Generic[K, V]):
    """Key/value cache whose entries expire ``ttl`` after being stored.

    A ``ttl`` of ``None`` keeps entries for the lifetime of the cache object.
    """

    def __init__(self, *, ttl: timedelta | None = None, clock: Clock | None = None):
        self._ttl = ttl
        self._clock = clock or SystemClock()
        self._entries: dict[K, _Entry[V]] = {}

    def get(self, key: K) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._ttl is not None and self._clock.now() - entry.stored_at >= self._ttl:
            del self._entries[key]
            return None
        return entry.value

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def set(self, key: K, value: V) -> None:
        self._entries[key] = _Entry(value=value, stored_at=self._clock.now())

    def __len__(self) -> int:
        return len(self._entries)


def merge_history(rows: Iterable[HistoryRow]) -> dict[PairKey, CachedDirectionMetadata]:
    """Fold history rows into one answer per pair.

    The first row seen for a pair wins unless a later row supplies a direction
    the first one lacked. ``Low`` impact rows are ignored since ``Low`` is also
    what failed lookups record.
    """

    merged: dict[PairKey, CachedDirectionMetadata] = {}
    for row in rows:
        impact = Impact.parse(row.impact)
        if impact is None or impact is Impact.LOW:
            continue
        key = (row.event_name, row.currency)
        direction = infer_direction(row.actual_value, row.forecast_value, row.actual_result_type)
        current = merged.get(key)
        if current is None or (direction is not None and current.higher_is_better is None):
            merged[key] = CachedDirectionMetadata(impact=impact, higher_is_better=direction)
    return merged


class DirectionInferenceEngine:
    def __init__(
        self,
        history: HistorySource,
        fetch_page: PageFetcher | None = None,
        *,
        clock: Clock | None = None,
        page_cache: MetadataCache[str, PageMarkers] | None = None,
        direction_cache: MetadataCache[PairKey, CachedDirectionMetadata] | None = None,
        group_size: int = 5,
        group_pause: float = 0.2,
        fetch_timeout: float = 5.0,
    ):
        self._history = history
        self._fetch_page = fetch_page
        self._clock = clock or SystemClock()
        self._page_cache = page_cache if page_cache is not None else MetadataCache(clock=self._clock)
        self._direction_cache = (
            direction_cache if direction_cache is not None else MetadataCache(clock=self._clock)
        )
        self._group_size = max(1, group_size)
        self._group_pause = group_pause
        self._fetch_timeout = fetch_timeout

    async def lookup(self, pairs: Iterable[PairKey]) -> dict[PairKey, CachedDirectionMetadata]:
        """Impact and direction for each pair that has usable history."""

        wanted = set(pairs)
        found: dict[PairKey, CachedDirectionMetadata] = {}
        missing: list[PairKey] = []
        for key in wanted:
            cached = self._direction_cache.get(key)
            if cached is not None:
                found[key] = cached
            else:
                missing.append(key)
        if not missing:
            return found

        try:
            rows = await self._history.history([name for name, _ in missing], [cur for _, cur in missing])
        except SQLAlchemyError:
            logger.warning("History lookup failed; continuing without stored metadata", exc_info=True)
            return found

        merged = merge_history(row for row in rows if (row.event_name, row.currency) in wanted)
        for key, metadata in merged.items():
            self._direction_cache.set(key, metadata)
            found[key] = metadata
        with_direction = sum(1 for item in merged.values() if item.higher_is_better is not None)
        logger.info("History supplied impact for %d pairs (%d with direction)", len(merged), with_direction)
        return found

    async def fetch_markers(self, paths: Iterable[str]) -> dict[str, PageMarkers]:
        """Detail-page markers per path, fetched in small groups with a pause between groups."""

        unique = list(dict.fromkeys(path for path in paths if path))
        results: dict[str, PageMarkers] = {}
        pending: list[str] = []
        for path in unique:
            cached = self._page_cache.get(path)
            if cached is not None:
                results[path] = cached
            else:
                pending.append(path)
        fetch = self._fetch_page
        if not pending or fetch is None:
            return results

        logger.info("Fetching detail pages for %d events (%d cached)", len(pending), len(results))
        for start in range(0, len(pending), self._group_size):
            group = pending[start:start + self._group_size]
            markers = await asyncio.gather(*(self._fetch_one(fetch, path) for path in group))
            for path, marker in zip(group, markers):
                self._page_cache.set(path, marker)
                results[path] = marker
            if start + self._group_size < len(pending):
                await self._clock.sleep(self._group_pause)
        return results

    async def _fetch_one(self, fetch: PageFetcher, path: str) -> PageMarkers:
        try:
            html = await asyncio.wait_for(fetch(path), timeout=self._fetch_timeout)
        except Exception as exc:  # noqa: BLE001 - a failed detail page only costs metadata
            logger.warning("Detail page fetch failed for %s: %s", path, exc)
            return PageMarkers()
        return extract_page_markers(html)

    async def enrich(self, records: Sequence[EconomicEventRecord]) -> list[EconomicEventRecord]:
        """Fill impact and result type from history, then from detail pages."""

        if not records:
            return []
        history = await self.lookup((record.event_name, record.currency) for record in records)

        enriched: list[EconomicEventRecord] = []
        needs_page: list[str] = []
        for record in records:
            metadata = history.get((record.event_name, record.currency))
            if metadata is None:
                if record.detail_path:
                    needs_page.append(record.detail_path)
                enriched.append(record)
                continue
            changes: dict[str, object] = {}
            if record.impact is Impact.LOW:
                changes["impact"] = metadata.impact
            if record.actual_result_type is None:
                computed = classify(record.actual_value, record.forecast_value, metadata.higher_is_better)
                if computed is not None:
                    changes["actual_result_type"] = computed
            enriched.append(record.with_updates(**changes) if changes else record)

        if not needs_page:
            return enriched
        markers = await self.fetch_markers(needs_page)
        final: list[EconomicEventRecord] = []
        for record in enriched:
            marker = markers.get(record.detail_path or "")
            if marker is None or (record.event_name, record.currency) in history:
                final.append(record)
                continue
            changes = {}
            if record.impact is Impact.LOW:
                changes["impact"] = marker.impact
            if marker.result_type is not None and record.actual_result_type is None:
                changes["actual_result_type"] = marker.result_type
            final.append(record.with_updates(**changes) if changes else record)
        return final


__all__ = ["DirectionInferenceEngine", "HistorySource", "MetadataCache", "PageFetcher", "merge_history"]
