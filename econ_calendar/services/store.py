"""Reconciliation of parsed events against the ``economic_events`` table."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from ..core.clock import Clock, SystemClock
from ..db.session import Database
from ..domain import EconomicEventRecord
from ..models import EconomicEvent

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 200

# Always overwritten on conflict; every other column keeps its stored value
# when the incoming one is NULL.
_REPLACED_COLUMNS = ("currency", "event_name", "impact", "event_date", "data_source", "last_updated", "is_all_day")


@dataclass
class StoreResult:
    existing: int = 0
    upserted: int = 0
    failed_batches: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class HistoryRow:
    event_name: str
    currency: str
    impact: str | None
    actual_value: str | None
    forecast_value: str | None
    actual_result_type: str | None


def dedupe_last(records: Iterable[EconomicEventRecord]) -> list[EconomicEventRecord]:
    """Keep the last record seen for each ``external_id``, in first-seen order."""

    unique: dict[str, EconomicEventRecord] = {}
    for record in records:
        unique[record.external_id] = record
    return list(unique.values())


class EventStore:
    """Batched, best-effort upserts keyed by ``external_id``.

    Each sub-batch commits on its own. A failing sub-batch is rolled back,
    logged and skipped; earlier sub-batches stay committed.
    """

    def __init__(self, database: Database, *, clock: Clock | None = None, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self._database = database
        self._clock = clock or SystemClock()
        self._batch_size = batch_size

    @property
    def database(self) -> Database:
        return self._database

    def _insert(self):
        if self._database.dialect_name == "sqlite":
            return sqlite_insert(EconomicEvent)
        return pg_insert(EconomicEvent)

    def _upsert_statement(self, rows: list[dict[str, Any]]):
        stmt = self._insert().values(rows)
        table = EconomicEvent.__table__
        assignments = {}
        for column in rows[0]:
            if column == "external_id":
                continue
            if column in _REPLACED_COLUMNS:
                assignments[column] = stmt.excluded[column]
            else:
                assignments[column] = func.coalesce(stmt.excluded[column], table.c[column])
        return stmt.on_conflict_do_update(index_elements=[table.c.external_id], set_=assignments).returning(
            table.c.external_id
        )

    async def upsert(self, records: Sequence[EconomicEventRecord]) -> StoreResult:
        result = StoreResult()
        for offset in range(0, len(records), self._batch_size):
            batch_number = offset // self._batch_size + 1
            batch = dedupe_last(records[offset:offset + self._batch_size])
            if not batch:
                continue
            now = self._clock.now()
            rows = [record.to_row(last_updated=now) for record in batch]
            external_ids = [row["external_id"] for row in rows]
            async with self._database.session() as session:
                try:
                    existing = await session.execute(
                        select(func.count()).select_from(EconomicEvent).where(EconomicEvent.external_id.in_(external_ids))
                    )
                    existing_count = int(existing.scalar_one())
                    affected = await session.execute(self._upsert_statement(rows))
                    upserted = len(affected.all())
                    await session.commit()
                except SQLAlchemyError:
                    await session.rollback()
                    result.failed_batches.append(batch_number)
                    logger.exception("Failed to store batch %d (%d events)", batch_number, len(rows))
                    continue
            result.existing += existing_count
            result.upserted += upserted
            logger.info(
                "Stored batch %d: affected %d rows (existing so far: %d)",
                batch_number,
                upserted,
                result.existing,
            )
        logger.info("Upsert totals: upserted=%d existing=%d", result.upserted, result.existing)
        return result

    async def history(self, event_names: Sequence[str], currencies: Sequence[str]) -> list[HistoryRow]:
        """Prior rows for the given names and currencies that carry an impact."""

        if not event_names or not currencies:
            return []
        stmt = (
            select(
                EconomicEvent.event_name,
                EconomicEvent.currency,
                EconomicEvent.impact,
                EconomicEvent.actual_value,
                EconomicEvent.forecast_value,
                EconomicEvent.actual_result_type,
            )
            .where(
                EconomicEvent.event_name.in_(sorted(set(event_names))),
                EconomicEvent.currency.in_(sorted(set(currencies))),
                EconomicEvent.impact.is_not(None),
            )
            .order_by(EconomicEvent.event_date.desc(), EconomicEvent.id.desc())
        )
        async with self._database.session() as session:
            rows = (await session.execute(stmt)).all()
        return [HistoryRow(*row) for row in rows]

    async def latest_matching(self, event_name: str, country: str) -> EconomicEvent | None:
        """Newest row whose name contains ``event_name`` for ``country``, case-insensitively."""

        stmt = (
            select(EconomicEvent)
            .where(
                EconomicEvent.event_name.ilike(f"%{event_name}%"),
                EconomicEvent.country.ilike(country),
            )
            .order_by(EconomicEvent.event_date.desc(), EconomicEvent.id.desc())
            .limit(1)
        )
        async with self._database.session() as session:
            return (await session.execute(stmt)).scalars().first()

    async def update_fields(self, row_id: int, values: dict[str, Any]) -> None:
        async with self._database.session() as session:
            await session.execute(update(EconomicEvent).where(EconomicEvent.id == row_id).values(**values))
            await session.commit()

    async def get_many(self, external_ids: Sequence[str]) -> list[EconomicEvent]:
        if not external_ids:
            return []
        stmt = select(EconomicEvent).where(EconomicEvent.external_id.in_(list(external_ids)))
        async with self._database.session() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def count_on(self, day: date) -> int:
        async with self._database.session() as session:
            result = await session.execute(
                select(func.count()).select_from(EconomicEvent).where(EconomicEvent.event_date == day)
            )
            return int(result.scalar_one())

    async def last_refreshed_at(self) -> datetime | None:
        async with self._database.session() as session:
            result = await session.execute(select(func.max(EconomicEvent.last_updated)))
            return result.scalar_one_or_none()

    async def count(self) -> int:
        async with self._database.session() as session:
            result = await session.execute(select(func.count()).select_from(EconomicEvent))
            return int(result.scalar_one())


__all__ = ["DEFAULT_BATCH_SIZE", "EventStore", "HistoryRow", "StoreResult", "dedupe_last"]
