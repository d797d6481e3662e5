"""Run the scheduled calendar refresh, or refresh one day on demand."""

from __future__ import annotations

import argparse
import asyncio
from datetime import date

import httpx

from econ_calendar.api.dependencies import build_refresher, build_store
from econ_calendar.core.clock import SystemClock
from econ_calendar.core.config import get_settings
from econ_calendar.core.logging import setup_logging
from econ_calendar.db.session import Database
from econ_calendar.services.refresh import AllSourcesFailedError


async def _run(target: date | None, currencies: list[str]) -> int:
    settings = get_settings()
    database = Database(settings.database_url)
    clock = SystemClock()
    await database.create_all()
    try:
        async with httpx.AsyncClient() as client:
            refresher = build_refresher(build_store(database, settings, clock), client, settings, clock)
            try:
                if target is None:
                    outcome = await refresher.bootstrap()
                    state = "skipped" if outcome.skipped else "refreshed"
                    print(f"{state}: {outcome.reason} (updated {outcome.updated_count})")
                else:
                    result = await refresher.refresh(target, currencies or settings.major_currencies)
                    print(result.message)
            except AllSourcesFailedError as exc:
                print(f"Refresh failed: {exc}")
                return 1
    finally:
        await database.dispose()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Refresh the economic calendar")
    parser.add_argument("--date", type=date.fromisoformat, help="Refresh this day instead of the scheduled run")
    parser.add_argument("--currency", action="append", default=[], help="Currency to include (repeatable)")
    args = parser.parse_args()
    setup_logging()
    raise SystemExit(asyncio.run(_run(args.date, [code.upper() for code in args.currency])))


if __name__ == "__main__":
    main()
