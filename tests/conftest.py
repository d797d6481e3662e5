import asyncio
import inspect
import pathlib
import sys
from datetime import datetime, timedelta, timezone

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from econ_calendar.db.session import Database  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        # funcargs also holds fixtures pulled in indirectly (tmp_path_factory, ...)
        arguments = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            loop.run_until_complete(test_function(**arguments))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


class FakeClock:
    """Clock whose sleeps advance time instantly and are recorded."""

    def __init__(self, current: datetime):
        self.current = current
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += timedelta(seconds=seconds)

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


# Thursday
RELEASE_DAY = datetime(2026, 1, 29, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(RELEASE_DAY)


@pytest.fixture
def database(tmp_path: pathlib.Path) -> Database:
    return Database(url=f"sqlite+aiosqlite:///{tmp_path / 'calendar.db'}")


MYFXBOOK_TABLE_HTML = """
<html><body>
<table id="economicCalendarTable">
<tr class="economicCalendarRow" data-row-id="1">
  <td class="calendarToggleCell" data-calendarDateTd="2026-01-29 13:30">Jan 29, 13:30</td>
  <td><span time="1769693400">5h 30min</span></td>
  <td><i class="flag-icon flag-icon-us" title="United States"></i></td>
  <td>USD</td>
  <td><a href="/forex-economic-calendar/united-states/unemployment-rate">Unemployment Rate</a></td>
  <td><span class="impact_high">High</span></td>
  <td class="previousCell" data-previous="4.4%" previous-value="4.4%">4.4%</td>
  <td data-concensus="4.5%" concensus="4.5%">4.5%</td>
  <td class="actualCell background-transparent-green" data-actual="4.3%">4.3%</td>
</tr>
<tr class="economicCalendarRow" data-row-id="2">
  <td class="calendarToggleCell" data-calendarDateTd="2026-01-29 21:45">Jan 29, 21:45</td>
  <td><span time="1769723100">13h</span></td>
  <td><i class="flag-icon flag-icon-nz" title="New Zealand"></i></td>
  <td>NZD</td>
  <td><a>Building Consents MoM</a></td>
  <td><span class="impact_medium">Medium</span></td>
  <td class="previousCell">-1.1%</td>
  <td>0.5%</td>
  <td class="actualCell">0.9%</td>
</tr>
<tr class="economicCalendarRow" data-row-id="3">
  <td class="calendarToggleCell" data-calendarDateTd="2026-01-29 00:00">Jan 29, 00:00</td>
  <td></td>
  <td><i class="flag-icon flag-icon-emu" title="European Union"></i></td>
  <td>EUR</td>
  <td><a>Bank Holiday</a></td>
  <td><span class="impact_low">Low</span></td>
  <td class="previousCell"></td>
  <td></td>
  <td class="actualCell"></td>
</tr>
<tr class="economicCalendarRow" data-row-id="4">
  <td class="calendarToggleCell" data-calendarDateTd="2026-01-29 10:00">Jan 29, 10:00</td>
  <td></td>
  <td><i class="flag-icon flag-icon-gb" title="United Kingdom"></i></td>
  <td>GBP</td>
  <td><a>Advertisement banner</a></td>
  <td></td>
  <td class="previousCell">Previous</td>
  <td>Forecast</td>
  <td class="actualCell">Actual</td>
</tr>
<tr class="economicCalendarRow" data-row-id="5">
  <td class="calendarToggleCell" data-calendarDateTd="2026-01-29 23:30">Jan 29, 23:30</td>
  <td><span time="1769729400">14h</span></td>
  <td><i class="flag-icon flag-icon-jp" title="Japan"></i></td>
  <td>JPY</td>
  <td>Tokyo Core CPI (YoY</td>
  <td>Jan)</td>
  <td class="previousCell" data-previous="2.2%" previous-value="2.2%">2.2%</td>
  <td data-concensus="2.0%" concensus="2.0%">2.0%</td>
  <td class="actualCell background-transparent-red" data-actual="2.1%">2.1%</td>
</tr>
</table>
</body></html>
"""

MYFXBOOK_INLINE_HTML = """
<table>
<tr><td>Date</td><td>Time</td><td>Country</td><td>Currency</td><td>Event</td>
<td>Impact</td><td>Previous</td><td>Forecast</td><td>Actual</td></tr>
<tr><td>Jan 29, 2026 13:30</td><td>13:30</td><td>United States</td><td>USD</td><td>Nonfarm Payrolls</td>
<td>High</td><td>256</td><td>165</td><td>143</td></tr>
<tr><td>Jan 29, 2026 09:00</td><td>09:00</td><td>Switzerland</td><td>CHF</td><td>SNB Chairman Speech</td>
<td>Medium</td><td></td><td></td><td></td></tr>
</table>
"""

MQL5_INLINE_HTML = """
<div class="ec-table">
  <div class="ec-table__item ec-table__item_inline green ec-table__importance_high">
    <a href="/en/economic-calendar/united-states/nonfarm-payrolls">Nonfarm Payrolls</a>
    <span>2026.01.29 13:30, USD, Actual: 143 K, Forecast: 165 K, Previous: 256 K</span>
  </div>
  <div class="ec-table__item ec-table__item_inline ec-table__importance_low">
    <a href="/en/economic-calendar/brazil/ipca">IPCA Inflation</a>
    <span>2026.01.29 12:00, BRL, Actual: 4.1%, Forecast: 4.0%, Previous: 4.2%</span>
  </div>
</div>
"""

MQL5_TABLE_HTML = """
<div class="ec-table">
  <div class="ec-table__date" data-date="2026-01-29">Thursday, January 29, 2026</div>
  <div class="ec-table__item ec-table__importance_medium">
    <div class="ec-table__col ec-table__col_time">10:00</div>
    <div class="ec-table__col ec-table__col_currency"><span class="ec-table__curency-name">EUR</span></div>
    <div class="ec-table__col ec-table__col_event"><a href="/en/economic-calendar/european-union/cpi-yy">CPI y/y</a></div>
    <div class="ec-table__col ec-table__col_actual red"><span>2.1%</span></div>
    <div class="ec-table__col ec-table__col_forecast">2.2%</div>
    <div class="ec-table__col ec-table__col_previous">2.4%</div>
  </div>
  <div class="ec-table__item">
    <div class="ec-table__col ec-table__col_time">11:00</div>
    <div class="ec-table__col ec-table__col_currency"><span class="ec-table__curency-name">CHF</span></div>
    <div class="ec-table__col ec-table__col_event"><a href="/en/economic-calendar/switzerland/header">Header</a></div>
    <div class="ec-table__col ec-table__col_actual"><span>Actual</span></div>
    <div class="ec-table__col ec-table__col_forecast">Forecast</div>
    <div class="ec-table__col ec-table__col_previous">Previous</div>
  </div>
</div>
"""

EVENT_PAGE_HTML = """
<html><body>
<div class="event-header">
  <span id="actualValueDate" data-date="1769693400000"></span>
  <span id="nextValueDate" data-date="1772112600000"></span>
</div>
<table class="event-table">
  <tr>
    <td class="event-table__importance medium">Medium</td>
    <td class="event-table__actual green"><span class="event-table__actual__value">4.3%</span></td>
    <td class="event-table__forecast">4.5%</td>
    <td class="event-table__previous">4.4%</td>
    <td class="event-table__forecast">4.4%</td>
  </tr>
</table>
<div id="eventTimeoutValue">28</div>
<div class="event-info"><span>Source:</span> <a href="https://www.bls.gov">Bureau of Labor Statistics</a></div>
<div class="event-info"><span>Sector:</span> <a>Labor Market</a></div>
</body></html>
"""


@pytest.fixture
def myfxbook_table_html() -> str:
    return MYFXBOOK_TABLE_HTML


@pytest.fixture
def myfxbook_inline_html() -> str:
    return MYFXBOOK_INLINE_HTML


@pytest.fixture
def mql5_inline_html() -> str:
    return MQL5_INLINE_HTML


@pytest.fixture
def mql5_table_html() -> str:
    return MQL5_TABLE_HTML


@pytest.fixture
def event_page_html() -> str:
    return EVENT_PAGE_HTML
