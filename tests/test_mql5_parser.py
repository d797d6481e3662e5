from datetime import datetime, timezone

import pytest

from econ_calendar.domain import DataSource, Impact, ResultType
from econ_calendar.parsers import Mql5Parser, ParseError
from econ_calendar.parsers.mql5 import Mql5InlineLayout, Mql5TableLayout, build_external_id


def test_inline_items(mql5_inline_html):
    parser = Mql5Parser()
    assert [type(layout) for layout in parser.detect(mql5_inline_html)] == [Mql5InlineLayout]

    events = parser.parse(mql5_inline_html)

    assert len(events) == 1
    payrolls = events[0]
    assert payrolls.source is DataSource.MQL5
    assert payrolls.event_name == "Nonfarm Payrolls"
    assert payrolls.currency == "USD"
    assert payrolls.time_utc == datetime(2026, 1, 29, 13, 30, tzinfo=timezone.utc)
    assert payrolls.impact is Impact.HIGH
    assert (payrolls.actual, payrolls.forecast, payrolls.previous) == ("143 K", "165 K", "256")
    assert payrolls.result_hint is ResultType.GOOD
    assert payrolls.external_id == "mql5_20260129_1330_USD_Nonfarm_Payrolls"
    assert payrolls.detail_path == "/en/economic-calendar/united-states/nonfarm-payrolls"
    assert payrolls.unix_timestamp == 1769693400


def test_table_items_take_date_from_header(mql5_table_html):
    parser = Mql5Parser()
    assert [type(layout) for layout in parser.detect(mql5_table_html)] == [Mql5TableLayout]

    events = parser.parse(mql5_table_html)

    assert len(events) == 1
    cpi = events[0]
    assert cpi.event_name == "CPI y/y"
    assert cpi.currency == "EUR"
    assert cpi.time_utc == datetime(2026, 1, 29, 10, 0, tzinfo=timezone.utc)
    assert cpi.impact is Impact.MEDIUM
    assert (cpi.actual, cpi.forecast, cpi.previous) == ("2.1%", "2.2%", "2.4%")
    assert cpi.result_hint is ResultType.BAD
    assert cpi.external_id == "mql5_20260129_1000_EUR_CPI_y_y"


def test_table_items_before_any_header_are_skipped():
    html = """
    <div class="ec-table__item ec-table__importance_high">
      <div class="ec-table__col_time">08:00</div>
      <span class="ec-table__curency-name">GBP</span>
      <div class="ec-table__col_event"><a href="/x">GDP m/m</a></div>
    </div>
    """

    assert Mql5Parser().parse(html) == []


def test_unknown_document_is_rejected():
    with pytest.raises(ParseError):
        Mql5Parser().parse("<html><body>Please enable JavaScript</body></html>")


def test_external_id_squashes_long_names():
    stamp = datetime(2026, 1, 29, 8, 5, tzinfo=timezone.utc)

    external_id = build_external_id(stamp, "GBP", "BoE Gov Bailey Speaks (Treasury Committee) & Q&A")

    assert external_id.startswith("mql5_20260129_0805_GBP_")
    assert external_id.endswith("BoE_Gov_Bailey_Speaks__Treasur")
