"""MQL5 weekly calendar parsing."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone

from bs4 import BeautifulSoup, Tag

from ..domain import DataSource, Impact, RawEventFields
from .base import CalendarParser, LayoutParser
from .values import (
    SUPPORTED_CURRENCIES,
    collapse_whitespace,
    combine_utc,
    looks_numeric,
    parse_clock,
    parse_flexible_date,
    result_from_color,
)

logger = logging.getLogger(__name__)

INLINE_MARKER = "ec-table__item_inline"
TABLE_MARKER = "ec-table__col_time"

_INLINE_STAMP_RE = re.compile(r"(\d{4})\.(\d{2})\.(\d{2})\s+(\d{2}):(\d{2})\s*,\s*([A-Z]{3})\s*,")
_ACTUAL_RE = re.compile(r"Actual:\s*([^,]+?)(?:,|$)")
_FORECAST_RE = re.compile(r"Forecast:\s*([^,]+?)(?:,|$)")
_PREVIOUS_RE = re.compile(r"Previous:\s*([^,\s]+)")
_IMPORTANCE_RE = re.compile(r"ec-table__importance_(\w+)")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def build_external_id(time_utc: datetime, currency: str, event_name: str) -> str:
    """``mql5_<yyyymmdd>_<hhmm>_<CUR>_<name>``, with the name squashed to 30 characters."""

    slug = re.sub(r"[^a-zA-Z0-9]", "_", event_name)[:30]
    return f"mql5_{time_utc:%Y%m%d}_{time_utc:%H%M}_{currency}_{slug}"


def _classes(element: Tag) -> list[str]:
    value = element.get("class") or []
    if isinstance(value, str):
        return value.split()
    return list(value)


def _value(text: str | None) -> str | None:
    cleaned = collapse_whitespace(text)
    if cleaned and looks_numeric(cleaned, allow_magnitude=True):
        return cleaned
    return None


def _impact(element: Tag) -> Impact | None:
    for candidate in [element, *element.find_all(class_=True)]:
        for name in _classes(candidate):
            match = _IMPORTANCE_RE.match(name)
            if match:
                return Impact.parse(match.group(1))
    return None


def _supported(currency: str | None) -> str | None:
    if currency and currency.upper() in SUPPORTED_CURRENCIES:
        return currency.upper()
    return None


def _build(
    *,
    name: str,
    currency: str,
    time_utc: datetime,
    impact: Impact | None,
    actual: str | None,
    forecast: str | None,
    previous: str | None,
    color: str | None,
    path: str | None,
) -> RawEventFields | None:
    event = RawEventFields(
        source=DataSource.MQL5,
        currency=currency,
        event_name=name,
        time_utc=time_utc,
        impact=impact,
        actual=actual,
        forecast=forecast,
        previous=previous,
        result_hint=result_from_color(color) if actual else None,
        unix_timestamp=int(time_utc.timestamp()),
        external_id=build_external_id(time_utc, currency, name),
        detail_path=path,
    )
    if not (event.has_values or impact is not None):
        return None
    return event


class Mql5InlineLayout(LayoutParser):
    """Server-rendered ``ec-table__item_inline`` blocks.

    Each block reads like ``2026.01.29 13:30, USD, Nonfarm Payrolls, Actual: 50 K,
    Forecast: 45 K, Previous: 64 K``.
    """

    layout = "inline"

    def detect(self, html: str) -> bool:
        return INLINE_MARKER in html

    def parse(self, html: str) -> list[RawEventFields]:
        soup = BeautifulSoup(html, "html.parser")
        events: list[RawEventFields] = []
        for item in soup.find_all("div", class_=INLINE_MARKER):
            event = self._parse_item(item)
            if event is not None:
                events.append(event)
        return events

    def _parse_item(self, item: Tag) -> RawEventFields | None:
        link = item.find("a", href=True)
        if link is None:
            return None
        name = collapse_whitespace(link.get_text())
        if not name:
            return None
        text = collapse_whitespace(item.get_text(" "))
        stamp = _INLINE_STAMP_RE.search(text)
        if not stamp:
            logger.debug("Skipping inline item without a timestamp: %s", name)
            return None
        currency = _supported(stamp.group(6))
        if currency is None:
            return None
        try:
            time_utc = datetime(
                int(stamp.group(1)),
                int(stamp.group(2)),
                int(stamp.group(3)),
                int(stamp.group(4)),
                int(stamp.group(5)),
                tzinfo=timezone.utc,
            )
        except ValueError:
            return None

        def _field(pattern: re.Pattern[str]) -> str | None:
            match = pattern.search(text)
            return _value(match.group(1)) if match else None

        color = next((cls for cls in _classes(item) if cls in {"red", "green"}), None)
        return _build(
            name=name,
            currency=currency,
            time_utc=time_utc,
            impact=_impact(item),
            actual=_field(_ACTUAL_RE),
            forecast=_field(_FORECAST_RE),
            previous=_field(_PREVIOUS_RE),
            color=color,
            path=link["href"],
        )


class Mql5TableLayout(LayoutParser):
    """Browser-rendered grid with ``ec-table__date`` headers above item rows."""

    layout = "table"

    def detect(self, html: str) -> bool:
        return TABLE_MARKER in html

    def parse(self, html: str) -> list[RawEventFields]:
        soup = BeautifulSoup(html, "html.parser")
        current: date | None = None
        events: list[RawEventFields] = []
        for element in soup.find_all("div"):
            classes = _classes(element)
            if "ec-table__date" in classes:
                current = self._header_date(element) or current
                continue
            if "ec-table__item" not in classes or INLINE_MARKER in classes:
                continue
            day = self._item_date(element) or current
            if day is None:
                logger.debug("Skipping table item before any date header")
                continue
            event = self._parse_item(element, day)
            if event is not None:
                events.append(event)
        return events

    @staticmethod
    def _header_date(element: Tag) -> date | None:
        stamp = element.get("data-date")
        if stamp and _ISO_DATE_RE.match(stamp):
            return date.fromisoformat(stamp)
        return parse_flexible_date(collapse_whitespace(element.get_text(" ")))

    @staticmethod
    def _item_date(element: Tag) -> date | None:
        holder = element if element.get("data-date") else element.find(attrs={"data-date": _ISO_DATE_RE})
        if holder is None:
            return None
        stamp = holder.get("data-date")
        if stamp and _ISO_DATE_RE.match(stamp):
            return date.fromisoformat(stamp)
        return None

    def _parse_item(self, item: Tag, day: date) -> RawEventFields | None:
        time_cell = item.find(class_="ec-table__col_time")
        clock = parse_clock(time_cell.get_text(" ")) if time_cell is not None else None
        if clock is None:
            return None
        currency_cell = item.find(class_="ec-table__curency-name")
        currency = _supported(collapse_whitespace(currency_cell.get_text()) if currency_cell is not None else None)
        if currency is None:
            return None
        event_cell = item.find(class_="ec-table__col_event")
        link = event_cell.find("a") if event_cell is not None else None
        if link is None:
            return None
        name = collapse_whitespace(link.get_text())
        if not name:
            return None

        actual = color = None
        actual_cell = item.find(class_="ec-table__col_actual")
        if actual_cell is not None:
            color = next((cls for cls in _classes(actual_cell) if cls in {"red", "green"}), None)
            span = actual_cell.find("span")
            actual = _value(span.get_text() if span is not None else actual_cell.get_text())
        forecast_cell = item.find(class_="ec-table__col_forecast")
        previous_cell = item.find(class_="ec-table__col_previous")

        return _build(
            name=name,
            currency=currency,
            time_utc=combine_utc(day, clock),
            impact=_impact(item),
            actual=actual,
            forecast=_value(forecast_cell.get_text(" ")) if forecast_cell is not None else None,
            previous=_value(previous_cell.get_text(" ")) if previous_cell is not None else None,
            color=color,
            path=link.get("href"),
        )


class Mql5Parser(CalendarParser):
    source_name = "mql5"

    def __init__(self) -> None:
        super().__init__([Mql5InlineLayout(), Mql5TableLayout()])


__all__ = ["Mql5InlineLayout", "Mql5Parser", "Mql5TableLayout", "build_external_id"]
