"""MyFXBook weekly calendar parsing.

MyFXBook serves two shapes of the same table. Pages rendered for a browser
carry ``economicCalendarRow`` rows whose cells hold machine-readable
attributes (``data-calendarDateTd``, ``previous-value``, ``concensus``,
``data-actual``). Saved or proxied copies are often stripped down to plain
cells where everything has to be read from the text. Both are handled here.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup, Tag

from ..domain import DataSource, Impact, RawEventFields, ResultType
from .base import CalendarParser, LayoutParser
from .values import (
    SUPPORTED_CURRENCIES,
    clean_numeric,
    collapse_whitespace,
    combine_utc,
    first_currency,
    looks_numeric,
    parse_calendar_stamp,
    parse_clock,
    parse_flexible_date,
    result_from_color,
    result_from_phrase,
)

logger = logging.getLogger(__name__)

ROW_MARKER = "economicCalendarRow"
NAME_CELL = 4
NAME_LOOKAHEAD_END = 8
PREVIOUS_CELL, FORECAST_CELL, ACTUAL_CELL = 6, 7, 8

_ROW_RE = re.compile(r"<tr[^>]*" + ROW_MARKER + r"[^>]*>.*?</tr>", re.IGNORECASE | re.DOTALL)
_FLAG_RE = re.compile(r"flag-icon-([a-z]{2,3})")
_IMPACT_CLASS_RE = re.compile(r"impact[_-](high|medium|low)", re.IGNORECASE)
_CLOCK_ONLY_RE = re.compile(r"^\d{1,2}:\d{2}$")
_DATE_TEXT_RE = re.compile(
    r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+\d{1,2}"
    r"|\d{1,2}\s+(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)"
    r"|\d{1,2}/\d{1,2}/\d{2,4}|\d{4}-\d{1,2}-\d{1,2}|\d{2}\.\d{2}\.\d{4}",
    re.IGNORECASE,
)
_IMPACT_TEXTS = {impact.value for impact in Impact}
# A plain cell holding a full date and a clock time, e.g. "Jan 29, 2026 13:30"
_INLINE_STAMP_CELL_RE = re.compile(
    r"<td[^>]*>\s*(?:" + _DATE_TEXT_RE.pattern + r")[^<]*?\d{1,2}:\d{2}\s*</td>",
    re.IGNORECASE,
)


def _cell_texts(cells: list[Tag]) -> list[str]:
    return [collapse_whitespace(cell.get_text()) for cell in cells]


def _classes(element: Tag) -> str:
    value = element.get("class") or []
    if isinstance(value, str):
        return value
    return " ".join(value)


def stitch_event_name(texts: list[str]) -> str | None:
    """Read the name cell, joining following cells while a parenthesis is left open."""

    if len(texts) <= NAME_CELL:
        return None
    candidate = texts[NAME_CELL]
    if candidate and "(" in candidate and ")" not in candidate:
        for text in texts[NAME_CELL + 1:NAME_LOOKAHEAD_END]:
            if not text:
                continue
            candidate = f"{candidate} {text}"
            if ")" in candidate:
                break
    if not candidate or len(candidate) <= 3:
        return None
    if candidate in SUPPORTED_CURRENCIES or candidate in _IMPACT_TEXTS or _CLOCK_ONLY_RE.match(candidate):
        return None
    return candidate


def impact_from_row(row: Tag, texts: list[str]) -> Impact | None:
    for element in [row, *row.find_all(class_=True)]:
        match = _IMPACT_CLASS_RE.search(_classes(element))
        if match:
            return Impact.parse(match.group(1))
    for text in texts:
        if text in _IMPACT_TEXTS:
            return Impact(text)
    return None


def country_and_flag(cells: list[Tag]) -> tuple[str | None, str | None]:
    country: str | None = None
    flag: str | None = None
    for cell in cells:
        if country and flag:
            break
        titled = cell.find("i", attrs={"title": True})
        if titled is not None:
            title = collapse_whitespace(titled.get("title"))
            if title:
                country = country or title
            match = _FLAG_RE.search(_classes(titled))
            if match:
                flag = flag or match.group(1)
        if not flag:
            flagged = cell.find(class_=_FLAG_RE)
            if flagged is not None:
                match = _FLAG_RE.search(_classes(flagged))
                if match:
                    flag = match.group(1)
    if flag in {"emu", "em"}:
        flag = "eu"
    return country, flag


def result_from_cell(cell: Tag) -> ResultType | None:
    """Color classes first, then the tooltip phrase, then colored children."""

    own = _classes(cell)
    if "background-transparent-red" in own or "background-transparent-green" in own:
        return result_from_color(own)
    described = cell.find(attrs={"data-content": True})
    if described is not None:
        hint = result_from_phrase(described.get("data-content"))
        if hint:
            return hint
    for inner in cell.find_all(class_=re.compile("background-transparent")):
        hint = result_from_color(_classes(inner))
        if hint:
            return hint
    return None


def _numeric(value: str | None) -> str | None:
    if value and looks_numeric(value):
        return clean_numeric(value)
    return None


def _positional(texts: list[str], index: int) -> str | None:
    if len(texts) > index:
        return _numeric(texts[index])
    return None


class MyFxBookTableLayout(LayoutParser):
    """Annotated ``economicCalendarRow`` rows."""

    layout = "table"

    def detect(self, html: str) -> bool:
        return ROW_MARKER in html

    def parse(self, html: str) -> list[RawEventFields]:
        soup = BeautifulSoup(self._trim(html), "html.parser")
        events: list[RawEventFields] = []
        for row in soup.find_all("tr"):
            event = self._parse_row(row)
            if event is not None:
                events.append(event)
        return events

    @staticmethod
    def _trim(html: str) -> str:
        rows = _ROW_RE.findall(html)
        if not rows:
            return html
        return "<table><tbody>" + "\n".join(rows) + "</tbody></table>"

    def _parse_row(self, row: Tag) -> RawEventFields | None:
        cells = row.find_all("td")
        if len(cells) < 4:
            return None
        texts = _cell_texts(cells)
        currency = first_currency(texts)
        if currency is None:
            return None

        holder = row.find(attrs={"data-calendardatetd": True})
        time_utc = parse_calendar_stamp(holder.get("data-calendardatetd") if holder is not None else None)
        if time_utc is None:
            logger.debug("Skipping %s row without a calendar timestamp", currency)
            return None
        unix_timestamp = None
        stamped = row.find(attrs={"time": re.compile(r"^\d+$")})
        if stamped is not None:
            unix_timestamp = int(stamped["time"])

        name = stitch_event_name(texts)
        if not name or "myfxbook" in name.lower():
            return None

        previous, forecast, actual, hint = self._attribute_values(cells)
        previous = previous or _positional(texts, PREVIOUS_CELL)
        forecast = forecast or _positional(texts, FORECAST_CELL)
        actual = actual or _positional(texts, ACTUAL_CELL)

        impact = impact_from_row(row, texts)
        country, flag = country_and_flag(cells)
        event = RawEventFields(
            source=DataSource.MYFXBOOK,
            currency=currency,
            event_name=name,
            time_utc=time_utc,
            impact=impact,
            actual=actual,
            forecast=forecast,
            previous=previous,
            result_hint=hint if actual else None,
            country=country,
            flag_code=flag,
            unix_timestamp=unix_timestamp,
        )
        if not (event.has_values or impact is not None):
            return None
        return event

    @staticmethod
    def _attribute_values(cells: list[Tag]) -> tuple[str | None, str | None, str | None, ResultType | None]:
        previous = forecast = actual = None
        hint: ResultType | None = None
        for cell in cells:
            text = collapse_whitespace(cell.get_text())
            if previous is None and (cell.get("data-previous") or cell.get("previous-value")):
                previous = _numeric(cell.get("previous-value") or text)
            if forecast is None and (cell.get("data-concensus") or cell.get("concensus")):
                forecast = _numeric(cell.get("concensus") or text)
            if actual is None and cell.get("data-actual"):
                actual = _numeric(text)
                if actual:
                    hint = result_from_cell(cell)

        for cell in cells:
            classes = _classes(cell)
            text = collapse_whitespace(cell.get_text())
            if previous is None and "previousCell" in classes:
                previous = _numeric(text)
            if actual is None and "actualCell" in classes:
                actual = _numeric(text)
                if actual:
                    hint = result_from_cell(cell)

        if actual and hint is None:
            for cell in cells:
                if "actualCell" in _classes(cell) or cell.get("data-actual"):
                    hint = result_from_cell(cell)
                    if hint:
                        break
        return previous, forecast, actual, hint


class MyFxBookInlineLayout(LayoutParser):
    """Plain rows where the date, time and values live only in cell text."""

    layout = "inline"

    def detect(self, html: str) -> bool:
        return _INLINE_STAMP_CELL_RE.search(html) is not None

    def parse(self, html: str) -> list[RawEventFields]:
        soup = BeautifulSoup(html, "html.parser")
        events: list[RawEventFields] = []
        for row in soup.find_all("tr"):
            event = self._parse_row(row)
            if event is not None:
                events.append(event)
        return events

    def _parse_row(self, row: Tag) -> RawEventFields | None:
        cells = row.find_all("td")
        if len(cells) < 4:
            return None
        texts = _cell_texts(cells)
        joined = " ".join(texts)
        if not _DATE_TEXT_RE.search(joined):
            return None
        currency = first_currency(texts)
        if currency is None:
            return None
        day = parse_flexible_date(texts[0]) or parse_flexible_date(joined)
        if day is None:
            return None
        name = stitch_event_name(texts)
        if not name or "myfxbook" in name.lower():
            return None

        actual_cell = cells[ACTUAL_CELL] if len(cells) > ACTUAL_CELL else None
        actual = _positional(texts, ACTUAL_CELL)
        impact = impact_from_row(row, texts)
        country, flag = country_and_flag(cells)
        event = RawEventFields(
            source=DataSource.MYFXBOOK,
            currency=currency,
            event_name=name,
            time_utc=combine_utc(day, parse_clock(texts[0]) or parse_clock(texts[1])),
            impact=impact,
            actual=actual,
            forecast=_positional(texts, FORECAST_CELL),
            previous=_positional(texts, PREVIOUS_CELL),
            result_hint=result_from_cell(actual_cell) if actual and actual_cell is not None else None,
            country=country,
            flag_code=flag,
        )
        if not (event.has_values or impact is not None):
            return None
        return event


class MyFxBookParser(CalendarParser):
    source_name = "myfxbook"

    def __init__(self) -> None:
        super().__init__([MyFxBookTableLayout(), MyFxBookInlineLayout()])


__all__ = [
    "MyFxBookInlineLayout",
    "MyFxBookParser",
    "MyFxBookTableLayout",
    "country_and_flag",
    "stitch_event_name",
]
