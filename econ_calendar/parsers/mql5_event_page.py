"""Parsers for a single MQL5 event page (``/en/economic-calendar/<country>/<event>``)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

from bs4 import BeautifulSoup, Tag

from ..domain import Impact, PageMarkers, ResultType
from .values import collapse_whitespace, optional_text, result_from_color

_SEVERITY_RE = re.compile(r"event-table__importance\s+(high|medium|low)", re.IGNORECASE)
_GRID_SEVERITY_RE = re.compile(r"ec-table__importance_(\w+)")
_COLOR_RE = re.compile(r"event-table__actual\s+(green|red)", re.IGNORECASE)
_HEADER_TEXTS = {"Actual", "Forecast", "Previous"}


def extract_page_markers(html: str) -> PageMarkers:
    """Read only the severity level and the red/green marker off an event page.

    Pages with a severity marker that is not recognized report ``Medium``.
    """

    impact = Impact.MEDIUM
    match = _SEVERITY_RE.search(html)
    if match:
        impact = Impact.parse(match.group(1), Impact.MEDIUM)
    else:
        grid = _GRID_SEVERITY_RE.search(html)
        if grid:
            impact = Impact.parse(grid.group(1), Impact.MEDIUM)
    color = _COLOR_RE.search(html)
    return PageMarkers(impact=impact, result_type=result_from_color(color.group(1)) if color else None)


@dataclass
class EventPageSnapshot:
    actual_value: str | None = None
    forecast_value: str | None = None
    previous_value: str | None = None
    impact: Impact | None = None
    actual_result_type: ResultType | None = None
    last_release: datetime | None = None
    next_release: datetime | None = None
    next_forecast: str | None = None
    days_until_next: int | None = None
    source: str | None = None
    sector: str | None = None


def _millis(tag: Tag | None) -> datetime | None:
    if tag is None:
        return None
    raw = tag.get("data-date")
    if not raw or not str(raw).isdigit():
        return None
    return datetime.fromtimestamp(int(raw) / 1000, tz=timezone.utc)


def _cell_value(cell: Tag | None) -> str | None:
    if cell is None:
        return None
    text = optional_text(cell.get_text(" "))
    if text in _HEADER_TEXTS:
        return None
    return text


def _labelled(soup: BeautifulSoup, label: str) -> str | None:
    marker = soup.find(string=re.compile(rf"^\s*{label}:\s*$"))
    if marker is None:
        return None
    for sibling in marker.parent.find_all_next(["a", "span"], limit=3):
        text = optional_text(sibling.get_text())
        if text and not text.endswith(":"):
            return text
    return None


def parse_event_page(html: str, *, now: datetime | None = None) -> EventPageSnapshot:
    """Read the latest release, the next release and the page metadata."""

    soup = BeautifulSoup(html, "html.parser")
    snapshot = EventPageSnapshot()

    snapshot.last_release = _millis(soup.find(id="actualValueDate"))
    snapshot.next_release = _millis(soup.find(id="nextValueDate"))

    importance = soup.find(class_=re.compile(r"^event-table__importance"))
    if importance is not None:
        snapshot.impact = Impact.parse(collapse_whitespace(importance.get_text()))

    actual_cell = soup.find(class_="event-table__actual")
    if actual_cell is not None:
        classes = " ".join(actual_cell.get("class") or [])
        snapshot.actual_result_type = result_from_color(classes)
        value = actual_cell.find(class_=re.compile("actual__value"))
        snapshot.actual_value = _cell_value(value if value is not None else actual_cell)

    forecasts = soup.find_all("td", class_="event-table__forecast")
    if forecasts:
        snapshot.forecast_value = _cell_value(forecasts[0])
    if len(forecasts) > 1:
        snapshot.next_forecast = _cell_value(forecasts[1])
    previous = soup.find("td", class_="event-table__previous")
    snapshot.previous_value = _cell_value(previous)

    timeout = soup.find(id="eventTimeoutValue")
    days = collapse_whitespace(timeout.get_text()) if timeout is not None else ""
    if days.isdigit():
        snapshot.days_until_next = int(days)
    elif snapshot.next_release is not None:
        remaining = snapshot.next_release - (now or datetime.now(timezone.utc))
        if remaining.total_seconds() > 0:
            snapshot.days_until_next = remaining.days + (1 if remaining.seconds or remaining.microseconds else 0)

    snapshot.source = _labelled(soup, "Source")
    snapshot.sector = _labelled(soup, "Sector")
    return snapshot


__all__ = ["EventPageSnapshot", "extract_page_markers", "parse_event_page"]
