"""Outbound clients for the calendar sources."""

from .calendar import CalendarSource, Mql5Source, MyFxBookSource, week_start
from .http import SourceFetchError, fetch_html
from .slugs import build_event_page_url

__all__ = [
    "CalendarSource",
    "Mql5Source",
    "MyFxBookSource",
    "SourceFetchError",
    "build_event_page_url",
    "fetch_html",
    "week_start",
]
