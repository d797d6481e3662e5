"""Calendar page parsers, one per source and layout."""

from .base import CalendarParser, LayoutParser, ParseError
from .mql5 import Mql5Parser
from .mql5_event_page import EventPageSnapshot, extract_page_markers, parse_event_page
from .myfxbook import MyFxBookParser

__all__ = [
    "CalendarParser",
    "EventPageSnapshot",
    "LayoutParser",
    "Mql5Parser",
    "MyFxBookParser",
    "ParseError",
    "extract_page_markers",
    "parse_event_page",
]
