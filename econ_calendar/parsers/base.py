"""Parser interface shared by every calendar source."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar, Sequence

from ..domain import RawEventFields

logger = logging.getLogger(__name__)


class ParseError(ValueError):
    """Raised when a document matches none of a parser's known layouts."""


class LayoutParser(ABC):
    """Extracts rows from one structural layout of one source."""

    layout: ClassVar[str]

    @abstractmethod
    def detect(self, html: str) -> bool:
        """Return True when the layout's marker substrings appear in ``html``."""

    @abstractmethod
    def parse(self, html: str) -> list[RawEventFields]:
        """Return every row that passes the required-field checks.

        Implementations skip malformed rows instead of raising.
        """


class CalendarParser:
    """Tries each layout that is actually present, in preference order.

    The first detected layout that yields rows wins. When a layout is detected
    but yields nothing, the next detected layout is tried.
    """

    source_name: ClassVar[str] = "calendar"

    def __init__(self, layouts: Sequence[LayoutParser]):
        self._layouts = list(layouts)

    def detect(self, html: str) -> list[LayoutParser]:
        return [layout for layout in self._layouts if layout.detect(html)]

    def parse(self, html: str) -> list[RawEventFields]:
        detected = self.detect(html)
        if not detected:
            raise ParseError(f"No known {self.source_name} layout found in document")
        for layout in detected:
            rows = layout.parse(html)
            logger.info("Parsed %d %s rows using %s layout", len(rows), self.source_name, layout.layout)
            if rows:
                return rows
        return []


__all__ = ["CalendarParser", "LayoutParser", "ParseError"]
