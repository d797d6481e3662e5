"""Field-level helpers shared by the calendar parsers."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone

from ..domain import ResultType

SUPPORTED_CURRENCIES = ("USD", "EUR", "GBP", "JPY", "AUD", "CAD", "CHF")
CURRENCY_RE = re.compile(r"\b(" + "|".join(SUPPORTED_CURRENCIES) + r")\b")
CLOCK_RE = re.compile(r"\b(\d{1,2}):(\d{2})\b")

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_NUMERIC_NOISE = (
    (re.compile(r"n/?a", re.IGNORECASE), ""),
    (re.compile(r"%"), ""),
    (re.compile(r"bps", re.IGNORECASE), ""),
    (re.compile(r"pips?", re.IGNORECASE), ""),
    (re.compile(r"\+"), ""),
    (re.compile(r","), ""),
    (re.compile("[\u2013\u2014]"), "-"),
    (re.compile(r"\s+"), " "),
)
_NUMERIC_RE = re.compile(r"^-?\d*(\.\d+)?$")
_MAGNITUDE_RE = re.compile(r"\s*[KMBT]$", re.IGNORECASE)


def looks_numeric(value: str | None, *, allow_magnitude: bool = False) -> bool:
    """Return True when ``value`` reads as a reported figure such as ``-1.2%`` or ``+25bps``.

    Magnitude suffixes like ``227 K`` are only tolerated with ``allow_magnitude``.
    Table headers and placeholder text ("Actual", "Forecast") are rejected.
    """

    if not value:
        return False
    trimmed = value.strip()
    if allow_magnitude:
        trimmed = _MAGNITUDE_RE.sub("", trimmed)
    if not trimmed or len(trimmed) > 25:
        return False
    cleaned = trimmed
    for pattern, replacement in _NUMERIC_NOISE:
        cleaned = pattern.sub(replacement, cleaned)
    cleaned = cleaned.strip()
    if not cleaned or len(cleaned) > 20:
        return False
    if not _NUMERIC_RE.match(cleaned):
        return False
    return any(ch.isdigit() for ch in cleaned)


def clean_numeric(value: str) -> str:
    return value.strip().lstrip("+").replace(",", "").strip()


def collapse_whitespace(value: str | None) -> str:
    if not value:
        return ""
    return re.sub(r"\s+", " ", value).strip()


def optional_text(value: str | None) -> str | None:
    cleaned = collapse_whitespace(value)
    return cleaned or None


def first_currency(texts: list[str]) -> str | None:
    for text in texts:
        match = CURRENCY_RE.search(text)
        if match:
            return match.group(1)
    return None


def parse_flexible_date(text: str | None) -> date | None:
    """Parse ``January 29, 2026``, ``Jan 29 2026``, ``29.01.2026`` or ``2026-01-29``."""

    if not text:
        return None
    long_match = re.search(r"([A-Za-z]{3,})\.?\s+(\d{1,2}),?\s+(\d{4})", text)
    if long_match:
        month = _MONTHS.get(long_match.group(1)[:3].lower())
        if month:
            try:
                return date(int(long_match.group(3)), month, int(long_match.group(2)))
            except ValueError:
                pass
    dotted = re.search(r"(\d{2})\.(\d{2})\.(\d{4})", text)
    if dotted:
        try:
            return date(int(dotted.group(3)), int(dotted.group(2)), int(dotted.group(1)))
        except ValueError:
            pass
    iso = re.search(r"(\d{4})-(\d{2})-(\d{2})", text)
    if iso:
        try:
            return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
        except ValueError:
            pass
    return None


def parse_clock(text: str | None) -> time | None:
    if not text:
        return None
    match = CLOCK_RE.search(text)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def combine_utc(day: date, clock: time | None) -> datetime:
    return datetime.combine(day, clock or time(0, 0), tzinfo=timezone.utc)


def parse_calendar_stamp(raw: str | None) -> datetime | None:
    """Parse the ``YYYY-MM-DD HH:MM`` stamps MyFXBook embeds on rows; always UTC."""

    if not raw:
        return None
    candidate = raw.strip().replace(" ", "T", 1)
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def result_from_color(marker: str | None) -> ResultType | None:
    """Map red/green style markers onto a result; anything else is unknown."""

    if not marker:
        return None
    lowered = marker.lower()
    if "red" in lowered:
        return ResultType.BAD
    if "green" in lowered:
        return ResultType.GOOD
    return None


def result_from_phrase(phrase: str | None) -> ResultType | None:
    if not phrase:
        return None
    lowered = phrase.lower()
    if "worse than expected" in lowered:
        return ResultType.BAD
    if "better than expected" in lowered:
        return ResultType.GOOD
    if "as expected" in lowered:
        return ResultType.NEUTRAL
    return None


__all__ = [
    "CLOCK_RE",
    "CURRENCY_RE",
    "SUPPORTED_CURRENCIES",
    "clean_numeric",
    "collapse_whitespace",
    "combine_utc",
    "first_currency",
    "looks_numeric",
    "optional_text",
    "parse_calendar_stamp",
    "parse_clock",
    "parse_flexible_date",
    "result_from_color",
    "result_from_phrase",
]
