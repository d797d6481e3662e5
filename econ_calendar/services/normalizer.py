"""Name cleaning, identity generation and display metadata for calendar rows."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

from ..domain import DataSource, EconomicEventRecord, Impact, RawEventFields
from ..parsers.values import collapse_whitespace

EVENT_ID_LENGTH = 20
FLAG_URL_TEMPLATE = "https://flagcdn.com/w160/{code}.png"
SOURCE_URLS = {
    DataSource.MYFXBOOK: "https://www.myfxbook.com/forex-economic-calendar",
    DataSource.MQL5: "https://www.mql5.com/en/economic-calendar",
}

_MONTH = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)"
_PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)\s*")
_EDGE_RE = re.compile(r"^\W+|\W+$")
_DATE_SUFFIXES = (
    re.compile(rf"\s+{_MONTH}\d{{2}}$", re.IGNORECASE),
    re.compile(rf"\s+{_MONTH}$", re.IGNORECASE),
    re.compile(r"\s+\d{4}$"),
    re.compile(r"\s+\d{1,2}/\d{1,2}/\d{2,4}$"),
)


@dataclass(frozen=True)
class CountryInfo:
    country: str
    flag_code: str


COUNTRY_BY_CURRENCY: dict[str, CountryInfo] = {
    "USD": CountryInfo("United States", "us"),
    "EUR": CountryInfo("Euro Area", "eu"),
    "GBP": CountryInfo("United Kingdom", "gb"),
    "JPY": CountryInfo("Japan", "jp"),
    "AUD": CountryInfo("Australia", "au"),
    "NZD": CountryInfo("New Zealand", "nz"),
    "CAD": CountryInfo("Canada", "ca"),
    "CHF": CountryInfo("Switzerland", "ch"),
    "CNY": CountryInfo("China", "cn"),
    "HKD": CountryInfo("Hong Kong", "hk"),
    "SGD": CountryInfo("Singapore", "sg"),
    "INR": CountryInfo("India", "in"),
    "KRW": CountryInfo("South Korea", "kr"),
    "MXN": CountryInfo("Mexico", "mx"),
    "BRL": CountryInfo("Brazil", "br"),
    "ZAR": CountryInfo("South Africa", "za"),
    "SEK": CountryInfo("Sweden", "se"),
    "NOK": CountryInfo("Norway", "no"),
    "DKK": CountryInfo("Denmark", "dk"),
    "PLN": CountryInfo("Poland", "pl"),
    "TRY": CountryInfo("Turkey", "tr"),
    "RUB": CountryInfo("Russia", "ru"),
}


def _clean_once(value: str) -> str:
    cleaned = _PARENTHETICAL_RE.sub(" ", value.strip())
    cleaned = collapse_whitespace(cleaned)
    cleaned = _EDGE_RE.sub("", cleaned).strip()
    if cleaned:
        cleaned = cleaned[0].upper() + cleaned[1:]
    return base_event_name(cleaned)


def base_event_name(name: str) -> str:
    """Strip one trailing release-date token such as ``Oct25``, ``Sep`` or ``2024``."""

    for pattern in _DATE_SUFFIXES:
        name = pattern.sub("", name)
    return name.strip()


def clean_name(raw: str | None) -> str:
    """Reduce an event title to its base name.

    >>> clean_name("Initial Jobless Claims Oct25")
    'Initial Jobless Claims'

    Applied until the output stops changing, so cleaning a cleaned name is a no-op.
    """

    if not raw:
        return ""
    current = raw
    while True:
        cleaned = _clean_once(current)
        if cleaned == current:
            return current
        current = cleaned


def generate_id(currency: str, name: str, country: str | None, impact: Impact | str | None) -> str:
    """Truncated SHA-256 of ``currency-name-country-impact``, lower-cased.

    Truncation to 20 hex characters admits collisions; none are handled.
    """

    impact_text = impact.value if isinstance(impact, Impact) else (impact or "None")
    key = f"{currency}-{name}-{country or 'global'}-{impact_text}".lower()
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:EVENT_ID_LENGTH]


def flag_url(flag_code: str | None) -> str | None:
    if not flag_code:
        return None
    return FLAG_URL_TEMPLATE.format(code=flag_code.lower())


def country_metadata(currency: str | None) -> CountryInfo | None:
    if not currency:
        return None
    return COUNTRY_BY_CURRENCY.get(currency.upper())


def normalize(raw: RawEventFields) -> EconomicEventRecord:
    """Turn a parsed row into a canonical record.

    The stored name only has its whitespace collapsed so the original title
    survives; ``clean_name`` is for cross-release matching. Rows that carry a
    native identifier keep it.
    """

    name = collapse_whitespace(raw.event_name)
    impact = raw.impact or Impact.LOW
    mapped = country_metadata(raw.currency)
    country = raw.country or (mapped.country if mapped else None)
    flag_code = raw.flag_code or (mapped.flag_code if mapped else None)
    external_id = raw.external_id or generate_id(raw.currency, name, raw.country, raw.impact)
    return EconomicEventRecord(
        external_id=external_id,
        currency=raw.currency,
        event_name=name,
        impact=impact,
        event_date=raw.time_utc.date(),
        time_utc=raw.time_utc,
        unix_timestamp=raw.unix_timestamp,
        actual_value=raw.actual,
        forecast_value=raw.forecast,
        previous_value=raw.previous,
        actual_result_type=raw.result_hint,
        country=country,
        flag_code=flag_code,
        flag_url=flag_url(flag_code),
        data_source=raw.source,
        source_url=SOURCE_URLS.get(raw.source),
        detail_path=raw.detail_path,
    )


__all__ = [
    "COUNTRY_BY_CURRENCY",
    "CountryInfo",
    "EVENT_ID_LENGTH",
    "base_event_name",
    "clean_name",
    "country_metadata",
    "flag_url",
    "generate_id",
    "normalize",
]
