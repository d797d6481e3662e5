"""Typed records passed between the parsing, enrichment and storage stages."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any


class Impact(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def parse(cls, value: str | None, default: Impact | None = None) -> Impact | None:
        """Map free text such as ``"high"`` or ``"High Impact"`` onto a level."""

        if not value:
            return default
        lowered = value.strip().lower()
        for member in cls:
            if lowered == member.value.lower():
                return member
        for member in cls:
            if lowered.startswith(member.value.lower()):
                return member
        return default


class ResultType(str, Enum):
    GOOD = "good"
    BAD = "bad"
    NEUTRAL = "neutral"


class DataSource(str, Enum):
    MYFXBOOK = "myfxbook"
    MQL5 = "mql5"


@dataclass
class RawEventFields:
    """One row as read off a calendar page, before normalization.

    ``impact`` is ``None`` when the row carried no recognizable severity; the
    normalizer then falls back to ``Impact.LOW``.
    """

    source: DataSource
    currency: str
    event_name: str
    time_utc: datetime
    impact: Impact | None = None
    actual: str | None = None
    forecast: str | None = None
    previous: str | None = None
    result_hint: ResultType | None = None
    country: str | None = None
    flag_code: str | None = None
    unix_timestamp: int | None = None
    external_id: str | None = None
    detail_path: str | None = None

    @property
    def has_values(self) -> bool:
        return bool(self.actual or self.forecast or self.previous)


@dataclass
class EconomicEventRecord:
    external_id: str
    currency: str
    event_name: str
    impact: Impact
    event_date: date
    time_utc: datetime | None
    data_source: DataSource
    unix_timestamp: int | None = None
    actual_value: str | None = None
    forecast_value: str | None = None
    previous_value: str | None = None
    actual_result_type: ResultType | None = None
    country: str | None = None
    flag_code: str | None = None
    flag_url: str | None = None
    source_url: str | None = None
    last_updated: datetime | None = None
    detail_path: str | None = field(default=None, compare=False)

    def with_updates(self, **changes: Any) -> EconomicEventRecord:
        return replace(self, **changes)

    def to_row(self, *, last_updated: datetime) -> dict[str, Any]:
        """Column mapping for the ``economic_events`` table."""

        return {
            "external_id": self.external_id,
            "currency": self.currency,
            "event_name": self.event_name,
            "impact": self.impact.value,
            "event_date": self.event_date,
            "event_time": self.time_utc,
            "time_utc": self.time_utc,
            "unix_timestamp": self.unix_timestamp,
            "actual_value": self.actual_value,
            "forecast_value": self.forecast_value,
            "previous_value": self.previous_value,
            "actual_result_type": self.actual_result_type.value if self.actual_result_type else None,
            "country": self.country,
            "flag_code": self.flag_code,
            "flag_url": self.flag_url,
            "is_all_day": False,
            "source_url": self.source_url,
            "data_source": self.data_source.value,
            "last_updated": last_updated,
        }


@dataclass(frozen=True)
class CachedDirectionMetadata:
    impact: Impact
    higher_is_better: bool | None = None


@dataclass(frozen=True)
class PageMarkers:
    """Severity and color read from a per-event detail page."""

    impact: Impact = Impact.LOW
    result_type: ResultType | None = None


@dataclass
class PinnedEventReference:
    event: str
    impact: str | None = None
    currency: str | None = None
    event_id: str | None = None
    country: str | None = None
    flag_code: str | None = None
    notes: str | None = None


@dataclass
class TradeEventSnapshot:
    """Economic event as embedded on a journal trade."""

    name: str
    impact: str | None = None
    currency: str | None = None
    time_utc: datetime | None = None


@dataclass
class RequestedEvent:
    """An event a caller is waiting on, with the actual value it last saw."""

    external_id: str
    actual: str | None = None
    event: str | None = None


__all__ = [
    "CachedDirectionMetadata",
    "DataSource",
    "EconomicEventRecord",
    "Impact",
    "PageMarkers",
    "PinnedEventReference",
    "RawEventFields",
    "RequestedEvent",
    "ResultType",
    "TradeEventSnapshot",
]
