"""Request and response payloads for the calendar endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..domain import EconomicEventRecord


class EconomicEventSchema(BaseModel):
    external_id: str
    currency: str
    event_name: str
    impact: str
    event_date: date
    time_utc: Optional[datetime] = None
    unix_timestamp: Optional[int] = None
    actual_value: Optional[str] = None
    forecast_value: Optional[str] = None
    previous_value: Optional[str] = None
    actual_result_type: Optional[str] = None
    country: Optional[str] = None
    flag_code: Optional[str] = None
    flag_url: Optional[str] = None
    data_source: str
    source_url: Optional[str] = None

    @classmethod
    def from_record(cls, record: EconomicEventRecord) -> EconomicEventSchema:
        return cls(
            external_id=record.external_id,
            currency=record.currency,
            event_name=record.event_name,
            impact=record.impact.value,
            event_date=record.event_date,
            time_utc=record.time_utc,
            unix_timestamp=record.unix_timestamp,
            actual_value=record.actual_value,
            forecast_value=record.forecast_value,
            previous_value=record.previous_value,
            actual_result_type=record.actual_result_type.value if record.actual_result_type else None,
            country=record.country,
            flag_code=record.flag_code,
            flag_url=record.flag_url,
            data_source=record.data_source.value,
            source_url=record.source_url,
        )


class ProcessHtmlRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    html_content: str = Field(..., alias="htmlContent", min_length=1, description="Raw calendar page HTML")


class ProcessHtmlResponse(BaseModel):
    success: bool = True
    message: str
    events_processed: int
    events_stored: int
    parsed_total: int
    existing_count: int
    inserted_count: int
    upserted_count: int
    events: list[EconomicEventSchema] = Field(default_factory=list)


class RequestedEventSchema(BaseModel):
    """An event the caller holds, with the actual value it last saw."""

    model_config = ConfigDict(extra="allow")

    external_id: str = Field(..., min_length=1)
    actual: Optional[str] = None
    event: Optional[str] = None


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_date: date = Field(..., alias="targetDate", examples=["2025-10-23"])
    currencies: list[str] = Field(..., min_length=1, examples=[["USD", "EUR"]])
    events: Optional[list[RequestedEventSchema]] = None

    @field_validator("currencies")
    @classmethod
    def _upper(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip().upper() for item in value if item and item.strip()]
        if not cleaned:
            raise ValueError("currencies must contain at least one code")
        return cleaned


class RefreshResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    updated_count: int = Field(..., alias="updatedCount")
    target_events: list[EconomicEventSchema] = Field(default_factory=list, alias="targetEvents")
    found_events: list[EconomicEventSchema] = Field(default_factory=list, alias="foundEvents")
    target_date: date = Field(..., alias="targetDate")
    currencies: list[str]
    requested_events: list[dict[str, Any]] = Field(default_factory=list, alias="requestedEvents")
    has_specific_events: bool = Field(..., alias="hasSpecificEvents")
    message: str


class AutoRefreshResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    skipped: bool
    reason: str
    updated_count: int = Field(default=0, alias="updatedCount")


class EventLookupItem(BaseModel):
    event_name: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class EventLookupRequest(BaseModel):
    """Either one ``event_name``/``country`` pair or a non-empty ``events`` list."""

    event_name: Optional[str] = None
    country: Optional[str] = None
    events: Optional[list[EventLookupItem]] = None

    @field_validator("events")
    @classmethod
    def _non_empty(cls, value: Optional[list[EventLookupItem]]) -> Optional[list[EventLookupItem]]:
        if value is not None and not value:
            raise ValueError("events array cannot be empty")
        return value

    @model_validator(mode="after")
    def _single_or_batch(self) -> EventLookupRequest:
        if self.events is None and (not self.event_name or not self.country):
            raise ValueError("event_name and country are required")
        return self

    @property
    def is_batch(self) -> bool:
        return self.events is not None

    def pairs(self) -> list[tuple[str, str]]:
        if self.events is not None:
            return [(item.event_name, item.country) for item in self.events]
        return [(self.event_name or "", self.country or "")]


class BatchLookupResponse(BaseModel):
    success: bool = True
    batch: bool = True
    total: int
    succeeded: int
    failed: int
    results: list[dict[str, Any]]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


__all__ = [
    "AutoRefreshResponse",
    "BatchLookupResponse",
    "EconomicEventSchema",
    "ErrorResponse",
    "EventLookupItem",
    "EventLookupRequest",
    "ProcessHtmlRequest",
    "ProcessHtmlResponse",
    "RefreshRequest",
    "RefreshResponse",
    "RequestedEventSchema",
]
