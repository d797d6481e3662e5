"""Pydantic schemas for the calendar API."""

from .events import (
    AutoRefreshResponse,
    BatchLookupResponse,
    EconomicEventSchema,
    ErrorResponse,
    EventLookupItem,
    EventLookupRequest,
    ProcessHtmlRequest,
    ProcessHtmlResponse,
    RefreshRequest,
    RefreshResponse,
    RequestedEventSchema,
)

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
