"""ORM models for the calendar service."""

from .economic_event import EconomicEvent

__all__ = ["EconomicEvent"]
