"""Core configuration, logging and telemetry helpers."""

from .config import CalendarSettings, get_settings

__all__ = ["CalendarSettings", "get_settings"]
