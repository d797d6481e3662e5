"""HTTP layer for the calendar service."""
