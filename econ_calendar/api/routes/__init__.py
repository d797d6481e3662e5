"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .calendar import router as calendar_router
from .events import router as events_router

api_router = APIRouter()
api_router.include_router(events_router, prefix="/events", tags=["events"])
api_router.include_router(calendar_router, prefix="/calendar", tags=["calendar"])

__all__ = ["api_router"]
