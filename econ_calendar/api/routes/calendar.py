"""Targeted and scheduled calendar refresh endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...domain import RequestedEvent
from ...schemas import AutoRefreshResponse, EconomicEventSchema, ErrorResponse, RefreshRequest, RefreshResponse
from ...services.refresh import CalendarRefresher
from ..dependencies import get_refresher

router = APIRouter()


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def refresh_calendar(
    payload: RefreshRequest,
    refresher: CalendarRefresher = Depends(get_refresher),
) -> RefreshResponse:
    requested = [
        RequestedEvent(external_id=item.external_id, actual=item.actual, event=item.event)
        for item in payload.events or []
    ]
    result = await refresher.refresh(payload.target_date, payload.currencies, requested)
    return RefreshResponse(
        updated_count=result.updated_count,
        target_events=[EconomicEventSchema.from_record(record) for record in result.target_events],
        found_events=[EconomicEventSchema.from_record(record) for record in result.found_events],
        target_date=result.target_date,
        currencies=result.currencies,
        requested_events=[item.model_dump() for item in payload.events or []],
        has_specific_events=bool(requested),
        message=result.message,
    )


@router.post("/auto-refresh", response_model=AutoRefreshResponse, responses={502: {"model": ErrorResponse}})
async def auto_refresh(refresher: CalendarRefresher = Depends(get_refresher)) -> AutoRefreshResponse:
    result = await refresher.bootstrap()
    return AutoRefreshResponse(skipped=result.skipped, reason=result.reason, updated_count=result.updated_count)


__all__ = ["router"]
