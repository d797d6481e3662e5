"""Bulk HTML ingestion and single-event lookup endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from ...schemas import (
    BatchLookupResponse,
    EconomicEventSchema,
    ErrorResponse,
    EventLookupRequest,
    ProcessHtmlRequest,
    ProcessHtmlResponse,
)
from ...services.gateway import EventLookupGateway
from ...services.refresh import CalendarRefresher
from ..dependencies import get_lookup_gateway, get_refresher

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/process", response_model=ProcessHtmlResponse, responses={400: {"model": ErrorResponse}})
async def process_html(
    payload: ProcessHtmlRequest,
    refresher: CalendarRefresher = Depends(get_refresher),
) -> ProcessHtmlResponse:
    logger.info("Processing uploaded calendar HTML (%d chars)", len(payload.html_content))
    result = await refresher.process_html(payload.html_content)
    return ProcessHtmlResponse(
        message=result.message,
        events_processed=result.parsed_total,
        events_stored=result.upserted,
        parsed_total=result.parsed_total,
        existing_count=result.existing,
        inserted_count=result.inserted,
        upserted_count=result.upserted,
        events=[EconomicEventSchema.from_record(record) for record in result.events],
    )


@router.post("/lookup", responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}})
async def lookup_events(
    payload: EventLookupRequest,
    gateway: EventLookupGateway = Depends(get_lookup_gateway),
) -> dict[str, Any]:
    if not payload.is_batch:
        event_name, country = payload.pairs()[0]
        result = await gateway.lookup(event_name, country)
        return result.as_dict()

    batch = await gateway.lookup_many(payload.pairs())
    return BatchLookupResponse(
        total=len(batch.results),
        succeeded=batch.succeeded,
        failed=batch.failed,
        results=[result.as_dict() for result in batch.results],
    ).model_dump()


__all__ = ["router"]
