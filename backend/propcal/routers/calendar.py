import asyncio
import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address

from propcal.calendar.models import EventType, as_utc, dump_event
from propcal.calendar.service import build_calendar_events
from propcal.config import get_settings
from propcal.core.dependencies import SupabaseClientDep
from propcal.core.exceptions import handle_unexpected_error

settings = get_settings()

logger = logging.getLogger(__name__)
limiter = Limiter(key_func=get_remote_address)
router = APIRouter()

FETCH_ERROR_DETAIL = "Failed to fetch calendar events"


class EventsResponse(BaseModel):
    items: list[dict]


@router.get("/events", response_model=EventsResponse)
@limiter.limit(settings.RATE_LIMIT_API)
async def list_events(
    request: Request,
    supabase: SupabaseClientDep,
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    types: list[EventType] | None = Query(None),
):
    start, end = as_utc(start_date), as_utc(end_date)
    if start > end:
        raise HTTPException(status_code=400, detail="startDate must not be after endDate")

    try:
        events = await asyncio.to_thread(build_calendar_events, supabase, start, end, types)
    except Exception as e:
        handle_unexpected_error(e, "fetch calendar events", detail=FETCH_ERROR_DETAIL)

    return {"items": [dump_event(e) for e in events]}
