import logging
from datetime import datetime
from typing import Any, Iterable

import httpx
from pydantic import ValidationError as ModelValidationError

from propcal.calendar.helpers import to_iso_utc
from propcal.calendar.models import CalendarEvent, EventType, parse_event
from propcal.core.exceptions import FetchError

logger = logging.getLogger(__name__)


def handle_api_response(response: httpx.Response) -> dict[str, Any]:
    status = response.status_code
    if not 200 <= status < 300:
        raise FetchError("Calendar events request failed", status_code=status)
    try:
        body = response.json()
    except ValueError:
        raise FetchError("Calendar events response is not JSON", status_code=status)
    if not isinstance(body, dict) or not isinstance(body.get("items"), list):
        raise FetchError("Calendar events response has no items list", status_code=status)
    return body


def build_query(start: datetime, end: datetime, types: Iterable[EventType] | None) -> list[tuple[str, str]]:
    params = [("startDate", to_iso_utc(start)), ("endDate", to_iso_utc(end))]
    for event_type in types or ():
        params.append(("types", str(event_type)))
    return params


def parse_items(items: list[Any]) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning("Skipping non-object calendar item: %r", item)
            continue
        try:
            events.append(parse_event(item))
        except ModelValidationError as e:
            logger.warning(
                "Skipping invalid calendar event %s: %d validation error(s)",
                item.get("id"), e.error_count(),
            )
    return events


class EventSource:
    """Reads server-persisted calendar events from the property backend."""

    def __init__(self, http: httpx.AsyncClient, base_url: str):
        self._http = http
        self._base_url = base_url.rstrip("/")

    async def get_events(
        self,
        start: datetime,
        end: datetime,
        types: Iterable[EventType] | None = None,
    ) -> list[CalendarEvent]:
        if start > end:
            raise ValueError("start must not be after end")

        params = build_query(start, end, types)
        try:
            response = await self._http.get(f"{self._base_url}/calendar/events", params=params)
        except httpx.TimeoutException:
            raise FetchError("Calendar events request timed out")
        except httpx.HTTPError as e:
            logger.warning("Calendar events request failed: %s", e)
            raise FetchError("Network error while loading calendar events")

        body = handle_api_response(response)
        events = parse_items(body["items"])
        logger.debug("Fetched %d calendar events for %s..%s", len(events), params[0][1], params[1][1])
        return events
