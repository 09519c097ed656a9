import asyncio
from dataclasses import dataclass

import httpx

from propcal.calendar.engine import CalendarController
from propcal.calendar.flow import MeetingCreationFlow
from propcal.calendar.models import CreatedMeeting
from propcal.calendar.notifications import Notifier
from propcal.calendar.providers import Authorizer, MeetingProviderAdapter
from propcal.calendar.source import EventSource
from propcal.config import Settings, get_settings
from propcal.core.dependencies import get_http_client


@dataclass
class CalendarSession:
    """Everything one calendar page needs, wired to a shared HTTP client."""

    notifier: Notifier
    adapter: MeetingProviderAdapter
    source: EventSource
    controller: CalendarController
    flow: MeetingCreationFlow

    def open_meeting_dialog(self) -> asyncio.Future[CreatedMeeting]:
        result = self.flow.open()
        self.controller.watch(result)
        return result

    def close_meeting_dialog(self) -> None:
        self.flow.close()


async def create_calendar_session(
    settings: Settings | None = None,
    authorizer: Authorizer | None = None,
    http: httpx.AsyncClient | None = None,
) -> CalendarSession:
    settings = settings or get_settings()
    http = http or await get_http_client()
    notifier = Notifier()
    adapter = MeetingProviderAdapter.from_settings(http, settings, authorizer)
    source = EventSource(http, settings.API_BASE_URL)
    return CalendarSession(
        notifier=notifier,
        adapter=adapter,
        source=source,
        controller=CalendarController(source, notifier, tz=settings.timezone),
        flow=MeetingCreationFlow(adapter, notifier, tz=settings.timezone),
    )
