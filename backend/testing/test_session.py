"""End-to-end calendar page session: fetch, create a meeting, see it on the calendar."""
import asyncio
import sys
from datetime import date
from pathlib import Path

import httpx

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from conftest import dump_payload

from propcal.calendar.flow import FlowState
from propcal.calendar.notifications import Notifier
from propcal.calendar.session import create_calendar_session
from propcal.config import Settings
from propcal.core.dependencies import close_http_client, get_http_client

GOOGLE_EVENT = {
    "id": "g-evt-1",
    "summary": "Sync",
    "start": {"dateTime": "2025-01-10T10:00:00Z"},
    "end": {"dateTime": "2025-01-10T10:30:00Z"},
    "hangoutLink": "https://meet.google.com/abc-defg-hij",
}


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "api.test":
        return httpx.Response(200, json={"items": [dump_payload("payment")]})
    if request.url.host == "www.googleapis.com":
        return httpx.Response(200, json=GOOGLE_EVENT)
    return httpx.Response(404)


async def _authorizer(provider):
    return "token"


async def _session(**overrides):
    settings = Settings(
        API_BASE_URL="http://api.test",
        GOOGLE_CLIENT_ID="1234567890-abcdef.apps.googleusercontent.com",
        **overrides,
    )
    http = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    session = await create_calendar_session(settings=settings, authorizer=_authorizer, http=http)
    session.controller.anchor = date(2025, 1, 15)
    return session


async def test_meeting_dialog_round_trip():
    session = await _session()
    assert await session.controller.refresh() is True
    assert [e.id for e in session.controller.events] == ["payment-1"]

    result = session.open_meeting_dialog()
    assert session.flow.state is FlowState.NOT_SIGNED_IN
    assert await session.flow.sign_in() is FlowState.READY

    session.flow.update(title="Sync", date="2025-01-10", time="10:00", duration=30)
    details = await session.flow.submit()
    assert details.join_url == "https://meet.google.com/abc-defg-hij"

    await asyncio.sleep(0)
    await session.controller.wait_pending()

    assert result.done()
    assert [e.id for e in session.controller.events] == ["payment-1", "meeting-google-g-evt-1"]
    assert [n.level for n in session.notifier.notifications] == ["success"]


async def test_closing_dialog_adds_nothing():
    session = await _session()
    await session.controller.refresh()

    result = session.open_meeting_dialog()
    session.close_meeting_dialog()
    await asyncio.sleep(0)
    await session.controller.wait_pending()

    assert result.cancelled()
    assert session.controller.local_meetings == ()


async def test_session_uses_configured_timezone():
    session = await _session(DEFAULT_TIMEZONE="America/New_York")
    assert session.flow.state is FlowState.IDLE
    assert isinstance(session.notifier, Notifier)
    assert session.controller.window.start.tzinfo.key == "America/New_York"


async def test_unconfigured_provider_blocks_creation():
    session = await _session()
    session.open_meeting_dialog()
    assert session.flow.select_provider("teams") is FlowState.NOT_CONFIGURED


async def test_shared_http_client_lifecycle():
    first = await get_http_client()
    assert await get_http_client() is first

    await close_http_client()
    assert first.is_closed
    second = await get_http_client()
    assert second is not first
    await close_http_client()
