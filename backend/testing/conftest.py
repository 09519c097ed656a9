"""Shared test fixtures and utilities."""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from propcal.calendar.models import (
    FollowUpEvent,
    LeaseStartEvent,
    MeetingEvent,
    MeetingMetadata,
    PaymentDueEvent,
    WorkOrderEvent,
    dump_event,
)
from propcal.core.exceptions import FetchError
from propcal.core.supabase import get_supabase_client
from propcal.main import app

UTC = timezone.utc


class FakeTableChain:
    def __init__(self, data=None):
        self.data = data if data is not None else []
        self.filters = []

    def select(self, *args):
        return self

    def eq(self, *args):
        self.filters.append(("eq",) + args)
        return self

    def gte(self, *args):
        self.filters.append(("gte",) + args)
        return self

    def lte(self, *args):
        self.filters.append(("lte",) + args)
        return self

    def or_(self, *args):
        self.filters.append(("or",) + args)
        return self

    def in_(self, *args):
        return self

    def order(self, *args, **kwargs):
        return self

    def limit(self, *args):
        return self

    def execute(self):
        return self


class FakeSupabase:
    """Routes table() calls to per-table fake chains."""

    def __init__(self, tables=None):
        self.chains = {name: FakeTableChain(rows) for name, rows in (tables or {}).items()}
        self.requested = []

    def table(self, name):
        self.requested.append(name)
        return self.chains.setdefault(name, FakeTableChain())


class StubEventSource:
    """Event source returning a fixed event list, filtered like the server does."""

    def __init__(self, events=None, error=None):
        self.events = list(events or [])
        self.error = error
        self.calls = []

    async def get_events(self, start, end, types=None):
        self.calls.append((start, end, list(types) if types else None))
        if self.error is not None:
            raise self.error
        wanted = {str(t) for t in types} if types else None
        return [
            e for e in self.events
            if start <= e.start <= end and (wanted is None or e.type in wanted)
        ]


def at(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


def lease_start(eid="1", when=None):
    when = when or at(2025, 1, 5)
    return LeaseStartEvent(id=f"lease-start-{eid}", title="Lease Start - Ada", start=when, end=when, all_day=True)


def payment_due(eid="1", when=None):
    when = when or at(2025, 1, 1)
    return PaymentDueEvent(id=f"payment-{eid}", title="Rent Due - Ada ($1200)", start=when, end=when, all_day=True)


def follow_up(eid="1", when=None):
    when = when or at(2025, 1, 20)
    return FollowUpEvent(id=f"follow-up-{eid}", title="Follow-up - Ada", start=when, end=when, all_day=True)


def work_order(eid="1", when=None):
    when = when or at(2025, 1, 15)
    return WorkOrderEvent(id=f"work-order-{eid}", title="Work Order - Leak", start=when, end=when, all_day=True)


def meeting(eid="1", when=None, url="https://meet.google.com/abc-defg-hij", provider_event_id=None):
    when = when or at(2025, 1, 10, 10)
    return MeetingEvent(
        id=f"meeting-{eid}",
        title="Sync",
        start=when,
        end=when.replace(minute=30),
        metadata=MeetingMetadata(meeting_url=url, provider="google", provider_event_id=provider_event_id),
    )


def dump_payload(kind):
    """Wire form of a sample event, as the events API returns it."""
    factories = {"lease": lease_start, "payment": payment_due, "meeting": meeting, "work_order": work_order}
    return dump_event(factories[kind]())


@pytest.fixture
def fetch_error():
    return FetchError("Network error while loading calendar events")


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def client(fake_supabase):
    app.dependency_overrides[get_supabase_client] = lambda: fake_supabase
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
