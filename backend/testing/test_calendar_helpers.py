"""Tests for calendar helpers - pure functions for windows, attendees, styling and merging."""
import sys
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from conftest import at, follow_up, lease_start, meeting, payment_due, work_order

from propcal.calendar.constants import DEFAULT_EVENT_COLOR, EVENT_COLORS
from propcal.calendar.helpers import (
    combine_local,
    compute_end_time,
    event_style,
    format_date_label,
    merge_events,
    parse_attendees,
    parse_datetime,
    reconcile_local_meetings,
    shift_anchor,
    to_iso_utc,
    validate_duration,
    visible_window,
)
from propcal.calendar.models import ALL_EVENT_TYPES, DEFAULT_EVENT_TYPES, EventType
from propcal.core.exceptions import ValidationError

UTC = timezone.utc


@pytest.mark.parametrize("raw,expected", [
    ("a@x.com, b@x.com", ["a@x.com", "b@x.com"]),
    ("  a@x.com ,, ,b@x.com,", ["a@x.com", "b@x.com"]),
    ("b@x.com,a@x.com,b@x.com", ["b@x.com", "a@x.com", "b@x.com"]),
    ("", []),
    (None, []),
    (" , ,", []),
])
def test_parse_attendees(raw, expected):
    assert parse_attendees(raw) == expected


@pytest.mark.parametrize("raw", [
    "a@x.com, b@x.com",
    " x ,y,, z , x",
    ",,,",
    "single",
])
def test_parse_attendees_is_idempotent(raw):
    once = parse_attendees(raw)
    assert parse_attendees(",".join(once)) == once


@pytest.mark.parametrize("duration,expected", [
    (30, 30),
    ("45", 45),
    (15, 15),
    (120, 120),
])
def test_validate_duration_accepts_quarter_hours(duration, expected):
    assert validate_duration(duration) == expected


@pytest.mark.parametrize("duration", [0, -15, 20, "abc", None, "7.5"])
def test_validate_duration_rejects(duration):
    with pytest.raises(ValidationError):
        validate_duration(duration)


@pytest.mark.parametrize("minutes", [15, 30, 45, 90, 24 * 60])
def test_compute_end_time_is_exact(minutes):
    start = datetime(2025, 1, 10, 10, 0, tzinfo=UTC)
    end = compute_end_time(start, minutes)
    assert end - start == timedelta(minutes=minutes)


def test_compute_end_time_crosses_midnight():
    start = datetime(2025, 1, 10, 23, 45, tzinfo=UTC)
    assert compute_end_time(start, 30) == datetime(2025, 1, 11, 0, 15, tzinfo=UTC)


def test_compute_end_time_across_dst_change():
    tz = ZoneInfo("America/New_York")
    fall_back = combine_local("2025-11-02", "01:45", tz)
    spring_forward = combine_local("2025-03-09", "01:45", tz)

    for start in (fall_back, spring_forward):
        end = compute_end_time(start, 30)
        assert end.astimezone(UTC) - start.astimezone(UTC) == timedelta(minutes=30)
        assert end.tzinfo is tz

    assert compute_end_time(fall_back, 30).astimezone(UTC) == datetime(2025, 11, 2, 6, 15, tzinfo=UTC)
    assert compute_end_time(spring_forward, 30).hour == 3


def test_combine_local():
    tz = ZoneInfo("America/New_York")
    start = combine_local("2025-01-10", "10:00", tz)
    assert start.tzinfo is tz
    assert start.astimezone(UTC) == datetime(2025, 1, 10, 15, 0, tzinfo=UTC)

    with pytest.raises(ValidationError):
        combine_local("10/01/2025", "10:00", tz)
    with pytest.raises(ValidationError):
        combine_local("2025-01-10", "ten", tz)


def test_parse_and_format_instants():
    assert parse_datetime("2025-01-10T10:00:00Z") == datetime(2025, 1, 10, 10, tzinfo=UTC)
    assert parse_datetime("2025-01-10T10:00:00").tzinfo is not None
    assert to_iso_utc(datetime(2025, 1, 10, 10, tzinfo=UTC)) == "2025-01-10T10:00:00.000Z"
    offset = datetime(2025, 1, 10, 12, tzinfo=timezone(timedelta(hours=2)))
    assert to_iso_utc(offset) == "2025-01-10T10:00:00.000Z"


def test_visible_window_month_prefetches_next_month():
    window = visible_window(date(2025, 1, 17), "month", UTC)
    assert window.start == datetime(2025, 1, 1, tzinfo=UTC)
    assert window.end == datetime.combine(date(2025, 2, 28), time.max, tzinfo=UTC)

    december = visible_window(date(2024, 12, 31), "month", UTC)
    assert december.end.date() == date(2025, 1, 31)


def test_visible_window_week_day_agenda():
    week = visible_window(date(2025, 1, 15), "week", UTC)  # a Wednesday
    assert week.start.date() == date(2025, 1, 12)
    assert week.end.date() == date(2025, 1, 18)

    sunday = visible_window(date(2025, 1, 12), "week", UTC)
    assert sunday.start.date() == date(2025, 1, 12)

    day = visible_window(date(2025, 1, 15), "day", UTC)
    assert day.start.date() == day.end.date() == date(2025, 1, 15)
    assert day.covers(at(2025, 1, 15, 23, 59))

    agenda = visible_window(date(2025, 1, 15), "agenda", UTC)
    assert agenda.end.date() == date(2025, 2, 14)

    with pytest.raises(ValueError):
        visible_window(date(2025, 1, 15), "year", UTC)


def test_visible_window_uses_timezone():
    tz = ZoneInfo("Europe/Berlin")
    window = visible_window(date(2025, 3, 3), "month", tz)
    assert window.start == datetime(2025, 3, 1, tzinfo=tz)
    assert window.start.astimezone(UTC) == datetime(2025, 2, 28, 23, tzinfo=UTC)


def test_shift_anchor():
    assert shift_anchor(date(2025, 1, 31), "month", 1) == date(2025, 2, 28)
    assert shift_anchor(date(2025, 3, 15), "month", -1) == date(2025, 2, 15)
    assert shift_anchor(date(2025, 1, 15), "week", 1) == date(2025, 1, 22)
    assert shift_anchor(date(2025, 1, 15), "day", -1) == date(2025, 1, 14)
    assert shift_anchor(date(2025, 1, 15), "agenda", 1) == date(2025, 2, 14)


def test_event_style_per_type():
    assert event_style(lease_start()) == {"backgroundColor": EVENT_COLORS["LEASE_START"], "color": "white"}
    assert event_style(meeting())["backgroundColor"] == EVENT_COLORS["MEETING"]
    assert len(set(EVENT_COLORS.values())) == len(EventType)


@pytest.mark.parametrize("thing", [
    object(),
    None,
    type("Odd", (), {"type": "INSPECTION"})(),
    type("Unhashable", (), {"type": ["MEETING"]})(),
])
def test_event_style_falls_back_without_raising(thing):
    assert event_style(thing) == {"backgroundColor": DEFAULT_EVENT_COLOR, "color": "white"}


def test_default_types_exclude_work_orders():
    assert EventType.WORK_ORDER not in DEFAULT_EVENT_TYPES
    assert DEFAULT_EVENT_TYPES | {EventType.WORK_ORDER} == ALL_EVENT_TYPES


def test_merge_events_filters_and_appends_local_meetings():
    server = [payment_due(), work_order(), lease_start()]
    local = [meeting("local")]

    merged = merge_events(server, local, DEFAULT_EVENT_TYPES)
    assert [e.id for e in merged] == ["payment-1", "lease-start-1", "meeting-local"]

    no_meetings = merge_events(server, local, DEFAULT_EVENT_TYPES - {EventType.MEETING})
    assert "meeting-local" not in [e.id for e in no_meetings]


@pytest.mark.parametrize("types", [
    frozenset(),
    frozenset({EventType.MEETING}),
    frozenset({EventType.PAYMENT_DUE, EventType.MEETING}),
    DEFAULT_EVENT_TYPES,
    ALL_EVENT_TYPES,
])
def test_merge_events_is_exactly_the_filtered_union(types):
    server = [payment_due(), work_order(), lease_start(), follow_up(), meeting("server")]
    local = [meeting("local-1"), meeting("local-2")]

    merged = merge_events(server, local, types)
    expected = [e for e in server if e.type in {str(t) for t in types}]
    expected += [m for m in local if EventType.MEETING in types]
    assert list(merged) == expected


def test_merge_keeps_duplicates():
    twin = meeting("same")
    merged = merge_events([twin], [twin], ALL_EVENT_TYPES)
    assert len(merged) == 2


def test_reconcile_local_meetings_drops_server_confirmed():
    confirmed = meeting("local-1", provider_event_id="g-1")
    pending = meeting("local-2", provider_event_id="g-2")
    server = [meeting("server-1", provider_event_id="g-1"), payment_due()]

    assert reconcile_local_meetings([confirmed, pending], server) == [pending]
    assert reconcile_local_meetings([confirmed, pending], []) == [confirmed, pending]


def test_format_date_label():
    assert format_date_label(lease_start(when=at(2025, 1, 5)), ZoneInfo("America/New_York")) == "January 5, 2025"
    assert format_date_label(meeting(when=at(2025, 1, 10, 15)), ZoneInfo("America/New_York")) == "January 10, 2025 10:00"
