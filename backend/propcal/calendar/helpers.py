import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Literal, NamedTuple

from dateutil.relativedelta import relativedelta

from propcal.calendar.constants import (
    DEFAULT_EVENT_COLOR,
    EVENT_COLORS,
    EVENT_TEXT_COLOR,
    CalendarViewConfig,
    MeetingDefaults,
)
from propcal.calendar.models import CalendarEvent, EventType, MeetingEvent
from propcal.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

View = Literal["month", "week", "day", "agenda"]
VIEWS: tuple[View, ...] = ("month", "week", "day", "agenda")


class VisibleWindow(NamedTuple):
    start: datetime
    end: datetime

    def covers(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


def parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso_utc(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_attendees(raw: str | None) -> list[str]:
    """Split a comma separated attendee field, keeping order and duplicates."""
    if not raw:
        return []
    return [token.strip() for token in raw.split(",") if token.strip()]


def validate_duration(duration: int | str) -> int:
    try:
        minutes = int(duration)
    except (TypeError, ValueError):
        raise ValidationError("Duration must be a whole number of minutes")
    if minutes <= 0 or minutes % MeetingDefaults.DURATION_STEP_MINUTES != 0:
        raise ValidationError(
            f"Duration must be a positive multiple of {MeetingDefaults.DURATION_STEP_MINUTES} minutes"
        )
    return minutes


def compute_end_time(start: datetime, duration_minutes: int) -> datetime:
    # add in UTC so the duration is elapsed time across DST changes
    if start.tzinfo is None:
        return start + timedelta(minutes=duration_minutes)
    end = start.astimezone(timezone.utc) + timedelta(minutes=duration_minutes)
    return end.astimezone(start.tzinfo)


def combine_local(day: str, clock: str, tz: tzinfo) -> datetime:
    try:
        parsed_day = date.fromisoformat(day)
        parsed_clock = time.fromisoformat(clock)
    except ValueError:
        raise ValidationError("Date must be YYYY-MM-DD and time must be HH:MM")
    return datetime.combine(parsed_day, parsed_clock, tzinfo=tz)


def _start_of_day(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _end_of_day(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.max, tzinfo=tz)


def visible_window(anchor: date, view: View, tz: tzinfo) -> VisibleWindow:
    if view == "month":
        first = anchor.replace(day=1)
        last = first + relativedelta(months=CalendarViewConfig.PREFETCH_MONTHS + 1, days=-1)
        return VisibleWindow(_start_of_day(first, tz), _end_of_day(last, tz))
    if view == "week":
        # weeks start on Sunday
        sunday = anchor - timedelta(days=(anchor.weekday() + 1) % 7)
        return VisibleWindow(_start_of_day(sunday, tz), _end_of_day(sunday + timedelta(days=6), tz))
    if view == "day":
        return VisibleWindow(_start_of_day(anchor, tz), _end_of_day(anchor, tz))
    if view == "agenda":
        return VisibleWindow(
            _start_of_day(anchor, tz),
            _end_of_day(anchor + CalendarViewConfig.AGENDA_LENGTH, tz),
        )
    raise ValueError(f"Unknown calendar view: {view}")


def shift_anchor(anchor: date, view: View, steps: int) -> date:
    if view == "month":
        return anchor + relativedelta(months=steps)
    if view == "week":
        return anchor + timedelta(weeks=steps)
    if view == "day":
        return anchor + timedelta(days=steps)
    if view == "agenda":
        return anchor + CalendarViewConfig.AGENDA_LENGTH * steps
    raise ValueError(f"Unknown calendar view: {view}")


def event_style(event: object) -> dict[str, str]:
    event_type = getattr(event, "type", None)
    try:
        background = EVENT_COLORS.get(event_type, DEFAULT_EVENT_COLOR)  # type: ignore[arg-type]
    except TypeError:
        background = DEFAULT_EVENT_COLOR
    return {"backgroundColor": background, "color": EVENT_TEXT_COLOR}


def merge_events(
    server_events: Iterable[CalendarEvent],
    local_meetings: Iterable[MeetingEvent],
    active_types: frozenset[EventType],
) -> tuple[CalendarEvent, ...]:
    merged: list[CalendarEvent] = [e for e in server_events if e.event_type in active_types]
    merged.extend(m for m in local_meetings if m.event_type in active_types)
    return tuple(merged)


def reconcile_local_meetings(
    local_meetings: Iterable[MeetingEvent],
    server_events: Iterable[CalendarEvent],
) -> list[MeetingEvent]:
    """Drop local meetings the server already returned, matched on provider event id."""
    persisted = {
        e.metadata.provider_event_id
        for e in server_events
        if isinstance(e, MeetingEvent) and e.metadata.provider_event_id
    }
    kept = []
    for meeting in local_meetings:
        if meeting.metadata.provider_event_id in persisted:
            logger.info("Local meeting %s confirmed by server, dropping local copy", meeting.id)
            continue
        kept.append(meeting)
    return kept


def format_date_label(event: CalendarEvent, tz: tzinfo) -> str:
    # all-day dates are stored as UTC midnight and must not shift across days
    start = event.start if event.all_day else event.start.astimezone(tz)
    label = f"{start:%B} {start.day}, {start.year}"
    if event.all_day:
        return label
    return f"{label} {start:%H:%M}"
