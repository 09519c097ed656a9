import asyncio
import logging
from datetime import date, datetime
from typing import Callable, Iterable, Literal
from zoneinfo import ZoneInfo

from propcal.calendar.helpers import (
    VIEWS,
    View,
    VisibleWindow,
    format_date_label,
    merge_events,
    reconcile_local_meetings,
    shift_anchor,
    visible_window,
)
from propcal.calendar.models import (
    DEFAULT_EVENT_TYPES,
    CalendarEvent,
    CreatedMeeting,
    EventDetail,
    EventType,
    MeetingEvent,
)
from propcal.calendar.notifications import Notifier
from propcal.calendar.source import EventSource
from propcal.core.exceptions import FetchError

logger = logging.getLogger(__name__)

NavigateAction = Literal["PREV", "NEXT", "TODAY"]
LOAD_ERROR_MESSAGE = "Failed to load calendar events"


class CalendarController:
    """Page-level owner of the calendar view state.

    Server events for the visible window are unioned with meetings created in
    this session that the server has not returned yet. Every refresh is tagged
    with a generation number and only the latest one may commit, so a slow
    response for a window the user already left never overwrites a newer one.
    """

    def __init__(
        self,
        source: EventSource,
        notifier: Notifier,
        tz: ZoneInfo | None = None,
        view: View = "month",
        anchor: date | None = None,
        today: Callable[[], date] | None = None,
    ):
        if view not in VIEWS:
            raise ValueError(f"Unknown calendar view: {view}")
        self._source = source
        self._notifier = notifier
        self._tz = tz or ZoneInfo("UTC")
        self._today = today or (lambda: datetime.now(self._tz).date())
        self.view: View = view
        self.anchor: date = anchor or self._today()
        self.loading = True

        self._active_types: frozenset[EventType] = DEFAULT_EVENT_TYPES
        self._server_events: tuple[CalendarEvent, ...] = ()
        self._local_meetings: list[MeetingEvent] = []
        self._events: tuple[CalendarEvent, ...] = ()
        self._generation = 0
        self._pending: set[asyncio.Task] = set()

    @property
    def events(self) -> tuple[CalendarEvent, ...]:
        return self._events

    @property
    def active_types(self) -> frozenset[EventType]:
        return self._active_types

    @property
    def local_meetings(self) -> tuple[MeetingEvent, ...]:
        return tuple(self._local_meetings)

    @property
    def window(self) -> VisibleWindow:
        return visible_window(self.anchor, self.view, self._tz)

    async def refresh(self) -> bool:
        self._generation += 1
        generation = self._generation
        window = self.window
        types = sorted(self._active_types)

        try:
            server_events = await self._source.get_events(window.start, window.end, types)
        except FetchError as e:
            if generation != self._generation:
                logger.debug("Ignoring failure of superseded fetch generation=%d", generation)
                return False
            logger.error("Failed to load calendar events for %s..%s: %s", window.start, window.end, e.message)
            self._notifier.error(LOAD_ERROR_MESSAGE)
            return False

        if generation != self._generation:
            logger.info(
                "Discarding stale calendar response generation=%d latest=%d",
                generation, self._generation,
            )
            return False

        self._server_events = tuple(server_events)
        self._local_meetings = reconcile_local_meetings(self._local_meetings, self._server_events)
        self._events = merge_events(self._server_events, self._local_meetings, self._active_types)
        self.loading = False
        logger.debug(
            "Rendered %d events (%d server, %d local) view=%s anchor=%s",
            len(self._events), len(self._server_events), len(self._local_meetings), self.view, self.anchor,
        )
        return True

    async def navigate(self, action: NavigateAction | date) -> bool:
        if isinstance(action, date):
            self.anchor = action
        elif action == "TODAY":
            self.anchor = self._today()
        elif action == "PREV":
            self.anchor = shift_anchor(self.anchor, self.view, -1)
        elif action == "NEXT":
            self.anchor = shift_anchor(self.anchor, self.view, 1)
        else:
            raise ValueError(f"Unknown navigation action: {action}")
        return await self.refresh()

    async def set_view(self, view: View) -> bool:
        if view not in VIEWS:
            raise ValueError(f"Unknown calendar view: {view}")
        self.view = view
        return await self.refresh()

    async def toggle_type(self, event_type: EventType | str) -> bool:
        event_type = EventType(event_type)
        if event_type in self._active_types:
            self._active_types = self._active_types - {event_type}
        else:
            self._active_types = self._active_types | {event_type}
        return await self.refresh()

    async def set_types(self, types: Iterable[EventType | str]) -> bool:
        self._active_types = frozenset(EventType(t) for t in types)
        return await self.refresh()

    async def add_local_meeting(self, created: CreatedMeeting) -> MeetingEvent:
        event = created.to_event()
        self._local_meetings.append(event)
        logger.info("Added local meeting %s starting %s", event.id, event.start)
        await self.refresh()
        return event

    def watch(self, result: "asyncio.Future[CreatedMeeting]") -> None:
        """Add the meeting produced by a creation flow once its result resolves."""

        def _on_done(future: "asyncio.Future[CreatedMeeting]") -> None:
            if future.cancelled():
                return
            if future.exception() is not None:
                logger.warning("Meeting creation result failed: %s", future.exception())
                return
            task = asyncio.ensure_future(self.add_local_meeting(future.result()))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        result.add_done_callback(_on_done)

    async def wait_pending(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending))

    def select_event(self, event: CalendarEvent) -> EventDetail:
        join_url = None
        if isinstance(event, MeetingEvent):
            description = event.metadata.description
            join_url = event.metadata.meeting_url
        else:
            description = getattr(event.metadata, "summary", None)

        label = format_date_label(event, self._tz)
        self._notifier.info(event.title, label)
        return EventDetail(
            id=event.id,
            type=event.type,
            title=event.title,
            start=event.start,
            end=event.end,
            all_day=event.all_day,
            date_label=label,
            description=description,
            join_url=join_url,
        )
