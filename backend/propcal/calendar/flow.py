"""Meeting creation dialog workflow.

The flow walks ``IDLE -> PROVIDER_SELECTED -> NOT_CONFIGURED | NOT_SIGNED_IN |
READY -> SUBMITTING -> CREATED`` and hands the created meeting to whoever
opened it through a single-shot future returned by ``open()``.
"""
import asyncio
import logging
from enum import StrEnum
from zoneinfo import ZoneInfo

from propcal.calendar.constants import MeetingDefaults
from propcal.calendar.helpers import combine_local, compute_end_time, parse_attendees, validate_duration
from propcal.calendar.models import PROVIDERS, CreatedMeeting, MeetingDetails, MeetingRequest
from propcal.calendar.notifications import Notifier
from propcal.calendar.providers import MeetingProviderAdapter
from propcal.core.exceptions import CalendarError, ProviderError, ValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"
FORM_FIELDS = ("title", "date", "time", "duration", "description", "attendees")


class FlowState(StrEnum):
    IDLE = "idle"
    PROVIDER_SELECTED = "provider_selected"
    NOT_CONFIGURED = "not_configured"
    NOT_SIGNED_IN = "not_signed_in"
    READY = "ready"
    SUBMITTING = "submitting"
    CREATED = "created"


class MeetingCreationFlow:
    def __init__(self, adapter: MeetingProviderAdapter, notifier: Notifier, tz: ZoneInfo | None = None):
        self._adapter = adapter
        self._notifier = notifier
        self._tz = tz or ZoneInfo("UTC")
        self._result: asyncio.Future[CreatedMeeting] | None = None
        self._reset_fields()
        self.provider = MeetingDefaults.PROVIDER
        self.state = FlowState.IDLE

    def _reset_fields(self) -> None:
        self.title = ""
        self.date = ""
        self.time = ""
        self.duration: int | str = MeetingDefaults.DURATION_MINUTES
        self.description = ""
        self.attendees = ""
        self.created: MeetingDetails | None = None
        self.error: str | None = None

    @property
    def join_url(self) -> str | None:
        return self.created.join_url if self.created else None

    @property
    def result(self) -> asyncio.Future[CreatedMeeting] | None:
        return self._result

    def open(self) -> asyncio.Future[CreatedMeeting]:
        self.close()
        self._result = asyncio.get_running_loop().create_future()
        self.select_provider(self.provider)
        return self._result

    def close(self) -> None:
        if self._result is not None and not self._result.done():
            self._result.cancel()
        self._result = None
        self._reset_fields()
        self.state = FlowState.IDLE

    def select_provider(self, provider: str) -> FlowState:
        if self.state in (FlowState.SUBMITTING, FlowState.CREATED):
            raise CalendarError(f"Cannot change provider while {self.state}")
        if provider not in PROVIDERS:
            raise ValidationError(f"Unknown meeting provider: {provider}")
        self.provider = provider
        self.state = FlowState.PROVIDER_SELECTED
        return self._evaluate()

    def _evaluate(self) -> FlowState:
        if not self._adapter.is_configured(self.provider):
            self.state = FlowState.NOT_CONFIGURED
        elif not self._adapter.is_signed_in(self.provider):
            self.state = FlowState.NOT_SIGNED_IN
        else:
            self.state = FlowState.READY
        return self.state

    async def sign_in(self) -> FlowState:
        try:
            await self._adapter.sign_in(self.provider)
        except ProviderError as e:
            logger.warning("Sign-in to %s failed: %s", self.provider, e.message)
            self._report(f"Failed to sign in to {self._adapter.display_name(self.provider)}")
        return self._evaluate()

    def update(self, **fields) -> None:
        unknown = set(fields) - set(FORM_FIELDS)
        if unknown:
            raise ValueError(f"Unknown meeting fields: {', '.join(sorted(unknown))}")
        for name, value in fields.items():
            setattr(self, name, value)

    def build_request(self) -> MeetingRequest:
        if not self.title or not self.date or not self.time:
            raise ValidationError(REQUIRED_FIELDS_MESSAGE)
        minutes = validate_duration(self.duration)
        start = combine_local(self.date, self.time, self._tz)
        return MeetingRequest(
            title=self.title,
            start_time=start,
            end_time=compute_end_time(start, minutes),
            description=self.description,
            attendees=parse_attendees(self.attendees),
            timezone=self._tz.key,
        )

    async def submit(self) -> MeetingDetails | None:
        if self.state != FlowState.READY:
            raise CalendarError(f"Meeting cannot be submitted while {self.state}")

        try:
            request = self.build_request()
        except ValidationError as e:
            self._report(e.message)
            return None

        self.state = FlowState.SUBMITTING
        self.error = None
        try:
            details = await self._adapter.create_meeting(self.provider, request)
        except ProviderError as e:
            logger.error("Meeting creation via %s failed: %s", self.provider, e.message)
            self._report("Failed to create meeting")
            self.state = FlowState.READY
            return None
        except Exception:
            logger.exception("Unexpected error creating %s meeting", self.provider)
            self._report("Failed to create meeting")
            self.state = FlowState.READY
            raise

        self.created = details
        self.state = FlowState.CREATED
        if self._result is not None and not self._result.done():
            self._result.set_result(CreatedMeeting(details=details, request=request))
        self._notifier.success("Meeting created successfully!")
        return details

    def _report(self, message: str) -> None:
        self.error = message
        self._notifier.error(message)
