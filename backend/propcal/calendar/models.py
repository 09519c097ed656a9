from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel

Provider = Literal["google", "teams"]
PROVIDERS: tuple[Provider, ...] = ("google", "teams")


class EventType(StrEnum):
    LEASE_START = "LEASE_START"
    LEASE_END = "LEASE_END"
    PAYMENT_DUE = "PAYMENT_DUE"
    WORK_ORDER = "WORK_ORDER"
    FOLLOW_UP = "FOLLOW_UP"
    MEETING = "MEETING"


ALL_EVENT_TYPES: frozenset[EventType] = frozenset(EventType)
DEFAULT_EVENT_TYPES: frozenset[EventType] = ALL_EVENT_TYPES - {EventType.WORK_ORDER}


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; leave aware ones untouched."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class LeaseMetadata(CamelModel):
    lease_id: str | None = None
    tenant_id: str | None = None
    tenant_name: str | None = None
    property: str | None = None
    unit: str | None = None


class PaymentMetadata(CamelModel):
    payment_id: str | None = None
    tenant_id: str | None = None
    tenant_name: str | None = None
    amount: int | None = None
    status: str | None = None


class WorkOrderMetadata(CamelModel):
    work_order_id: str | None = None
    property: str | None = None
    unit: str | None = None
    priority: str | None = None
    status: str | None = None


class FollowUpMetadata(CamelModel):
    communication_id: str | None = None
    tenant_id: str | None = None
    tenant_name: str | None = None
    summary: str | None = None


class MeetingMetadata(CamelModel):
    meeting_url: str | None = None
    provider: Provider | None = None
    description: str | None = None
    attendees: list[str] = Field(default_factory=list)
    provider_event_id: str | None = None
    organizer: str | None = None


class _EventBase(CamelModel):
    id: str
    title: str
    start: datetime
    end: datetime
    all_day: bool = False

    @field_validator("start", "end")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def validate_ordering(self):
        if self.start > self.end:
            raise ValueError(f"event {self.id} starts after it ends")
        return self

    @property
    def event_type(self) -> EventType:
        return EventType(self.type)  # type: ignore[attr-defined]


class LeaseStartEvent(_EventBase):
    type: Literal["LEASE_START"] = "LEASE_START"
    metadata: LeaseMetadata = Field(default_factory=LeaseMetadata)


class LeaseEndEvent(_EventBase):
    type: Literal["LEASE_END"] = "LEASE_END"
    metadata: LeaseMetadata = Field(default_factory=LeaseMetadata)


class PaymentDueEvent(_EventBase):
    type: Literal["PAYMENT_DUE"] = "PAYMENT_DUE"
    metadata: PaymentMetadata = Field(default_factory=PaymentMetadata)


class WorkOrderEvent(_EventBase):
    type: Literal["WORK_ORDER"] = "WORK_ORDER"
    metadata: WorkOrderMetadata = Field(default_factory=WorkOrderMetadata)


class FollowUpEvent(_EventBase):
    type: Literal["FOLLOW_UP"] = "FOLLOW_UP"
    metadata: FollowUpMetadata = Field(default_factory=FollowUpMetadata)


class MeetingEvent(_EventBase):
    type: Literal["MEETING"] = "MEETING"
    metadata: MeetingMetadata = Field(default_factory=MeetingMetadata)


CalendarEvent = Annotated[
    Union[
        LeaseStartEvent,
        LeaseEndEvent,
        PaymentDueEvent,
        WorkOrderEvent,
        FollowUpEvent,
        MeetingEvent,
    ],
    Field(discriminator="type"),
]

_event_adapter: TypeAdapter[CalendarEvent] = TypeAdapter(CalendarEvent)


def parse_event(payload: dict[str, Any]) -> CalendarEvent:
    return _event_adapter.validate_python(payload)


def dump_event(event: CalendarEvent) -> dict[str, Any]:
    return event.model_dump(mode="json", by_alias=True)


class MeetingRequest(BaseModel):
    title: str
    start_time: datetime
    end_time: datetime
    description: str = ""
    attendees: list[str] = Field(default_factory=list)
    timezone: str = "UTC"

    @field_validator("start_time", "end_time")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def validate_ordering(self):
        if self.start_time > self.end_time:
            raise ValueError("meeting starts after it ends")
        return self


class MeetingDetails(CamelModel):
    id: str
    title: str
    start_time: str
    end_time: str
    join_url: str
    organizer: str = ""
    type: Provider


class CreatedMeeting(BaseModel):
    """A provider meeting plus the inputs the provider response may not echo back."""

    model_config = ConfigDict(frozen=True)

    details: MeetingDetails
    request: MeetingRequest

    @property
    def description(self) -> str:
        return self.request.description

    @property
    def attendees(self) -> list[str]:
        return list(self.request.attendees)

    def to_event(self) -> MeetingEvent:
        return MeetingEvent(
            id=f"meeting-{self.details.type}-{self.details.id}",
            title=self.details.title or self.request.title,
            start=self.request.start_time,
            end=self.request.end_time,
            all_day=False,
            metadata=MeetingMetadata(
                meeting_url=self.details.join_url or None,
                provider=self.details.type,
                description=self.request.description or None,
                attendees=list(self.request.attendees),
                provider_event_id=self.details.id,
                organizer=self.details.organizer or None,
            ),
        )


class EventDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    title: str
    start: datetime
    end: datetime
    all_day: bool
    date_label: str
    description: str | None = None
    join_url: str | None = None

    @property
    def can_join(self) -> bool:
        return self.type == EventType.MEETING and bool(self.join_url)
