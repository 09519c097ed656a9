import logging
from datetime import datetime
from typing import Iterable

from pydantic import ValidationError as ModelValidationError
from supabase import Client

from propcal.calendar import db
from propcal.calendar.helpers import to_iso_utc
from propcal.calendar.models import (
    ALL_EVENT_TYPES,
    CalendarEvent,
    EventType,
    FollowUpEvent,
    FollowUpMetadata,
    LeaseEndEvent,
    LeaseMetadata,
    LeaseStartEvent,
    MeetingEvent,
    MeetingMetadata,
    PaymentDueEvent,
    PaymentMetadata,
    WorkOrderEvent,
    WorkOrderMetadata,
    as_utc,
)
from propcal.core.db_utils import Row, parse_timestamp, related

logger = logging.getLogger(__name__)


def _lease_metadata(lease: Row) -> LeaseMetadata:
    tenant = related(lease, "tenants")
    unit = related(lease, "units")
    return LeaseMetadata(
        lease_id=str(lease["id"]),
        tenant_id=lease.get("tenant_id"),
        tenant_name=tenant.get("name"),
        property=related(unit, "properties").get("name"),
        unit=unit.get("unit_number"),
    )


def lease_events(leases: list[Row], start: datetime, end: datetime, types: frozenset[EventType]) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    for lease in leases:
        tenant_name = related(lease, "tenants").get("name") or "Unknown"
        lease_start = parse_timestamp(lease.get("start_date"))
        lease_end = parse_timestamp(lease.get("end_date"))

        if EventType.LEASE_START in types and lease_start and start <= lease_start <= end:
            events.append(LeaseStartEvent(
                id=f"lease-start-{lease['id']}",
                title=f"Lease Start - {tenant_name}",
                start=lease_start,
                end=lease_start,
                all_day=True,
                metadata=_lease_metadata(lease),
            ))

        if EventType.LEASE_END in types and lease_end and start <= lease_end <= end:
            events.append(LeaseEndEvent(
                id=f"lease-end-{lease['id']}",
                title=f"Lease Expiring - {tenant_name}",
                start=lease_end,
                end=lease_end,
                all_day=True,
                metadata=_lease_metadata(lease),
            ))
    return events


def payment_events(payments: list[Row]) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    for payment in payments:
        due = parse_timestamp(payment.get("due_date"))
        if due is None:
            continue
        lease = related(payment, "leases")
        tenant_name = related(lease, "tenants").get("name") or "Unknown"
        amount = int(payment.get("amount") or 0)
        events.append(PaymentDueEvent(
            id=f"payment-{payment['id']}",
            title=f"Rent Due - {tenant_name} (${amount / 100:.0f})",
            start=due,
            end=due,
            all_day=True,
            metadata=PaymentMetadata(
                payment_id=str(payment["id"]),
                tenant_id=lease.get("tenant_id"),
                tenant_name=tenant_name,
                amount=amount,
                status=payment.get("status"),
            ),
        ))
    return events


def work_order_events(work_orders: list[Row]) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    for order in work_orders:
        scheduled = parse_timestamp(order.get("scheduled_date"))
        if scheduled is None:
            continue
        unit = related(order, "units")
        events.append(WorkOrderEvent(
            id=f"work-order-{order['id']}",
            title=f"Work Order - {order.get('title') or 'Untitled'}",
            start=scheduled,
            end=scheduled,
            all_day=True,
            metadata=WorkOrderMetadata(
                work_order_id=str(order["id"]),
                property=related(unit, "properties").get("name"),
                unit=unit.get("unit_number"),
                priority=order.get("priority"),
                status=order.get("status"),
            ),
        ))
    return events


def follow_up_events(communications: list[Row]) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    for comm in communications:
        follow_up = parse_timestamp(comm.get("follow_up_date"))
        if follow_up is None:
            continue
        tenant_name = related(comm, "tenants").get("name")
        events.append(FollowUpEvent(
            id=f"follow-up-{comm['id']}",
            title=f"Follow-up - {tenant_name or 'Unknown'}",
            start=follow_up,
            end=follow_up,
            all_day=True,
            metadata=FollowUpMetadata(
                communication_id=str(comm["id"]),
                tenant_id=comm.get("tenant_id"),
                tenant_name=tenant_name,
                summary=comm.get("summary"),
            ),
        ))
    return events


def meeting_events(meetings: list[Row]) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    for meeting in meetings:
        starts = parse_timestamp(meeting.get("start_time"))
        if starts is None:
            continue
        ends = parse_timestamp(meeting.get("end_time")) or starts
        try:
            events.append(MeetingEvent(
                id=f"meeting-{meeting['id']}",
                title=meeting.get("title") or "Meeting",
                start=starts,
                end=ends,
                all_day=False,
                metadata=MeetingMetadata(
                    meeting_url=meeting.get("join_url"),
                    provider=meeting.get("provider"),
                    description=meeting.get("description"),
                    attendees=meeting.get("attendees") or [],
                    provider_event_id=meeting.get("provider_event_id"),
                    organizer=meeting.get("organizer"),
                ),
            ))
        except ModelValidationError as e:
            logger.warning("Skipping invalid meeting row %s: %d error(s)", meeting.get("id"), e.error_count())
    return events


def build_calendar_events(
    supabase: Client,
    start: datetime,
    end: datetime,
    types: Iterable[EventType] | None = None,
) -> list[CalendarEvent]:
    requested = frozenset(types) if types else ALL_EVENT_TYPES
    start, end = as_utc(start), as_utc(end)
    start_iso, end_iso = to_iso_utc(start), to_iso_utc(end)
    events: list[CalendarEvent] = []

    if EventType.LEASE_START in requested or EventType.LEASE_END in requested:
        events.extend(lease_events(db.get_leases_in_window(supabase, start_iso, end_iso), start, end, requested))

    if EventType.PAYMENT_DUE in requested:
        events.extend(payment_events(db.get_payments_due(supabase, start_iso, end_iso)))

    if EventType.WORK_ORDER in requested:
        events.extend(work_order_events(db.get_scheduled_work_orders(supabase, start_iso, end_iso)))

    if EventType.FOLLOW_UP in requested:
        events.extend(follow_up_events(db.get_follow_ups(supabase, start_iso, end_iso)))

    if EventType.MEETING in requested:
        events.extend(meeting_events(db.get_meetings(supabase, start_iso, end_iso)))

    events.sort(key=lambda e: e.start)
    logger.info(
        "Built %d calendar events window=%s..%s types=%s",
        len(events), start_iso, end_iso, ",".join(sorted(requested)),
    )
    return events
