import logging

from supabase import Client

from propcal.core.db_utils import Row, all_rows

logger = logging.getLogger(__name__)


def get_leases_in_window(supabase: Client, start: str, end: str) -> list[Row]:
    result = (
        supabase
        .table("leases")
        .select(
            "id, tenant_id, start_date, end_date,"
            " tenants(id, name),"
            " units(id, unit_number, properties(id, name))"
        )
        .or_(
            f"and(start_date.gte.{start},start_date.lte.{end}),"
            f"and(end_date.gte.{start},end_date.lte.{end})"
        )
        .execute()
    )
    return all_rows(result.data)


def get_payments_due(supabase: Client, start: str, end: str) -> list[Row]:
    result = (
        supabase
        .table("payments")
        .select("id, amount, status, due_date, lease_id, leases(tenant_id, tenants(id, name))")
        .gte("due_date", start)
        .lte("due_date", end)
        .execute()
    )
    return all_rows(result.data)


def get_scheduled_work_orders(supabase: Client, start: str, end: str) -> list[Row]:
    result = (
        supabase
        .table("work_orders")
        .select("id, title, priority, status, scheduled_date, units(unit_number, properties(name))")
        .gte("scheduled_date", start)
        .lte("scheduled_date", end)
        .execute()
    )
    return all_rows(result.data)


def get_follow_ups(supabase: Client, start: str, end: str) -> list[Row]:
    result = (
        supabase
        .table("communications")
        .select("id, tenant_id, summary, follow_up_date, tenants(id, name)")
        .eq("follow_up_required", True)
        .gte("follow_up_date", start)
        .lte("follow_up_date", end)
        .execute()
    )
    return all_rows(result.data)


def get_meetings(supabase: Client, start: str, end: str) -> list[Row]:
    result = (
        supabase
        .table("meetings")
        .select(
            "id, title, provider, provider_event_id, join_url, description,"
            " attendees, organizer, start_time, end_time"
        )
        .gte("start_time", start)
        .lte("start_time", end)
        .execute()
    )
    return all_rows(result.data)
