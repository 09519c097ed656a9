from datetime import timedelta

import httpx


class MeetingProviderConfig:
    GOOGLE_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
    GOOGLE_CLIENT_ID_SUFFIX = ".apps.googleusercontent.com"
    GOOGLE_CLIENT_ID_MIN_LENGTH = 20
    GRAPH_API_BASE_URL = "https://graph.microsoft.com/v1.0"
    REQUEST_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class MeetingDefaults:
    DURATION_MINUTES = 30
    DURATION_STEP_MINUTES = 15
    PROVIDER = "google"


class CalendarViewConfig:
    AGENDA_LENGTH = timedelta(days=30)
    PREFETCH_MONTHS = 1


EVENT_COLORS = {
    "LEASE_START": "#3b82f6",
    "LEASE_END": "#8b5cf6",
    "PAYMENT_DUE": "#10b981",
    "WORK_ORDER": "#f59e0b",
    "FOLLOW_UP": "#ec4899",
    "MEETING": "#0ea5e9",
}
DEFAULT_EVENT_COLOR = "#6b7280"
EVENT_TEXT_COLOR = "white"
