import logging
import traceback

from fastapi import HTTPException

logger = logging.getLogger(__name__)


class CalendarError(Exception):
    """Base class for errors surfaced to the calendar page as notifications."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(CalendarError):
    """A required meeting field is missing or malformed."""


class ProviderError(CalendarError):
    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(message)


class ProviderNotConfiguredError(ProviderError):
    def __init__(self, provider: str):
        super().__init__(provider, f"Meeting provider {provider} is not configured")


class ProviderNotSignedInError(ProviderError):
    def __init__(self, provider: str):
        super().__init__(provider, f"Not signed in to meeting provider {provider}")


class ProviderRequestError(ProviderError):
    def __init__(self, provider: str, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(provider, message)


class FetchError(CalendarError):
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        if status_code is not None:
            message = f"{message} (status {status_code})"
        super().__init__(message)


SAFE_ERROR_MESSAGES = {
    400: "Invalid request",
    404: "Resource not found",
    429: "Too many requests, please try again later",
    500: "An internal error occurred",
    502: "Service temporarily unavailable",
    503: "Service temporarily unavailable",
    504: "Request timed out",
}


def get_safe_message(status_code: int, fallback: str = "An error occurred") -> str:
    return SAFE_ERROR_MESSAGES.get(status_code, fallback)


def handle_unexpected_error(e: Exception, operation: str = "operation", detail: str | None = None):
    logger.error(
        "Unexpected error during %s: %s\n%s",
        operation, str(e), traceback.format_exc()
    )
    raise HTTPException(status_code=500, detail=detail or get_safe_message(500))
