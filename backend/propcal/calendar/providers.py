"""Meeting provider adapters.

Each provider turns a ``MeetingRequest`` into a remote video meeting and
normalizes the answer into ``MeetingDetails``. Sign-in is owned by an external
OAuth flow: the provider only holds the session access token handed back by
an injected authorizer, and forgets it when the remote API rejects it.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable
from zoneinfo import ZoneInfo

import httpx

from propcal.calendar.constants import MeetingProviderConfig
from propcal.calendar.helpers import to_iso_utc
from propcal.calendar.models import MeetingDetails, MeetingRequest, Provider
from propcal.config import Settings
from propcal.core.exceptions import (
    ProviderError,
    ProviderNotConfiguredError,
    ProviderNotSignedInError,
    ProviderRequestError,
)

logger = logging.getLogger(__name__)

Authorizer = Callable[[Provider], Awaitable[str | None]]

GOOGLE_REVOKE_URL = "https://oauth2.googleapis.com/revoke"


def extract_error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error", {}).get("message", "") or ""
    except (ValueError, AttributeError):
        return ""


class MeetingProvider(ABC):
    name: Provider
    display_name: str

    def __init__(
        self,
        http: httpx.AsyncClient,
        client_id: str,
        authorizer: Authorizer | None = None,
        api_base_url: str = "",
    ):
        self._http = http
        self._client_id = client_id
        self._authorizer = authorizer
        self._api_base_url = api_base_url.rstrip("/")
        self._access_token: str | None = None

    @abstractmethod
    def is_configured(self) -> bool:
        raise NotImplementedError

    def is_signed_in(self) -> bool:
        return self._access_token is not None

    async def sign_in(self) -> None:
        if not self.is_configured() or self._authorizer is None:
            raise ProviderNotConfiguredError(self.name)
        try:
            token = await self._authorizer(self.name)
        except ProviderError:
            raise
        except Exception as e:
            logger.warning("Sign-in to %s failed: %s", self.name, e)
            raise ProviderRequestError(self.name, f"Failed to sign in to {self.display_name}") from e
        if not token:
            raise ProviderNotSignedInError(self.name)
        self._access_token = token
        logger.info("Signed in to %s", self.name)

    async def sign_out(self) -> None:
        self._access_token = None
        logger.info("Signed out of %s", self.name)

    async def create_meeting(self, request: MeetingRequest) -> MeetingDetails:
        self._ensure_ready()
        body = await self._request("POST", self._create_path(), json=self.build_event(request), params=self._create_params())
        details = self.to_details(body)
        logger.info("Created %s meeting id=%s", self.name, details.id)
        return details

    async def list_meetings(self, time_min: datetime, time_max: datetime) -> list[MeetingDetails]:
        self._ensure_ready()
        path, params = self._list_query(time_min, time_max)
        body = await self._request("GET", path, params=params)
        return self.to_details_list(body)

    @abstractmethod
    def build_event(self, request: MeetingRequest) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def to_details(self, body: dict[str, Any]) -> MeetingDetails:
        raise NotImplementedError

    @abstractmethod
    def to_details_list(self, body: dict[str, Any]) -> list[MeetingDetails]:
        raise NotImplementedError

    @abstractmethod
    def _create_path(self) -> str:
        raise NotImplementedError

    def _create_params(self) -> dict[str, str] | None:
        return None

    @abstractmethod
    def _list_query(self, time_min: datetime, time_max: datetime) -> tuple[str, dict[str, str]]:
        raise NotImplementedError

    def _ensure_ready(self) -> None:
        if not self.is_configured():
            raise ProviderNotConfiguredError(self.name)
        if not self.is_signed_in():
            raise ProviderNotSignedInError(self.name)

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        try:
            response = await self._http.request(
                method,
                f"{self._api_base_url}/{path}",
                headers={"Authorization": f"Bearer {self._access_token}"},
                **kwargs,
            )
        except httpx.TimeoutException as e:
            raise ProviderRequestError(self.name, f"{self.display_name} request timed out", 504) from e
        except httpx.HTTPError as e:
            raise ProviderRequestError(self.name, f"Network error contacting {self.display_name}", 503) from e
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        status = response.status_code
        if 200 <= status < 300:
            if status == 204:
                return {}
            try:
                return response.json()
            except ValueError:
                raise ProviderRequestError(self.name, f"{self.display_name} returned an invalid body", status)

        if status == 401:
            # token expired or revoked: the user has to go through sign-in again
            self._access_token = None
            raise ProviderNotSignedInError(self.name)

        message = extract_error_message(response) or f"{self.display_name} API error"
        raise ProviderRequestError(self.name, message, status)


class GoogleMeetProvider(MeetingProvider):
    name: Provider = "google"
    display_name = "Google"

    def __init__(self, http: httpx.AsyncClient, client_id: str, authorizer: Authorizer | None = None,
                 api_base_url: str = MeetingProviderConfig.GOOGLE_API_BASE_URL):
        super().__init__(http, client_id, authorizer, api_base_url)

    def is_configured(self) -> bool:
        return (
            len(self._client_id) > MeetingProviderConfig.GOOGLE_CLIENT_ID_MIN_LENGTH
            and MeetingProviderConfig.GOOGLE_CLIENT_ID_SUFFIX in self._client_id
        )

    async def sign_out(self) -> None:
        token = self._access_token
        if token:
            try:
                await self._http.post(GOOGLE_REVOKE_URL, params={"token": token})
            except httpx.HTTPError as e:
                logger.warning("Failed to revoke Google token: %s", e)
        await super().sign_out()

    def build_event(self, request: MeetingRequest) -> dict[str, Any]:
        event: dict[str, Any] = {
            "summary": request.title,
            "description": request.description or "",
            "start": {"dateTime": request.start_time.isoformat(), "timeZone": request.timezone},
            "end": {"dateTime": request.end_time.isoformat(), "timeZone": request.timezone},
            "conferenceData": {
                "createRequest": {
                    "requestId": uuid.uuid4().hex,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                },
            },
        }
        if request.attendees:
            event["attendees"] = [{"email": email} for email in request.attendees]
        return event

    def _create_path(self) -> str:
        return "calendars/primary/events"

    def _create_params(self) -> dict[str, str]:
        return {"conferenceDataVersion": "1", "sendUpdates": "all"}

    def _list_query(self, time_min: datetime, time_max: datetime) -> tuple[str, dict[str, str]]:
        return "calendars/primary/events", {
            "timeMin": to_iso_utc(time_min),
            "timeMax": to_iso_utc(time_max),
            "showDeleted": "false",
            "singleEvents": "true",
            "orderBy": "startTime",
        }

    @staticmethod
    def _join_url(event: dict[str, Any]) -> str:
        if event.get("hangoutLink"):
            return event["hangoutLink"]
        for entry in (event.get("conferenceData") or {}).get("entryPoints", []):
            if entry.get("entryPointType") == "video" and entry.get("uri"):
                return entry["uri"]
        return ""

    def to_details(self, body: dict[str, Any]) -> MeetingDetails:
        start = body.get("start") or {}
        end = body.get("end") or {}
        return MeetingDetails(
            id=body["id"],
            title=body.get("summary", ""),
            start_time=start.get("dateTime") or start.get("date", ""),
            end_time=end.get("dateTime") or end.get("date", ""),
            join_url=self._join_url(body),
            organizer=(body.get("organizer") or {}).get("email", ""),
            type="google",
        )

    def to_details_list(self, body: dict[str, Any]) -> list[MeetingDetails]:
        return [self.to_details(item) for item in body.get("items", []) if item.get("hangoutLink")]


class TeamsProvider(MeetingProvider):
    name: Provider = "teams"
    display_name = "Microsoft Teams"

    def __init__(self, http: httpx.AsyncClient, client_id: str, authorizer: Authorizer | None = None,
                 api_base_url: str = MeetingProviderConfig.GRAPH_API_BASE_URL):
        super().__init__(http, client_id, authorizer, api_base_url)

    def is_configured(self) -> bool:
        return bool(self._client_id.strip())

    @staticmethod
    def _graph_time(value: datetime, tz_name: str) -> dict[str, str]:
        # Graph wants wall-clock time plus a separate zone name
        local = value.astimezone(ZoneInfo(tz_name)).replace(tzinfo=None)
        return {"dateTime": local.isoformat(), "timeZone": tz_name}

    def build_event(self, request: MeetingRequest) -> dict[str, Any]:
        event: dict[str, Any] = {
            "subject": request.title,
            "body": {"contentType": "HTML", "content": request.description or ""},
            "start": self._graph_time(request.start_time, request.timezone),
            "end": self._graph_time(request.end_time, request.timezone),
            "isOnlineMeeting": True,
        }
        if request.attendees:
            event["attendees"] = [
                {"emailAddress": {"address": email}, "type": "required"}
                for email in request.attendees
            ]
        return event

    def _create_path(self) -> str:
        return "me/events"

    def _list_query(self, time_min: datetime, time_max: datetime) -> tuple[str, dict[str, str]]:
        return "me/events", {
            "$filter": (
                f"start/dateTime ge '{to_iso_utc(time_min)}' and end/dateTime le '{to_iso_utc(time_max)}'"
                " and isOnlineMeeting eq true"
            ),
        }

    def to_details(self, body: dict[str, Any]) -> MeetingDetails:
        return MeetingDetails(
            id=body["id"],
            title=body.get("subject", ""),
            start_time=(body.get("start") or {}).get("dateTime", ""),
            end_time=(body.get("end") or {}).get("dateTime", ""),
            join_url=(body.get("onlineMeeting") or {}).get("joinUrl", ""),
            organizer=((body.get("organizer") or {}).get("emailAddress") or {}).get("address", ""),
            type="teams",
        )

    def to_details_list(self, body: dict[str, Any]) -> list[MeetingDetails]:
        return [self.to_details(item) for item in body.get("value", [])]


class MeetingProviderAdapter:
    """Uniform access to the configured meeting providers, keyed by provider tag."""

    def __init__(self, providers: Iterable[MeetingProvider]):
        self._providers: dict[str, MeetingProvider] = {p.name: p for p in providers}

    @classmethod
    def from_settings(cls, http: httpx.AsyncClient, settings: Settings, authorizer: Authorizer | None = None):
        return cls([
            GoogleMeetProvider(http, settings.GOOGLE_CLIENT_ID, authorizer),
            TeamsProvider(http, settings.MICROSOFT_CLIENT_ID, authorizer),
        ])

    def _get(self, provider: str) -> MeetingProvider:
        try:
            return self._providers[provider]
        except KeyError:
            raise ProviderNotConfiguredError(provider)

    def display_name(self, provider: str) -> str:
        p = self._providers.get(provider)
        return p.display_name if p else provider

    def is_configured(self, provider: str) -> bool:
        p = self._providers.get(provider)
        return p is not None and p.is_configured()

    def is_signed_in(self, provider: str) -> bool:
        p = self._providers.get(provider)
        return p is not None and p.is_signed_in()

    async def sign_in(self, provider: str) -> None:
        await self._get(provider).sign_in()

    async def sign_out(self, provider: str) -> None:
        await self._get(provider).sign_out()

    async def create_meeting(self, provider: str, request: MeetingRequest) -> MeetingDetails:
        p = self._get(provider)
        if not p.is_configured():
            raise ProviderNotConfiguredError(provider)
        if not p.is_signed_in():
            raise ProviderNotSignedInError(provider)
        try:
            return await p.create_meeting(request)
        except ProviderError as e:
            logger.error("Error creating %s meeting: %s", provider, e.message)
            raise

    async def list_meetings(self, provider: str, time_min: datetime, time_max: datetime) -> list[MeetingDetails]:
        return await self._get(provider).list_meetings(time_min, time_max)
