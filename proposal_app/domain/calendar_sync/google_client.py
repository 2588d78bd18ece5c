"""
Google OAuth and Calendar API client

The only module that touches raw Google JSON. Everything above it works with
the typed models below and the exceptions from .exceptions.
"""

import logging
from datetime import datetime
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .exceptions import AuthExchangeError, CalendarFetchError, CalendarUnauthorized, TokenRefreshError

logger = logging.getLogger(__name__)

# Google OAuth URLs
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"  # noqa: S105 - OAuth endpoint URL
GOOGLE_REVOKE_URL = "https://oauth2.googleapis.com/revoke"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"

GOOGLE_CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/userinfo.email",
]

DEFAULT_EXPIRES_IN = 3600


class TokenGrant(BaseModel):
    """Successful response from the token endpoint"""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = DEFAULT_EXPIRES_IN
    scope: Optional[str] = None
    token_type: Optional[str] = None


class GoogleUserInfo(BaseModel):
    email: Optional[str] = None


class EventTime(BaseModel):
    """start/end of an event: dateTime for timed events, date for all-day ones"""

    model_config = ConfigDict(populate_by_name=True)

    date_time: Optional[str] = Field(default=None, alias="dateTime")
    date: Optional[str] = None
    time_zone: Optional[str] = Field(default=None, alias="timeZone")


class EventAttendee(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    resource: bool = False
    response_status: Optional[str] = Field(default=None, alias="responseStatus")


class ConferenceEntryPoint(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    entry_point_type: Optional[str] = Field(default=None, alias="entryPointType")
    uri: Optional[str] = None


class ConferenceData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    entry_points: list[ConferenceEntryPoint] = Field(default_factory=list, alias="entryPoints")


class CalendarEvent(BaseModel):
    """Subset of a Google Calendar event resource used by the sync pipeline"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    status: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start: EventTime = Field(default_factory=EventTime)
    end: EventTime = Field(default_factory=EventTime)
    attendees: list[EventAttendee] = Field(default_factory=list)
    hangout_link: Optional[str] = Field(default=None, alias="hangoutLink")
    conference_data: Optional[ConferenceData] = Field(default=None, alias="conferenceData")


def _error_fields(response: httpx.Response) -> tuple[Optional[str], Optional[str]]:
    """Extract (error, error_description) from an OAuth error body, tolerating non-JSON"""
    try:
        body = response.json()
    except ValueError:
        return None, response.text[:200] or None
    if not isinstance(body, dict):
        return None, None
    error = body.get("error")
    if isinstance(error, dict):
        # Google APIs (not the OAuth endpoint) nest the error object
        return error.get("status"), error.get("message")
    return error, body.get("error_description")


class GoogleApiClient:
    """Async client for Google's OAuth and Calendar endpoints"""

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.transport = transport
        self.timeout = timeout

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def _post_token(self, data: dict[str, Any]) -> httpx.Response:
        async with self._http() as client:
            return await client.post(
                GOOGLE_TOKEN_URL,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )

    async def exchange_authorization_code(self, code: str, code_verifier: str, redirect_uri: str) -> TokenGrant:
        """Exchange an authorization code (PKCE) for tokens"""
        try:
            response = await self._post_token(
                {
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                    "code_verifier": code_verifier,
                }
            )
        except httpx.HTTPError as e:
            logger.error(f"❌ Token exchange request failed: {e}")
            raise AuthExchangeError("Could not reach Google to authenticate") from e

        if not response.is_success:
            error, description = _error_fields(response)
            logger.error(f"❌ Token exchange failed: HTTP {response.status_code} {error}")
            raise AuthExchangeError(description or error or "Google authentication failed", provider_error=error)

        body = response.json()
        if not body.get("access_token"):
            raise AuthExchangeError("Invalid token response")
        return TokenGrant.model_validate(body)

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Trade a refresh token for a new access token"""
        try:
            response = await self._post_token(
                {
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                }
            )
        except httpx.HTTPError as e:
            logger.error(f"❌ Token refresh request failed: {e}")
            raise TokenRefreshError("Could not reach Google to refresh the token") from e

        if not response.is_success:
            error, description = _error_fields(response)
            logger.error(f"❌ Token refresh failed: HTTP {response.status_code} {error}")
            raise TokenRefreshError(description or error or "Failed to refresh token", provider_error=error)

        body = response.json()
        if not body.get("access_token"):
            raise TokenRefreshError("No access token in refresh response")
        return TokenGrant.model_validate(body)

    async def get_user_info(self, access_token: str) -> GoogleUserInfo:
        """Fetch the Google account email. Informational only, so failures yield an empty result."""
        try:
            async with self._http() as client:
                response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Failed to get Google user info: {e}")
            return GoogleUserInfo()

        if not response.is_success:
            logger.warning(f"⚠️ Failed to get Google user info: HTTP {response.status_code}")
            return GoogleUserInfo()
        return GoogleUserInfo.model_validate(response.json())

    async def revoke_token(self, token: str) -> bool:
        """Revoke a token at Google; returns False when Google refuses"""
        async with self._http() as client:
            response = await client.post(
                GOOGLE_REVOKE_URL,
                data={"token": token},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        return response.is_success

    async def list_events(
        self,
        access_token: str,
        time_min: datetime,
        time_max: datetime,
        calendar_id: str = "primary",
        max_results: int = 250,
    ) -> list[CalendarEvent]:
        """
        Fetch one page of events in [time_min, time_max), recurring events
        expanded to single instances and ordered by start time.

        Datetimes are naive UTC.
        """
        params = {
            "timeMin": f"{time_min.replace(microsecond=0).isoformat()}Z",
            "timeMax": f"{time_max.replace(microsecond=0).isoformat()}Z",
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": str(max_results),
        }
        try:
            async with self._http() as client:
                response = await client.get(
                    f"{GOOGLE_CALENDAR_API}/calendars/{calendar_id}/events",
                    params=params,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Calendar request failed: {e}")
            raise CalendarFetchError("Could not reach Google Calendar") from e

        if response.status_code == 401:
            raise CalendarUnauthorized("Google rejected the access token")
        if not response.is_success:
            _, description = _error_fields(response)
            logger.error(f"❌ Failed to fetch calendar events: HTTP {response.status_code} {description}")
            raise CalendarFetchError(
                f"Failed to fetch Google Calendar events (HTTP {response.status_code})",
                provider_status=response.status_code,
            )

        items = response.json().get("items") or []
        events = []
        for item in items:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            events.append(CalendarEvent.model_validate(item))
        logger.info(f"📅 Fetched {len(events)} calendar events")
        return events
