import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx

from appointly.core.config import settings
from appointly.utils.timeutils import to_rfc3339


logger = logging.getLogger(__name__)


class GoogleCalendarError(Exception):
    """Raised when the Google Calendar API rejects or fails a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GoogleCalendarClient:
    """
    HTTP client wrapper for the Google Calendar v3 API.

    Acts on behalf of one user, authenticated with that user's stored
    OAuth access token. Use as an async context manager so the underlying
    connection pool is closed.
    """

    def __init__(self, access_token: str):
        """Initialize the client for a single user's access token."""
        self.base_url = settings.google_calendar_api_url
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
            timeout=settings.google_api_timeout,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.client.aclose()

    def _handle_response(self, response: httpx.Response) -> Dict[str, Any]:
        """
        Decode a Google API response, raising on error statuses.

        Google wraps errors as ``{"error": {"code": ..., "message": ...}}``;
        the user-info endpoint uses ``{"error": ..., "error_description": ...}``.
        """
        try:
            data = response.json()
        except ValueError:
            logger.error(f"Invalid JSON response from Google Calendar: {response.text}")
            raise GoogleCalendarError("Invalid response from Google Calendar API", response.status_code)

        if not response.is_success:
            error_msg = "Unknown Google Calendar error"
            if isinstance(data, dict):
                error = data.get("error")
                if isinstance(error, dict):
                    error_msg = error.get("message", error_msg)
                elif error:
                    error_msg = data.get("error_description") or error
            logger.error(f"Google Calendar API error ({response.status_code}): {error_msg}")
            raise GoogleCalendarError(f"Google Calendar API error: {error_msg}", response.status_code)

        return data

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        logger.info(f"Making {method} request to Google Calendar: {url}")
        try:
            response = await self.client.request(method, url, params=params, json=json)
        except httpx.TimeoutException:
            logger.error(f"Timeout making {method} request to {url}")
            raise GoogleCalendarError("Google Calendar API request timed out")
        except httpx.HTTPError as e:
            logger.error(f"HTTP error making {method} request to {url}: {e}")
            raise GoogleCalendarError(f"Google Calendar HTTP error: {e}")
        return self._handle_response(response)

    async def create_event(
        self,
        summary: str,
        start: datetime,
        end: datetime,
        attendees: List[str],
        description: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create an event on the primary calendar with a Google Meet link.

        Args:
            summary: Event title.
            start: Event start.
            end: Event end.
            attendees: Attendee email addresses.
            description: Optional event body.

        Returns:
            Dict: Normalized event (see ``normalize_event``).
        """
        body = {
            "summary": summary,
            "description": description,
            "start": {"dateTime": to_rfc3339(start), "timeZone": "UTC"},
            "end": {"dateTime": to_rfc3339(end), "timeZone": "UTC"},
            "attendees": [{"email": email} for email in attendees if email],
            "conferenceData": {
                "createRequest": {
                    "requestId": f"meet-{uuid.uuid4().hex}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
        }
        data = await self._request(
            "POST",
            "calendars/primary/events",
            params={"conferenceDataVersion": 1, "sendUpdates": "all"},
            json=body,
        )
        return normalize_event(data)

    async def list_events(self, time_min: datetime, time_max: datetime) -> List[Dict[str, Any]]:
        """
        List single events on the primary calendar between two instants.

        Returns:
            List: Normalized events ordered by start time.
        """
        data = await self._request(
            "GET",
            "calendars/primary/events",
            params={
                "timeMin": to_rfc3339(time_min),
                "timeMax": to_rfc3339(time_max),
                "singleEvents": "true",
                "orderBy": "startTime",
            },
        )
        return [normalize_event(item) for item in data.get("items", [])]

    async def freebusy(
        self,
        time_min: datetime,
        time_max: datetime,
        calendar_id: str = "primary"
    ) -> List[Dict[str, str]]:
        """
        Query busy blocks for a calendar.

        Returns:
            List: ``{"start": ..., "end": ...}`` RFC 3339 strings.
        """
        data = await self._request(
            "POST",
            "freeBusy",
            json={
                "timeMin": to_rfc3339(time_min),
                "timeMax": to_rfc3339(time_max),
                "items": [{"id": calendar_id}],
            },
        )
        return data.get("calendars", {}).get(calendar_id, {}).get("busy", [])

    async def get_user_info(self) -> Dict[str, Any]:
        """Fetch the Google profile of the token's owner."""
        return await self._request("GET", settings.google_userinfo_url)


def normalize_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a Google event resource to the fields this API exposes."""
    return {
        "id": event.get("id"),
        "summary": event.get("summary") or "No title",
        "start": event.get("start", {}),
        "end": event.get("end", {}),
        "attendees": [
            {
                "email": attendee.get("email"),
                "display_name": attendee.get("displayName"),
                "response_status": attendee.get("responseStatus"),
            }
            for attendee in event.get("attendees", [])
        ],
        "meet_link": event.get("hangoutLink"),
    }


CalendarClientFactory = Callable[[str], GoogleCalendarClient]


def get_calendar_client_factory() -> CalendarClientFactory:
    """
    Dependency returning the callable that builds per-user calendar clients.

    Returns:
        CalendarClientFactory: ``GoogleCalendarClient`` itself.
    """
    return GoogleCalendarClient
