import json
from datetime import datetime, timezone

import httpx
import pytest

from appointly.core.config import settings
from appointly.core.google_calendar import GoogleCalendarClient, GoogleCalendarError, normalize_event


START = datetime(2030, 1, 7, 10, tzinfo=timezone.utc)
END = datetime(2030, 1, 7, 11, tzinfo=timezone.utc)


def make_client(handler):
    client = GoogleCalendarClient("access-123")
    client.client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url=settings.google_calendar_api_url,
        headers={"Authorization": "Bearer access-123"},
    )
    return client


async def test_create_event_requests_meet_link():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={
            "id": "evt-1",
            "summary": "Haircut",
            "start": {"dateTime": "2030-01-07T10:00:00Z"},
            "end": {"dateTime": "2030-01-07T11:00:00Z"},
            "attendees": [{"email": "b@example.com", "responseStatus": "needsAction"}],
            "hangoutLink": "https://meet.google.com/abc-defg-hij",
        })

    async with make_client(handler) as client:
        event = await client.create_event("Haircut", START, END, ["b@example.com", None])

    request = seen["request"]
    body = json.loads(request.content)
    assert request.method == "POST"
    assert request.url.path.endswith("/calendars/primary/events")
    assert request.url.params["conferenceDataVersion"] == "1"
    assert request.headers["Authorization"] == "Bearer access-123"
    assert body["start"]["dateTime"] == "2030-01-07T10:00:00Z"
    assert body["attendees"] == [{"email": "b@example.com"}]
    assert body["conferenceData"]["createRequest"]["conferenceSolutionKey"] == {"type": "hangoutsMeet"}

    assert event["id"] == "evt-1"
    assert event["meet_link"] == "https://meet.google.com/abc-defg-hij"
    assert event["attendees"][0]["response_status"] == "needsAction"


async def test_freebusy_returns_busy_blocks_for_calendar():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["items"] == [{"id": "primary"}]
        return httpx.Response(200, json={
            "calendars": {"primary": {"busy": [{"start": "2030-01-07T10:00:00Z", "end": "2030-01-07T10:30:00Z"}]}}
        })

    async with make_client(handler) as client:
        busy = await client.freebusy(START, END)

    assert busy == [{"start": "2030-01-07T10:00:00Z", "end": "2030-01-07T10:30:00Z"}]


async def test_error_payload_becomes_calendar_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"code": 401, "message": "Invalid Credentials"}})

    async with make_client(handler) as client:
        with pytest.raises(GoogleCalendarError) as exc_info:
            await client.list_events(START, END)

    assert exc_info.value.status_code == 401
    assert "Invalid Credentials" in exc_info.value.message


async def test_non_json_response_becomes_calendar_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    async with make_client(handler) as client:
        with pytest.raises(GoogleCalendarError):
            await client.get_user_info()


async def test_transport_failure_becomes_calendar_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(GoogleCalendarError):
            await client.list_events(START, END)


def test_normalize_event_defaults():
    event = normalize_event({"id": "x"})
    assert event["summary"] == "No title"
    assert event["attendees"] == []
    assert event["meet_link"] is None
