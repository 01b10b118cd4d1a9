from datetime import datetime, timedelta, timezone

from appointly.models import UserRole
from tests.conftest import at


TOKENS_URL = "/api/v1/calendar/tokens"


async def test_store_tokens_with_expires_in(client, buyer):
    response = await client.post(
        TOKENS_URL,
        json={"user_type": "buyer", "access_token": "ya29.a", "refresh_token": "1//r", "expires_in": 3599},
        headers=buyer.headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["connected"] is True
    assert body["tokens"]["access_token"] == "ya29.a"
    assert body["tokens"]["refresh_token"] == "1//r"

    connection = await client.get("/api/v1/calendar/connection", headers=buyer.headers)
    assert connection.json() == {"connected": True}


async def test_expiry_defaults_to_an_hour(client, buyer):
    before = datetime.now(timezone.utc)
    response = await client.post(TOKENS_URL, json={"user_type": "buyer", "access_token": "a"}, headers=buyer.headers)
    assert response.status_code == 200

    expires_at = datetime.fromisoformat(response.json()["tokens"]["expires_at"].replace("Z", "+00:00"))
    assert timedelta(seconds=3590) <= expires_at - before <= timedelta(seconds=3610)


async def test_expires_at_wins_over_expires_in(client, buyer):
    response = await client.post(
        TOKENS_URL,
        json={
            "user_type": "buyer",
            "access_token": "a",
            "expires_at": "2031-01-01T00:00:00Z",
            "expires_in": 60,
        },
        headers=buyer.headers,
    )
    assert response.status_code == 200
    assert response.json()["tokens"]["expires_at"].startswith("2031-01-01T00:00:00")


async def test_storing_again_updates_and_keeps_refresh_token(client, buyer):
    await client.post(
        TOKENS_URL,
        json={"user_type": "buyer", "access_token": "first", "refresh_token": "keep-me"},
        headers=buyer.headers,
    )
    await client.post(TOKENS_URL, json={"user_type": "buyer", "access_token": "second"}, headers=buyer.headers)

    response = await client.get(TOKENS_URL, params={"user_type": "buyer"}, headers=buyer.headers)
    assert response.status_code == 200
    tokens = response.json()["tokens"]
    assert tokens["access_token"] == "second"
    assert tokens["refresh_token"] == "keep-me"


async def test_tokens_are_kept_per_role(client, buyer):
    await client.post(TOKENS_URL, json={"user_type": "buyer", "access_token": "b"}, headers=buyer.headers)

    response = await client.get(TOKENS_URL, params={"user_type": "seller"}, headers=buyer.headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Tokens not found"


async def test_expired_tokens_are_not_connected(client, buyer):
    response = await client.post(
        TOKENS_URL,
        json={"user_type": "buyer", "access_token": "old", "expires_at": "2020-01-01T00:00:00Z"},
        headers=buyer.headers,
    )
    assert response.json()["connected"] is False

    connection = await client.get("/api/v1/calendar/connection", headers=buyer.headers)
    assert connection.json() == {"connected": False}


async def test_connection_without_tokens(client, buyer):
    response = await client.get("/api/v1/calendar/connection", headers=buyer.headers)
    assert response.status_code == 200
    assert response.json() == {"connected": False}


async def test_invalid_token_payload(client, buyer):
    response = await client.post(
        TOKENS_URL, json={"user_type": "buyer", "access_token": "", "expires_in": 0}, headers=buyer.headers
    )
    assert response.status_code == 422


async def test_create_event(client, buyer, store_token, fake_calendar):
    await store_token(buyer.user, UserRole.BUYER)

    response = await client.post(
        "/api/v1/calendar/events",
        json={
            "summary": "Call",
            "start": at(10).isoformat(),
            "end": at(11).isoformat(),
            "attendees": ["friend@example.com"],
        },
        headers=buyer.headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["id"] == "evt-1"
    assert body["meet_link"] == "https://meet.google.com/fake-1"
    assert fake_calendar.created[0]["attendees"] == ["friend@example.com"]


async def test_create_event_rejects_inverted_range(client, buyer, store_token):
    await store_token(buyer.user, UserRole.BUYER)

    response = await client.post(
        "/api/v1/calendar/events",
        json={"summary": "Call", "start": at(11).isoformat(), "end": at(10).isoformat()},
        headers=buyer.headers,
    )
    assert response.status_code == 422


async def test_calendar_calls_need_a_connection(client, buyer, store_token):
    await store_token(buyer.user, UserRole.BUYER, expires_in=timedelta(minutes=-5))

    response = await client.get("/api/v1/calendar/user-info", headers=buyer.headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Google Calendar not connected"


async def test_provider_errors_become_bad_gateway(client, buyer, store_token, fake_calendar):
    await store_token(buyer.user, UserRole.BUYER, access_token="revoked")
    fake_calendar.failing_tokens.add("revoked")

    response = await client.get(
        "/api/v1/calendar/events",
        params={"time_min": at(0).isoformat(), "time_max": at(23).isoformat()},
        headers=buyer.headers,
    )
    assert response.status_code == 502
    assert "Invalid Credentials" in response.json()["detail"]


async def test_list_events(client, buyer, store_token, fake_calendar):
    await store_token(buyer.user, UserRole.BUYER)
    fake_calendar.events = [{
        "id": "e1",
        "summary": "Standup",
        "start": {"dateTime": "2030-01-07T09:00:00Z"},
        "end": {"dateTime": "2030-01-07T09:15:00Z"},
        "attendees": [],
        "meet_link": None,
    }]

    response = await client.get(
        "/api/v1/calendar/events",
        params={"time_min": at(0).isoformat(), "time_max": at(23).isoformat()},
        headers=buyer.headers,
    )
    assert response.status_code == 200
    assert [event["id"] for event in response.json()] == ["e1"]


async def test_list_events_rejects_inverted_range(client, buyer, store_token):
    await store_token(buyer.user, UserRole.BUYER)

    response = await client.get(
        "/api/v1/calendar/events",
        params={"time_min": at(12).isoformat(), "time_max": at(9).isoformat()},
        headers=buyer.headers,
    )
    assert response.status_code == 400


async def test_freebusy_slots(client, buyer, store_token, fake_calendar):
    await store_token(buyer.user, UserRole.BUYER)
    fake_calendar.busy = [{"start": "2030-01-07T09:30:00Z", "end": "2030-01-07T10:00:00Z"}]

    response = await client.post(
        "/api/v1/calendar/freebusy",
        json={"time_min": at(9).isoformat(), "time_max": at(10, 30).isoformat()},
        headers=buyer.headers,
    )
    assert response.status_code == 200
    assert [slot["available"] for slot in response.json()["slots"]] == [True, False, True]


async def test_user_info(client, buyer, store_token):
    await store_token(buyer.user, UserRole.BUYER)

    response = await client.get("/api/v1/calendar/user-info", headers=buyer.headers)
    assert response.status_code == 200
    assert response.json()["email"] == "someone@example.com"


async def test_seller_token_is_used_for_any_role(client, seller):
    response = await client.get("/api/v1/calendar/user-info", headers=seller.headers)
    assert response.status_code == 200
