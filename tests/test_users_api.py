import uuid

from tests.conftest import auth_headers


async def test_me_requires_token(client):
    response = await client.get("/api/v1/users/me")
    assert response.status_code == 401


async def test_me_rejects_bad_token(client):
    response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


async def test_me_rejects_non_uuid_subject(client):
    from appointly.core.security import create_access_token

    token = create_access_token({"sub": "not-a-uuid"})
    response = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


async def test_me_before_role_selection(client):
    response = await client.get("/api/v1/users/me", headers=auth_headers(uuid.uuid4(), "new@example.com"))
    assert response.status_code == 404
    assert response.json()["detail"] == "User profile not found. Select a role first"


async def test_select_buyer_role_creates_profile(client):
    user_id = uuid.uuid4()
    headers = auth_headers(user_id, "new@example.com")

    response = await client.post("/api/v1/users/role", json={"role": "buyer", "full_name": "Nia"}, headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == str(user_id)
    assert body["email"] == "new@example.com"
    assert body["role"] == "buyer"
    assert body["full_name"] == "Nia"

    me = await client.get("/api/v1/users/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["role"] == "buyer"


async def test_select_seller_role_creates_seller_profile_once(client):
    headers = auth_headers(uuid.uuid4(), "shop@example.com")

    for _ in range(2):
        response = await client.post("/api/v1/users/role", json={"role": "seller"}, headers=headers)
        assert response.status_code == 200

    seller = await client.get("/api/v1/sellers/me", headers=headers)
    assert seller.status_code == 200
    assert seller.json()["is_active"] is True


async def test_switching_role_keeps_profile(client):
    headers = auth_headers(uuid.uuid4(), "switch@example.com")
    await client.post("/api/v1/users/role", json={"role": "buyer", "full_name": "Kim"}, headers=headers)

    response = await client.post("/api/v1/users/role", json={"role": "seller"}, headers=headers)
    assert response.json()["role"] == "seller"
    assert response.json()["full_name"] == "Kim"


async def test_select_role_needs_email_for_new_profile(client):
    response = await client.post("/api/v1/users/role", json={"role": "buyer"}, headers=auth_headers(uuid.uuid4()))
    assert response.status_code == 400


async def test_select_role_rejects_unknown_role(client):
    response = await client.post(
        "/api/v1/users/role", json={"role": "admin"}, headers=auth_headers(uuid.uuid4(), "x@example.com")
    )
    assert response.status_code == 422


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
