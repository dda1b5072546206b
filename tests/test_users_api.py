"""Test suite for registration, login and profile endpoints."""

import pytest

from nexodus_api.api.app import create_app
from nexodus_api.config import Settings
from nexodus_api.domain.models import User
from nexodus_api.repositories import InMemoryUserRepository

STRONG_PASSWORD = "Str0ng!pass"


@pytest.mark.asyncio
async def test_register_returns_token(make_client):
    async with make_client() as client:
        response = await client.post(
            "/crud/User",
            json={"name": "Alice", "email": "alice@example.com", "password": STRONG_PASSWORD},
        )
        assert response.status_code == 201
        assert set(response.json()) == {"token"}


@pytest.mark.asyncio
async def test_register_validation(make_client):
    cases = [
        {"email": "a@example.com", "password": STRONG_PASSWORD},
        {"name": "Al", "email": "a@example.com", "password": STRONG_PASSWORD},
        {"name": "A" * 51, "email": "a@example.com", "password": STRONG_PASSWORD},
        {"name": "Alice", "email": "not-an-email", "password": STRONG_PASSWORD},
        {"name": "Alice", "email": "a" * 95 + "@x.com", "password": STRONG_PASSWORD},
        {"name": "Alice", "email": "a@example.com", "password": "weakpass"},
        {"name": 42, "email": "a@example.com", "password": STRONG_PASSWORD},
    ]
    async with make_client() as client:
        for body in cases:
            response = await client.post("/crud/User", json=body)
            assert response.status_code == 400, body

        response = await client.post(
            "/crud/User", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400


@pytest.mark.asyncio
async def test_register_duplicate_email_any_case(make_client, register_user):
    async with make_client() as client:
        await register_user(client, "Bob@Example.com")
        response = await client.post(
            "/crud/User",
            json={"name": "Bobby", "email": "  bob@EXAMPLE.com ", "password": STRONG_PASSWORD},
        )
        assert response.status_code == 409


@pytest.mark.asyncio
async def test_name_is_escaped(make_client, register_user):
    async with make_client() as client:
        token = await register_user(client, "carol@example.com", name="<b>Carol</b>")
        response = await client.get("/crud/User", headers={"Authorization": token})
        assert response.json()["name"] == "&lt;b&gt;Carol&lt;/b&gt;"


@pytest.mark.asyncio
async def test_login(make_client, register_user):
    async with make_client() as client:
        await register_user(client, "dave@example.com")

        response = await client.post(
            "/crud/auth", json={"email": "DAVE@example.com", "password": STRONG_PASSWORD}
        )
        assert response.status_code == 200
        assert response.json()["token"]

        response = await client.post(
            "/crud/auth", json={"email": "dave@example.com", "password": "Wr0ng!pass"}
        )
        assert response.status_code == 401

        response = await client.post(
            "/crud/auth", json={"email": "nobody@example.com", "password": STRONG_PASSWORD}
        )
        assert response.status_code == 401

        response = await client.post("/crud/auth", json={"email": "dave@example.com"})
        assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_invalidates_previous_token(make_client, register_user):
    async with make_client() as client:
        old_token = await register_user(client, "erin@example.com")
        response = await client.post(
            "/crud/auth", json={"email": "erin@example.com", "password": STRONG_PASSWORD}
        )
        new_token = f"Nexodus {response.json()['token']}"
        assert new_token != old_token

        assert (await client.get("/chats/list", headers={"Authorization": old_token})).status_code == 401
        assert (await client.get("/chats/list", headers={"Authorization": new_token})).status_code == 200


@pytest.mark.asyncio
async def test_get_user(make_client, register_user):
    async with make_client() as client:
        token = await register_user(client, "Frank@Example.com", name="Frank")
        response = await client.get("/crud/User", headers={"Authorization": token})
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "frank@example.com"
        assert data["name"] == "Frank"
        assert data["chat_ids"] == []
        assert "password" not in data
        assert "token" not in data


@pytest.mark.asyncio
async def test_get_user_failures(make_client):
    async with make_client() as client:
        response = await client.get("/crud/User", headers={"Authorization": "Bearer abc"})
        assert response.status_code == 400

        response = await client.get("/crud/User")
        assert response.status_code == 400

        response = await client.get("/crud/User", headers={"Authorization": "Nexodus unknown"})
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_credential_endpoints_are_rate_limited(make_client):
    app = create_app(Settings(proxy_secret="test-proxy-secret", auth_rate_limit=3))
    async with make_client(app) as client:
        statuses = []
        for _ in range(4):
            response = await client.post(
                "/crud/auth", json={"email": "x@example.com", "password": STRONG_PASSWORD}
            )
            statuses.append(response.status_code)
        assert statuses == [401, 401, 401, 429]
        assert "Retry-After" in response.headers

        # Other endpoints are not throttled.
        response = await client.get("/crud/User", headers={"Authorization": "Nexodus unknown"})
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_rate_limit_keys_on_proxy_added_hop(make_client):
    app = create_app(Settings(proxy_secret="test-proxy-secret", auth_rate_limit=3))
    async with make_client(app) as client:
        statuses = []
        for i in range(5):
            response = await client.post(
                "/crud/auth",
                json={"email": "x@example.com", "password": STRONG_PASSWORD},
                headers={"X-Forwarded-For": f"10.0.0.{i}, 192.168.1.1"},
            )
            statuses.append(response.status_code)
        assert statuses == [401, 401, 401, 429, 429]

        # A different client behind the same proxy has its own budget.
        response = await client.post(
            "/crud/auth",
            json={"email": "x@example.com", "password": STRONG_PASSWORD},
            headers={"X-Forwarded-For": "10.0.0.1, 192.168.1.2"},
        )
        assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_with_corrupted_hash_is_internal_error(make_client):
    users = InMemoryUserRepository()
    await users.create(User(name="Grace", email="grace@example.com", password="not-a-hash!"))
    app = create_app(Settings(proxy_secret="test-proxy-secret"), users=users)
    async with make_client(app) as client:
        response = await client.post(
            "/crud/auth", json={"email": "grace@example.com", "password": STRONG_PASSWORD}
        )
        assert response.status_code == 500
        assert response.json() == {"detail": "An internal error occurred."}
