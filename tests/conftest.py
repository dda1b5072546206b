"""Shared fixtures."""

import base64

import pytest
from httpx import ASGITransport, AsyncClient

from nexodus_api.api.app import create_app
from nexodus_api.config import Settings

PROXY_SECRET = "test-proxy-secret"
PROXY_HEADERS = {"x-nexodus-proxy": base64.b64encode(PROXY_SECRET.encode()).decode()}

STRONG_PASSWORD = "Str0ng!pass"


@pytest.fixture
def settings() -> Settings:
    return Settings(proxy_secret=PROXY_SECRET)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def make_client(app):
    """Build a client that goes through the proxy unless told otherwise."""

    def _make(target=None, proxied: bool = True) -> AsyncClient:
        return AsyncClient(
            transport=ASGITransport(app=target or app),
            base_url="http://test",
            headers=PROXY_HEADERS if proxied else None,
        )

    return _make


async def register(client: AsyncClient, email: str, name: str = "Tester") -> str:
    """Register a user and return the Authorization header value."""
    response = await client.post(
        "/crud/User", json={"name": name, "email": email, "password": STRONG_PASSWORD}
    )
    assert response.status_code == 201, response.text
    return f"Nexodus {response.json()['token']}"


@pytest.fixture
def register_user():
    return register
