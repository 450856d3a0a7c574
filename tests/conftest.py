"""Pytest fixtures and shared test configuration.

Fixtures:
    - fake_backend: Fresh in-process FastAPI backend per test
    - asgi_transport: HTTPX transport routing requests to the fake backend
    - client_config: Configuration with a short reply timeout
    - tokens: Empty credential store
    - api_client: ApiClient bound to the fake backend
"""

import httpx
import pytest
from fastapi import FastAPI

from src.client import ApiClient, ClientConfig, TokenStore
from tests.fake_backend import create_fake_backend


@pytest.fixture
def fake_backend() -> FastAPI:
    """Return a backend app with its own in-memory state."""
    return create_fake_backend()


@pytest.fixture
def asgi_transport(fake_backend: FastAPI) -> httpx.ASGITransport:
    return httpx.ASGITransport(app=fake_backend)


@pytest.fixture
def client_config() -> ClientConfig:
    """Return configuration pointing at the fake backend.

    The reply timeout is short so timeout paths run quickly.
    """
    return ClientConfig(api_base_url="http://test", api_token=None, reply_timeout=0.05)


@pytest.fixture
def tokens() -> TokenStore:
    return TokenStore()


@pytest.fixture
def api_client(
    client_config: ClientConfig,
    tokens: TokenStore,
    asgi_transport: httpx.ASGITransport,
) -> ApiClient:
    return ApiClient(client_config, tokens, transport=asgi_transport)
