"""
Shared fixtures for the Spotify relay tests.

The app is built with an in-memory user store and mocked Spotify
clients injected through FastAPI dependency overrides, so no test talks
to Spotify or Firestore.
"""

import base64
import json
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from spotify_relay.auth.routes import (
    get_profile_client,
    get_token_client,
    get_user_repository,
)
from spotify_relay.auth.session import SessionIssuer
from spotify_relay.auth.spotify import SpotifyProfileClient, SpotifyTokenClient
from spotify_relay.config import Settings
from spotify_relay.main import create_app
from spotify_relay.users import InMemoryUserRepository


TEST_JWT_SECRET = "test-jwt-secret-1234567890123456"

SERVICE_ACCOUNT = {
    "type": "service_account",
    "project_id": "points-app",
    "client_email": "relay@points-app.iam.gserviceaccount.com",
}


def encode_service_account(info: dict) -> str:
    return base64.b64encode(json.dumps(info).encode("utf-8")).decode("ascii")


def make_settings(**overrides) -> Settings:
    """Build Settings without reading .env"""
    values = {
        "SPOTIFY_CLIENT_ID": "test-client-id",
        "SPOTIFY_CLIENT_SECRET": "test-client-secret",
        "SPOTIFY_REDIRECT_URI": "http://localhost:3001/callback",
        "JWT_SECRET": TEST_JWT_SECRET,
        "USER_STORE_BACKEND": "memory",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def service_account_b64():
    return encode_service_account(SERVICE_ACCOUNT)


@pytest.fixture
def mock_settings():
    """Settings for an app using the in-memory store"""
    return make_settings()


@pytest.fixture
def user_repository():
    return InMemoryUserRepository()


@pytest.fixture
def token_client():
    """Token client whose exchange succeeds by default"""
    client = Mock(spec=SpotifyTokenClient)
    client.exchange_code = AsyncMock(return_value={
        "access_token": "spotify-access-token",
        "token_type": "Bearer",
        "expires_in": 3600,
        "scope": "user-read-email user-read-private",
    })
    return client


@pytest.fixture
def spotify_profile():
    return {
        "id": "abc123",
        "email": "a@b.com",
        "display_name": "Al",
        "images": [
            {"url": "https://i.scdn.co/image/large", "height": 300, "width": 300},
            {"url": "https://i.scdn.co/image/small", "height": 64, "width": 64},
        ],
    }


@pytest.fixture
def profile_client(spotify_profile):
    client = Mock(spec=SpotifyProfileClient)
    client.get_current_user = AsyncMock(return_value=spotify_profile)
    return client


@pytest.fixture
def app(mock_settings, token_client, profile_client, user_repository):
    """Create test FastAPI application with injected fakes"""
    app = create_app(mock_settings)
    app.dependency_overrides[get_token_client] = lambda: token_client
    app.dependency_overrides[get_profile_client] = lambda: profile_client
    app.dependency_overrides[get_user_repository] = lambda: user_repository
    return app


@pytest.fixture
def client(app):
    """Create test client (lifespan not started)"""
    return TestClient(app)


@pytest.fixture
def session_issuer():
    return SessionIssuer(TEST_JWT_SECRET)
