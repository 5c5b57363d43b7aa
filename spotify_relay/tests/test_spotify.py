"""
Spotify Client Tests

Tests the token exchange and profile fetch requests against a mocked
httpx.AsyncClient, and the authorization URL builder.
"""

import base64
from unittest.mock import AsyncMock, Mock
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from spotify_relay.auth.spotify import (
    SpotifyProfileClient,
    SpotifyTokenClient,
    build_authorize_url,
)
from spotify_relay.config import SPOTIFY_ME_URL, SPOTIFY_TOKEN_URL


def mock_response(status_code: int, body) -> Mock:
    response = Mock(spec=httpx.Response)
    response.status_code = status_code
    response.json.return_value = body
    return response


@pytest.fixture
def http_client():
    return AsyncMock(spec=httpx.AsyncClient)


class TestAuthorizeUrl:

    def test_redirect_uri_is_encoded(self):
        url = build_authorize_url("cid", "http://localhost:3001/callback?x=1")

        assert "redirect_uri=http%3A%2F%2Flocalhost%3A3001%2Fcallback%3Fx%3D1" in url

    def test_parameters(self):
        params = parse_qs(urlparse(build_authorize_url("cid", "http://localhost/cb")).query)

        assert params == {
            "client_id": ["cid"],
            "response_type": ["code"],
            "redirect_uri": ["http://localhost/cb"],
            "scope": ["user-read-email user-read-private"],
            "show_dialog": ["true"],
        }


class TestTokenClient:

    @pytest.mark.asyncio
    async def test_exchange_posts_form_with_basic_auth(self, http_client):
        http_client.post.return_value = mock_response(200, {"access_token": "tok"})
        client = SpotifyTokenClient(
            http_client,
            client_id="cid",
            client_secret="secret",
            redirect_uri="http://localhost:3001/callback",
            timeout=5.0,
        )

        result = await client.exchange_code("auth-code")

        assert result == {"access_token": "tok"}

        http_client.post.assert_awaited_once()
        call_args = http_client.post.call_args
        assert call_args[0][0] == SPOTIFY_TOKEN_URL
        assert call_args.kwargs["data"] == {
            "grant_type": "authorization_code",
            "code": "auth-code",
            "redirect_uri": "http://localhost:3001/callback",
        }
        assert call_args.kwargs["auth"] == ("cid", "secret")
        assert call_args.kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_request_carries_basic_credentials(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["request"] = request
            return httpx.Response(200, json={"access_token": "tok"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = SpotifyTokenClient(http, "cid", "secret", "http://localhost/cb")
            await client.exchange_code("auth-code")

        request = captured["request"]
        assert request.headers["Authorization"] == "Basic " + base64.b64encode(b"cid:secret").decode()
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert parse_qs(request.content.decode()) == {
            "grant_type": ["authorization_code"],
            "code": ["auth-code"],
            "redirect_uri": ["http://localhost/cb"],
        }

    @pytest.mark.asyncio
    async def test_error_body_returned_verbatim(self, http_client):
        error_body = {"error": "invalid_grant", "error_description": "Authorization code expired"}
        http_client.post.return_value = mock_response(400, error_body)
        client = SpotifyTokenClient(http_client, "cid", "secret", "http://localhost/cb")

        assert await client.exchange_code("expired-code") == error_body

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, http_client):
        http_client.post.side_effect = httpx.ConnectError("unreachable")
        client = SpotifyTokenClient(http_client, "cid", "secret", "http://localhost/cb")

        with pytest.raises(httpx.ConnectError):
            await client.exchange_code("auth-code")

    @pytest.mark.asyncio
    async def test_non_json_body_propagates(self, http_client):
        response = mock_response(502, None)
        response.json.side_effect = ValueError("Expecting value")
        http_client.post.return_value = response
        client = SpotifyTokenClient(http_client, "cid", "secret", "http://localhost/cb")

        with pytest.raises(ValueError):
            await client.exchange_code("auth-code")

    def test_from_settings(self, http_client, mock_settings):
        client = SpotifyTokenClient.from_settings(http_client, mock_settings)

        assert client._redirect_uri == mock_settings.SPOTIFY_REDIRECT_URI
        assert client._auth == (mock_settings.SPOTIFY_CLIENT_ID, mock_settings.SPOTIFY_CLIENT_SECRET)


class TestProfileClient:

    @pytest.mark.asyncio
    async def test_fetch_sends_bearer_token(self, http_client):
        profile = {"id": "abc123", "display_name": "Al"}
        http_client.get.return_value = mock_response(200, profile)
        client = SpotifyProfileClient(http_client)

        result = await client.get_current_user("access-token")

        assert result == profile
        call_args = http_client.get.call_args
        assert call_args[0][0] == SPOTIFY_ME_URL
        assert call_args.kwargs["headers"] == {"Authorization": "Bearer access-token"}

    @pytest.mark.asyncio
    async def test_error_body_returned_verbatim(self, http_client):
        error_body = {"error": {"status": 401, "message": "Invalid access token"}}
        http_client.get.return_value = mock_response(401, error_body)
        client = SpotifyProfileClient(http_client)

        assert await client.get_current_user("stale-token") == error_body
