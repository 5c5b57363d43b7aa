"""
Spotify HTTP clients.

Thin wrappers around a shared ``httpx.AsyncClient``:
- ``SpotifyTokenClient`` trades an authorization code for an access token
- ``SpotifyProfileClient`` fetches the current user's profile

Neither client interprets the response: bodies are returned verbatim and
the login flow decides what counts as a failure. Transport errors and
non-JSON bodies propagate. There are no retries.
"""

import logging
from typing import Any, Dict, Tuple
from urllib.parse import urlencode

import httpx

from ..config import (
    SPOTIFY_AUTHORIZE_URL,
    SPOTIFY_ME_URL,
    SPOTIFY_SCOPES,
    SPOTIFY_TOKEN_URL,
    Settings,
)

logger = logging.getLogger(__name__)


def build_authorize_url(client_id: str, redirect_uri: str, scope: str = SPOTIFY_SCOPES) -> str:
    """
    Build the Spotify authorization URL the browser is redirected to.

    The consent dialog is always shown (``show_dialog=true``).
    """
    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": scope,
        "show_dialog": "true",
    }
    return f"{SPOTIFY_AUTHORIZE_URL}?{urlencode(params)}"


class SpotifyTokenClient:
    """Exchanges authorization codes at the Spotify accounts service."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 10.0,
        token_url: str = SPOTIFY_TOKEN_URL,
    ):
        self._http = http_client
        self._auth: Tuple[str, str] = (client_id, client_secret)
        self._redirect_uri = redirect_uri
        self._timeout = timeout
        self._token_url = token_url

    @classmethod
    def from_settings(cls, http_client: httpx.AsyncClient, settings: Settings) -> "SpotifyTokenClient":
        return cls(
            http_client,
            client_id=settings.SPOTIFY_CLIENT_ID,
            client_secret=settings.SPOTIFY_CLIENT_SECRET,
            redirect_uri=settings.SPOTIFY_REDIRECT_URI,
            timeout=settings.SPOTIFY_HTTP_TIMEOUT_SECONDS,
        )

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        Exchange an authorization code for tokens.

        Args:
            code: Authorization code from the callback

        Returns:
            Parsed token endpoint response. On success it holds
            ``access_token``; on failure Spotify returns ``error`` and
            ``error_description`` instead.

        Raises:
            httpx.HTTPError: If the request cannot be sent
            ValueError: If the response body is not JSON
        """
        response = await self._http.post(
            self._token_url,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._redirect_uri,
            },
            auth=self._auth,
            timeout=self._timeout,
        )

        logger.debug(
            "Spotify token exchange completed",
            extra={"status_code": response.status_code}
        )

        return response.json()


class SpotifyProfileClient:
    """Reads the current user's profile from the Spotify Web API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        timeout: float = 10.0,
        me_url: str = SPOTIFY_ME_URL,
    ):
        self._http = http_client
        self._timeout = timeout
        self._me_url = me_url

    @classmethod
    def from_settings(cls, http_client: httpx.AsyncClient, settings: Settings) -> "SpotifyProfileClient":
        return cls(http_client, timeout=settings.SPOTIFY_HTTP_TIMEOUT_SECONDS)

    async def get_current_user(self, access_token: str) -> Dict[str, Any]:
        """
        Fetch the profile behind an access token.

        Returns:
            Parsed ``/v1/me`` response, or Spotify's ``{"error": {...}}`` body

        Raises:
            httpx.HTTPError: If the request cannot be sent
            ValueError: If the response body is not JSON
        """
        response = await self._http.get(
            self._me_url,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=self._timeout,
        )

        logger.debug(
            "Spotify profile fetch completed",
            extra={"status_code": response.status_code}
        )

        return response.json()
