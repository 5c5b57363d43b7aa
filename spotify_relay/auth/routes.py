"""
Authentication routes for the Spotify login relay.

This module implements the OAuth 2.0 authorization code flow with Spotify:
``/login`` sends the browser to Spotify and ``/callback`` completes the
login and returns the profile with a session token as JSON.

Components are resolved through FastAPI dependencies backed by
``app.state`` so tests can swap any of them via ``dependency_overrides``.
"""

from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from ..config import Settings
from ..models import ErrorResponse, LoginResponse
from ..users import UserRepository
from .flow import LoginFailure, LoginFlow
from .session import SessionIssuer
from .spotify import SpotifyProfileClient, SpotifyTokenClient, build_authorize_url


# =============================================================================
# Router Setup
# =============================================================================

auth_router = APIRouter(
    tags=["authentication"],
)


# =============================================================================
# Dependencies
# =============================================================================

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository


def get_session_issuer(settings: Settings = Depends(get_app_settings)) -> SessionIssuer:
    return SessionIssuer.from_settings(settings)


def get_token_client(
    settings: Settings = Depends(get_app_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> SpotifyTokenClient:
    return SpotifyTokenClient.from_settings(http_client, settings)


def get_profile_client(
    settings: Settings = Depends(get_app_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> SpotifyProfileClient:
    return SpotifyProfileClient.from_settings(http_client, settings)


def get_login_flow(
    token_client: SpotifyTokenClient = Depends(get_token_client),
    profile_client: SpotifyProfileClient = Depends(get_profile_client),
    users: UserRepository = Depends(get_user_repository),
    sessions: SessionIssuer = Depends(get_session_issuer),
) -> LoginFlow:
    return LoginFlow(token_client, profile_client, users, sessions)


# =============================================================================
# Login Endpoint
# =============================================================================

@auth_router.get("/login", response_class=RedirectResponse)
async def login(settings: Settings = Depends(get_app_settings)):
    """
    Redirect the browser to Spotify's authorization page.

    The URL carries the client ID, redirect URI and fixed scopes, and
    forces the consent dialog.
    """
    authorization_url = build_authorize_url(
        client_id=settings.SPOTIFY_CLIENT_ID,
        redirect_uri=settings.SPOTIFY_REDIRECT_URI,
    )
    return RedirectResponse(url=authorization_url, status_code=302)


# =============================================================================
# Callback Endpoint
# =============================================================================

@auth_router.get(
    "/callback",
    response_model=LoginResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def callback(
    code: Optional[str] = Query(None, description="Authorization code from Spotify"),
    error: Optional[str] = Query(None, description="Error reason if the user denied access"),
    flow: LoginFlow = Depends(get_login_flow),
):
    """
    Handle the OAuth callback from Spotify.

    Returns:
        200 with ``{profile, token}``; 400 without a code; 401 when Spotify
        rejects the code or token; 500 with a generic message otherwise.
    """
    try:
        result = await flow.complete(code, error=error)
    except LoginFailure as failure:
        return JSONResponse(
            status_code=failure.status_code,
            content=failure.to_response(),
        )

    return result
