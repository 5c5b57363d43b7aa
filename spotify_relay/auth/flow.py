"""
Spotify login flow.

Sequences the callback: code exchange, profile fetch, user upsert and
session token issuance. Every failure leaves this module as a
``LoginFailure`` subclass carrying the HTTP status the route should send.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import status

from ..models import ErrorResponse, LoginResponse, ProfileResponse
from ..users import UserRepository
from .session import SessionIssuer
from .spotify import SpotifyProfileClient, SpotifyTokenClient

logger = logging.getLogger(__name__)

DEFAULT_EMAIL = "Not provided"
DEFAULT_DISPLAY_NAME = "Unknown User"


# =============================================================================
# Exceptions
# =============================================================================

class LoginFailure(Exception):
    """Base class for callback failures that map to an HTTP error response"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> Dict[str, Any]:
        """JSON body for the client; ``details`` only when there are any."""
        body = ErrorResponse(error=self.message, details=self.details).model_dump()
        if self.details is None:
            body.pop("details")
        return body


class MissingAuthorizationCode(LoginFailure):
    """Spotify redirected back without a code (e.g. consent denied)"""
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamAuthFailure(LoginFailure):
    """Token exchange returned no access token"""
    status_code = status.HTTP_401_UNAUTHORIZED


class UpstreamProfileFailure(LoginFailure):
    """Spotify reported an error for the profile request"""
    status_code = status.HTTP_401_UNAUTHORIZED


class UnexpectedFailure(LoginFailure):
    """Anything else: network, parsing, store or signing errors"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# =============================================================================
# Profile Helpers
# =============================================================================

def extract_identity(profile: Dict[str, Any]) -> Dict[str, Any]:
    """
    Pull the fields we store out of a ``/v1/me`` response.

    Missing email and display name fall back to placeholders; the image is
    the first avatar URL, or None when the user has none.

    Raises:
        KeyError: If the profile has no ``id``
    """
    images = profile.get("images") or []
    image_url = images[0].get("url") if images else None

    return {
        "provider_id": profile["id"],
        "email": profile.get("email") or DEFAULT_EMAIL,
        "display_name": profile.get("display_name") or DEFAULT_DISPLAY_NAME,
        "image_url": image_url,
    }


# =============================================================================
# Flow
# =============================================================================

class LoginFlow:
    """
    Completes a Spotify login given an authorization code.

    Args:
        token_client: Exchanges the code for an access token
        profile_client: Fetches the Spotify profile
        users: Stores user records
        sessions: Issues the session JWT
    """

    def __init__(
        self,
        token_client: SpotifyTokenClient,
        profile_client: SpotifyProfileClient,
        users: UserRepository,
        sessions: SessionIssuer,
    ):
        self._token_client = token_client
        self._profile_client = profile_client
        self._users = users
        self._sessions = sessions

    async def complete(self, code: Optional[str], error: Optional[str] = None) -> LoginResponse:
        """
        Run the callback sequence.

        Args:
            code: Authorization code from the Spotify redirect
            error: Error reason Spotify sent instead of a code

        Returns:
            Profile and session token for the client

        Raises:
            MissingAuthorizationCode: No code was supplied
            UpstreamAuthFailure: Token response had no access_token
            UpstreamProfileFailure: Profile response carried an error
            UnexpectedFailure: Any other error
        """
        if error or not code:
            raise MissingAuthorizationCode(
                "Missing authorization code",
                details={"error": error} if error else None,
            )

        try:
            return await self._complete(code)
        except LoginFailure:
            raise
        except Exception as e:
            logger.error(
                f"Spotify login failed: {e}",
                extra={"exception_type": type(e).__name__},
                exc_info=True,
            )
            raise UnexpectedFailure("Internal server error during Spotify login") from e

    async def _complete(self, code: str) -> LoginResponse:
        token_data = await self._token_client.exchange_code(code)

        access_token = token_data.get("access_token")
        if not access_token:
            logger.warning(
                "Spotify did not return an access token",
                extra={"spotify_error": token_data.get("error")}
            )
            raise UpstreamAuthFailure(
                "Failed to get access token from Spotify",
                details=token_data,
            )

        profile = await self._profile_client.get_current_user(access_token)

        if "error" in profile:
            logger.warning(
                "Spotify rejected the profile request",
                extra={"spotify_error": profile.get("error")}
            )
            raise UpstreamProfileFailure(
                "Invalid access token",
                details=profile,
            )

        identity = extract_identity(profile)
        user = await self._users.create_if_absent(**identity)

        token = self._sessions.issue(user.provider_id)

        logger.info("Spotify login completed", extra={"user_id": user.provider_id})

        return LoginResponse(
            profile=ProfileResponse(
                name=identity["display_name"],
                email=identity["email"],
                image=identity["image_url"],
                points=user.points,
            ),
            token=token,
        )
