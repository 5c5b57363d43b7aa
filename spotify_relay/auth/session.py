"""
JWT Session Management Module
==============================

Issues the short-lived session JWT handed to the client after a successful
Spotify login. Tokens carry only the Spotify user id and are signed with
HS256 using the process-wide ``JWT_SECRET``.

Tokens are stateless: nothing is persisted and there is no revocation.
``verify`` exists for external collaborators that accept these tokens;
no HTTP endpoint exposes it.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from ..config import Settings

logger = logging.getLogger(__name__)

SESSION_JWT_ALGORITHM = "HS256"


# =============================================================================
# Exceptions
# =============================================================================

class SessionTokenError(Exception):
    """Raised when a session token cannot be issued or verified"""
    pass


# =============================================================================
# Issuer
# =============================================================================

class SessionIssuer:
    """
    Signs and verifies session JWTs.

    Args:
        secret: HMAC signing secret
        expiry_minutes: Lifetime of issued tokens
        clock: Returns the current UTC time (overridable in tests)
    """

    def __init__(
        self,
        secret: str,
        expiry_minutes: int = 60,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not secret:
            raise SessionTokenError("JWT_SECRET not configured")

        self._secret = secret
        self._expiry = timedelta(minutes=expiry_minutes)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionIssuer":
        return cls(
            secret=settings.JWT_SECRET,
            expiry_minutes=settings.SESSION_JWT_EXPIRY_MINUTES,
        )

    def issue(self, subject_id: str) -> str:
        """
        Create a session JWT for a Spotify user.

        Args:
            subject_id: Spotify user id, stored in the ``id`` claim

        Returns:
            Encoded JWT string

        Raises:
            SessionTokenError: If subject_id is empty
        """
        if not subject_id:
            raise SessionTokenError("Missing required claim: 'id'")

        now = self._clock()
        payload = {
            "id": subject_id,
            "iat": now,
            "exp": now + self._expiry,
        }

        token = jwt.encode(payload, self._secret, algorithm=SESSION_JWT_ALGORITHM)

        logger.debug(
            "Created session JWT",
            extra={
                "user_id": subject_id,
                "expires_in_minutes": int(self._expiry.total_seconds() // 60),
            }
        )

        return token

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode a session JWT.

        Returns:
            Dictionary containing the decoded claims

        Raises:
            SessionTokenError: If the token is missing, expired, or invalid
        """
        if not token:
            raise SessionTokenError("No session token provided")

        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[SESSION_JWT_ALGORITHM],
                options={"require": ["exp", "iat", "id"]},
            )
        except ExpiredSignatureError as e:
            raise SessionTokenError("Session token has expired") from e
        except InvalidTokenError as e:
            raise SessionTokenError(f"Invalid session token: {e}") from e


__all__ = [
    "SessionIssuer",
    "SessionTokenError",
    "SESSION_JWT_ALGORITHM",
]
