"""
Configuration module for the Spotify login relay.

This module uses Pydantic Settings to load and validate environment variables
for the Spotify OAuth client, session token signing, the Firestore user store,
and server/CORS settings.

Environment variables are loaded from .env file or system environment.
Settings are frozen once loaded; a missing or invalid value raises
``pydantic.ValidationError`` at startup and the service never serves traffic.
"""

import base64
import binascii
import json
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_ME_URL = "https://api.spotify.com/v1/me"

# Requested on every login; show_dialog forces the consent screen.
SPOTIFY_SCOPES = "user-read-email user-read-private"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    # =========================================================================
    # Spotify OAuth Configuration
    # =========================================================================

    SPOTIFY_CLIENT_ID: str = Field(
        ...,
        description="Spotify application client ID",
        min_length=1,
    )

    SPOTIFY_CLIENT_SECRET: str = Field(
        ...,
        description="Spotify application client secret",
        min_length=1,
    )

    SPOTIFY_REDIRECT_URI: str = Field(
        ...,
        description="Redirect URI registered in the Spotify dashboard (e.g., http://localhost:3001/callback)",
        min_length=1,
    )

    SPOTIFY_HTTP_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout for calls to the Spotify accounts and Web API",
        gt=0,
        le=120,
    )

    # =========================================================================
    # Session JWT Configuration
    # =========================================================================

    JWT_SECRET: str = Field(
        ...,
        description="Secret key for signing session JWTs",
        min_length=32,
    )

    SESSION_JWT_EXPIRY_MINUTES: int = Field(
        default=60,
        description="Session JWT expiry time in minutes",
        ge=1,
        le=1440,
    )

    # =========================================================================
    # Firebase / Firestore Configuration
    # =========================================================================

    USER_STORE_BACKEND: Literal["firestore", "memory"] = Field(
        default="firestore",
        description="Where user records are kept ('memory' is for local development)",
    )

    FIREBASE_API_KEY: Optional[str] = Field(
        None,
        description="Firebase web API key (client configuration, not used for server auth)",
    )

    FIREBASE_AUTH_DOMAIN: Optional[str] = Field(
        None,
        description="Firebase auth domain (e.g., my-project.firebaseapp.com)",
    )

    FIREBASE_PROJECT_ID: Optional[str] = Field(
        None,
        description="Firebase project ID (defaults to the service account's project_id)",
    )

    FIREBASE_SERVICE_ACCOUNT_BASE64: Optional[str] = Field(
        None,
        description="Base64-encoded service account JSON key",
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the server",
    )

    PORT: int = Field(
        default=3001,
        description="Port to bind the server",
        ge=1,
        le=65535,
    )

    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS as a list.
        """
        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def service_account_info(self) -> Optional[Dict[str, Any]]:
        """
        Decode the service account key.

        Returns:
            Service account dictionary, or None if not configured.
        """
        if not self.FIREBASE_SERVICE_ACCOUNT_BASE64:
            return None
        return _decode_service_account(self.FIREBASE_SERVICE_ACCOUNT_BASE64)

    @property
    def firebase_project_id(self) -> Optional[str]:
        """Project ID from FIREBASE_PROJECT_ID, falling back to the service account."""
        if self.FIREBASE_PROJECT_ID:
            return self.FIREBASE_PROJECT_ID
        info = self.service_account_info
        return info.get("project_id") if info else None

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("SPOTIFY_REDIRECT_URI")
    @classmethod
    def validate_redirect_uri(cls, v: str) -> str:
        """
        Validate that the redirect URI is an absolute http(s) URL.

        Raises:
            ValueError: If the URI has no http/https scheme
        """
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid redirect URI: '{v}'. "
                "Expected an absolute http:// or https:// URL"
            )
        return v

    @field_validator("FIREBASE_SERVICE_ACCOUNT_BASE64")
    @classmethod
    def validate_service_account(cls, v: Optional[str]) -> Optional[str]:
        """
        Validate that the service account blob decodes to a JSON object.

        Raises:
            ValueError: If the value is not base64-encoded JSON
        """
        if v is None or not v.strip():
            return None
        _decode_service_account(v)
        return v.strip()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}, got: {v}")
        return v.upper()

    @model_validator(mode="after")
    def validate_store_credentials(self) -> "Settings":
        """Firestore needs a service account key to start."""
        if self.USER_STORE_BACKEND == "firestore" and not self.FIREBASE_SERVICE_ACCOUNT_BASE64:
            raise ValueError(
                "FIREBASE_SERVICE_ACCOUNT_BASE64 is required when USER_STORE_BACKEND=firestore"
            )
        return self


def _decode_service_account(blob: str) -> Dict[str, Any]:
    try:
        info = json.loads(base64.b64decode(blob, validate=True))
    except (binascii.Error, ValueError) as e:
        raise ValueError(
            f"FIREBASE_SERVICE_ACCOUNT_BASE64 is not base64-encoded JSON: {e}"
        ) from e

    if not isinstance(info, dict):
        raise ValueError("FIREBASE_SERVICE_ACCOUNT_BASE64 must decode to a JSON object")

    return info


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Cached so that the environment is read only once during the
    application lifecycle.

    Raises:
        ValidationError: If required environment variables are missing
                        or invalid.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> dict:
    """
    Check configuration for non-fatal problems and return a status report.

    Called during application startup; hard errors are already rejected
    when ``Settings`` is constructed.

    Example:
        >>> status = validate_configuration(get_settings())
        >>> if status["warnings"]:
        ...     print(status["warnings"])
    """
    errors = []
    warnings = []

    if settings.USER_STORE_BACKEND == "memory":
        warnings.append("USER_STORE_BACKEND=memory: user records are lost on restart")

    if settings.USER_STORE_BACKEND == "firestore":
        project_id = settings.firebase_project_id
        if not project_id:
            errors.append(
                "No Firestore project: set FIREBASE_PROJECT_ID or include project_id in the service account"
            )
        elif settings.FIREBASE_AUTH_DOMAIN and not settings.FIREBASE_AUTH_DOMAIN.startswith(f"{project_id}."):
            warnings.append(
                f"FIREBASE_AUTH_DOMAIN '{settings.FIREBASE_AUTH_DOMAIN}' does not belong to project '{project_id}'"
            )

        if not settings.FIREBASE_API_KEY:
            warnings.append("FIREBASE_API_KEY is not set (only needed by web clients)")

    if "*" in settings.allowed_origins_list:
        warnings.append("ALLOWED_ORIGINS allows any origin")

    if settings.SPOTIFY_REDIRECT_URI.startswith("http://") and "localhost" not in settings.SPOTIFY_REDIRECT_URI \
            and "127.0.0.1" not in settings.SPOTIFY_REDIRECT_URI:
        warnings.append("SPOTIFY_REDIRECT_URI uses plain http on a non-local host")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "user_store_backend": settings.USER_STORE_BACKEND,
        "jwt_expiry_minutes": settings.SESSION_JWT_EXPIRY_MINUTES,
    }
