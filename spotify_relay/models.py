"""
Data Models Module

Pydantic models for the stored user record and the JSON bodies returned
by the relay.

Models are organized by functional area:
- User models (the persisted record)
- Login response models (profile + session token)
- Error models
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# User Models
# ============================================================================

class UserRecord(BaseModel):
    """
    A logged-in Spotify identity and its point balance.

    Stored as one document per user with camelCase field names; use
    ``model_dump(by_alias=True)`` to produce the document body.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    provider_id: str = Field(..., alias="providerId", description="Spotify user ID (primary key)")
    email: str = Field(..., description="Email address or 'Not provided'")
    display_name: str = Field(..., alias="displayName", description="Spotify display name")
    image_url: Optional[str] = Field(None, alias="imageUrl", description="First avatar image URL")
    points: int = Field(..., description="Point balance assigned at creation")
    has_claimed: bool = Field(default=False, alias="hasClaimed", description="Whether points were claimed")


# ============================================================================
# Login Response Models
# ============================================================================

class ProfileResponse(BaseModel):
    """Profile fields echoed to the client after login."""
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    image: Optional[str] = Field(None, description="Avatar image URL")
    points: int = Field(..., description="Stored point balance")


class LoginResponse(BaseModel):
    """Response body of a successful /callback."""
    profile: ProfileResponse
    token: str = Field(..., description="Session JWT")


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Error body returned by /callback."""
    error: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(None, description="Provider response, when relevant")
