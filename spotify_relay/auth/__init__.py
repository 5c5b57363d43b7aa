"""
Authentication Package

This package handles the "login with Spotify" flow for the relay.

Key responsibilities:
- Redirecting the browser to Spotify's authorization page
- Exchanging the authorization code for an access token
- Fetching the Spotify profile and storing the user record
- Issuing the session JWT returned to the client

Modules:
- routes: Public endpoints (/login, /callback) and their dependencies
- flow: Callback sequencing and the failure types it raises
- spotify: HTTP clients for the Spotify accounts service and Web API
- session: Session JWT issuance and verification

The authentication flow:
1. Client opens /login and is redirected to Spotify
2. User approves access on Spotify's consent dialog
3. Spotify redirects to /callback with an authorization code
4. Relay exchanges the code, fetches the profile, stores the user
5. Relay returns the profile, point balance and a session JWT
"""

from .routes import auth_router

__all__ = [
    "auth_router",
]
