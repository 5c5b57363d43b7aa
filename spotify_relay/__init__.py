"""
Spotify login relay.

A small FastAPI service that signs users in with Spotify, keeps a user
record with a point balance in Firestore, and hands the client a
short-lived session JWT.
"""

__version__ = "1.0.0"
