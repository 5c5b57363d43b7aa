"""
User storage package.

Modules:
- repository: UserRepository interface with Firestore and in-memory backends
"""

from .repository import (
    FirestoreUserRepository,
    InMemoryUserRepository,
    UserRepository,
    create_firestore_repository,
)

__all__ = [
    "UserRepository",
    "FirestoreUserRepository",
    "InMemoryUserRepository",
    "create_firestore_repository",
]
