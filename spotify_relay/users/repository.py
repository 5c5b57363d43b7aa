"""
User repository.

One document per Spotify user in the ``users`` collection, keyed by the
Spotify user id. A record is created on first login with a random point
balance and is never modified afterwards by this service.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.api_core.exceptions import AlreadyExists

from ..models import UserRecord

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"

MIN_POINTS = 1000
MAX_POINTS = 15000


def generate_points() -> int:
    """Uniform random point balance in [MIN_POINTS, MAX_POINTS]."""
    return random.randint(MIN_POINTS, MAX_POINTS)


def new_user_record(
    provider_id: str,
    email: str,
    display_name: str,
    image_url: Optional[str],
    points: int,
) -> UserRecord:
    return UserRecord(
        provider_id=provider_id,
        email=email,
        display_name=display_name,
        image_url=image_url,
        points=points,
        has_claimed=False,
    )


class UserRepository(ABC):
    """Storage for user records keyed by Spotify user id."""

    def __init__(self, points_generator: Optional[Callable[[], int]] = None):
        self._generate_points = points_generator or generate_points

    @abstractmethod
    async def get(self, provider_id: str) -> Optional[UserRecord]:
        """Point lookup; None when the user has never logged in."""
        ...

    @abstractmethod
    async def create_if_absent(
        self,
        provider_id: str,
        email: str,
        display_name: str,
        image_url: Optional[str],
    ) -> UserRecord:
        """
        Return the stored record, creating it first if it does not exist.

        An existing record is returned unchanged, so the point balance is
        assigned once per user.
        """
        ...


class InMemoryUserRepository(UserRepository):
    """
    Process-local repository for tests and local development.

    Records are lost when the process exits.
    """

    def __init__(self, points_generator: Optional[Callable[[], int]] = None):
        super().__init__(points_generator)
        self._records: Dict[str, UserRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, provider_id: str) -> Optional[UserRecord]:
        return self._records.get(provider_id)

    async def create_if_absent(
        self,
        provider_id: str,
        email: str,
        display_name: str,
        image_url: Optional[str],
    ) -> UserRecord:
        async with self._lock:
            existing = self._records.get(provider_id)
            if existing is not None:
                return existing

            record = new_user_record(
                provider_id, email, display_name, image_url, self._generate_points()
            )
            self._records[provider_id] = record

        logger.info(
            "Created user record",
            extra={"user_id": provider_id, "points": record.points}
        )
        return record

    def __len__(self) -> int:
        return len(self._records)


class FirestoreUserRepository(UserRepository):
    """
    Firestore-backed repository.

    Creation uses the document ``create()`` call, which fails when the
    document already exists. Two concurrent first logins for the same user
    therefore cannot both write: the loser re-reads and returns the
    winner's record.

    Args:
        client: ``google.cloud.firestore.AsyncClient`` (or compatible)
        collection: Collection name
    """

    def __init__(
        self,
        client,
        collection: str = USERS_COLLECTION,
        points_generator: Optional[Callable[[], int]] = None,
    ):
        super().__init__(points_generator)
        self._client = client
        self._collection = collection

    def _document(self, provider_id: str):
        return self._client.collection(self._collection).document(provider_id)

    async def get(self, provider_id: str) -> Optional[UserRecord]:
        snapshot = await self._document(provider_id).get()
        if not snapshot.exists:
            return None
        return UserRecord.model_validate(snapshot.to_dict())

    async def create_if_absent(
        self,
        provider_id: str,
        email: str,
        display_name: str,
        image_url: Optional[str],
    ) -> UserRecord:
        existing = await self.get(provider_id)
        if existing is not None:
            return existing

        record = new_user_record(
            provider_id, email, display_name, image_url, self._generate_points()
        )

        try:
            await self._document(provider_id).create(record.model_dump(by_alias=True))
        except AlreadyExists:
            logger.info(
                "User record created concurrently, using stored record",
                extra={"user_id": provider_id}
            )
            stored = await self.get(provider_id)
            if stored is None:
                raise
            return stored

        logger.info(
            "Created user record",
            extra={"user_id": provider_id, "points": record.points}
        )
        return record


def create_firestore_repository(service_account_info: dict, project_id: Optional[str]) -> FirestoreUserRepository:
    """
    Initialize the Firebase Admin SDK and build a Firestore repository.

    Args:
        service_account_info: Decoded service account key
        project_id: Firestore project (defaults to the key's project_id)
    """
    options = {"projectId": project_id} if project_id else None
    app_name = f"spotify-relay-{project_id or service_account_info.get('project_id', 'default')}"

    try:
        app = firebase_admin.get_app(app_name)
    except ValueError:
        app = firebase_admin.initialize_app(
            credentials.Certificate(service_account_info),
            options,
            name=app_name,
        )

    logger.info("Connected to Firestore", extra={"project_id": project_id})
    return FirestoreUserRepository(firestore_async.client(app))
