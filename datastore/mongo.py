"""MongoDB-backed persistence for sensor readings."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from models.records import SensorReading
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "esp32_iot"


class StoreError(Exception):
    """Base class for failures raised by the reading store."""


class StoreConnectionError(StoreError):
    """The database could not be reached at startup."""


class StoreWriteError(StoreError):
    """A reading could not be written."""


class StoreReadError(StoreError):
    """Readings could not be queried."""


def mask_uri(uri: str) -> str:
    """Hide the password of a connection URI so it can be logged."""
    parts = urlsplit(uri)
    userinfo, sep, hosts = parts.netloc.rpartition("@")
    if not sep or ":" not in userinfo:
        return uri
    username = userinfo.split(":", 1)[0]
    return urlunsplit(parts._replace(netloc=f"{username}:***@{hosts}"))


class ReadingStore:
    """Owns the MongoDB client and mediates every read and write.

    The pymongo client keeps its own thread-safe connection pool, so a single
    store is shared by all request handlers without extra locking.
    """

    def __init__(
        self,
        collection: Collection,
        client: Optional[MongoClient] = None,
    ) -> None:
        self.collection = collection
        self._client = client

    @classmethod
    def connect(
        cls,
        uri: str,
        collection_name: str = "sensordatas",
        timeout_ms: int = 5000,
    ) -> "ReadingStore":
        """Open a client, verify the server answers and prepare the index."""
        client: Optional[MongoClient] = None
        try:
            client = MongoClient(
                uri,
                tz_aware=True,
                serverSelectionTimeoutMS=timeout_ms,
            )
            client.admin.command("ping")
            database = client.get_default_database(default=DEFAULT_DATABASE)
            collection = database[collection_name]
            collection.create_index(
                [("device_id", ASCENDING), ("timestamp", DESCENDING)],
                name="device_latest",
            )
        except (PyMongoError, ValueError) as exc:
            if client is not None:
                client.close()
            raise StoreConnectionError(
                f"Could not connect to MongoDB at {mask_uri(uri)}: {exc}"
            ) from exc

        logger.info(
            "Connected to MongoDB collection %s", collection.full_name, extra={"uri": mask_uri(uri)}
        )
        return cls(collection=collection, client=client)

    def insert(self, reading: SensorReading) -> str:
        try:
            result = self.collection.insert_one(reading.to_document())
        except PyMongoError as exc:
            raise StoreWriteError(
                f"Failed to insert reading for device {reading.device_id!r}."
            ) from exc
        return str(result.inserted_id)

    def find_latest(self, device_id: str) -> Optional[SensorReading]:
        """Return the reading with the newest timestamp for ``device_id``.

        Ties on the newest timestamp are resolved by the database.
        """
        try:
            document = self.collection.find_one(
                {"device_id": device_id},
                sort=[("timestamp", DESCENDING)],
            )
        except PyMongoError as exc:
            raise StoreReadError(
                f"Failed to query latest reading for device {device_id!r}."
            ) from exc
        if document is None:
            return None
        return SensorReading.from_document(document)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


def connect_default_store() -> ReadingStore:
    """Connect using the environment-provided settings."""
    settings = get_settings()
    return ReadingStore.connect(
        settings.mongo_uri,
        collection_name=settings.collection_name,
        timeout_ms=settings.connect_timeout_ms,
    )
