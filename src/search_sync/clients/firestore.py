"""Async Firestore access for document re-reads and collection paging."""

import logging
from typing import Any

from google.cloud import firestore

from search_sync.config import Settings

logger = logging.getLogger(__name__)


class FirestoreDocument:
    """Adapts a Firestore DocumentSnapshot to the snapshot interface used by the sync core."""

    def __init__(self, snapshot: Any) -> None:
        self._snapshot = snapshot

    @property
    def id(self) -> str:
        return self._snapshot.id

    @property
    def path(self) -> str:
        return self._snapshot.reference.path

    @property
    def exists(self) -> bool:
        return bool(self._snapshot.exists)

    def to_dict(self) -> dict[str, Any] | None:
        return self._snapshot.to_dict()

    def __repr__(self) -> str:
        return f"FirestoreDocument(path={self.path!r}, exists={self.exists})"


class FirestoreDatabase:
    """Wrapper around firestore.AsyncClient with lazy connection."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._client: firestore.AsyncClient | None = None

    def connect(self) -> None:
        if self._client is not None:
            return
        logger.info(
            f"Connecting to Firestore (project: {self.settings.firestore_project or 'default'}, "
            f"database: {self.settings.firestore_database})"
        )
        self._client = firestore.AsyncClient(
            project=self.settings.firestore_project,
            database=self.settings.firestore_database,
        )

    @property
    def client(self) -> firestore.AsyncClient:
        if self._client is None:
            self.connect()
        return self._client

    async def get_document(self, path: str) -> FirestoreDocument:
        """Read the current state of one document."""
        snapshot = await self.client.document(path).get()
        return FirestoreDocument(snapshot)

    async def fetch_page(self, collection_path: str, offset: int, limit: int) -> list[FirestoreDocument]:
        """Read ``limit`` documents of a collection starting at ``offset``."""
        query = self.client.collection(collection_path).offset(offset).limit(limit)
        snapshots = await query.get()
        logger.debug(f"Read {len(snapshots)} documents from {collection_path} at offset {offset}")
        return [FirestoreDocument(snapshot) for snapshot in snapshots]

    def close(self) -> None:
        if self._client is not None:
            logger.info("Closing Firestore client")
            self._client = None
