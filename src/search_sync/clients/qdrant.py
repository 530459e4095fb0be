"""Qdrant-backed search index store.

Each index record is stored as a Qdrant point whose payload is the record.
Point ids are UUIDv5 values derived from the record's ``objectID`` so the same
document always maps to the same point.
"""

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models

from search_sync.config import Settings
from search_sync.models import IndexRecord
from search_sync.utils.metrics import track_qdrant

logger = logging.getLogger(__name__)

OBJECT_ID_NAMESPACE = uuid.UUID("6f1c3e0a-8d2b-5a47-9b1e-3c4d5e6f7a80")

SCROLL_BATCH_SIZE = 256


def point_id(object_id: str) -> str:
    """Map a record's objectID to its Qdrant point id."""
    return str(uuid.uuid5(OBJECT_ID_NAMESPACE, object_id))


def _object_id(record: IndexRecord) -> str:
    object_id = record.get("objectID")
    if not object_id:
        raise ValueError("Index record is missing objectID")
    return str(object_id)


def _to_point(record: IndexRecord) -> models.PointStruct:
    return models.PointStruct(id=point_id(_object_id(record)), vector={}, payload=record)


class QdrantClientWrapper:
    """Wrapper around AsyncQdrantClient with lifecycle management.

    Provides async context manager interface for proper resource cleanup.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize the Qdrant client wrapper.

        Args:
            settings: Application settings containing Qdrant configuration.
        """
        self.settings = settings
        self._client: AsyncQdrantClient | None = None
        self._collection_name = settings.index_name

    async def connect(self) -> None:
        """Create the AsyncQdrantClient and verify the target collection."""
        logger.info(
            f"Connecting to Qdrant at {self.settings.qdrant_url} "
            f"(collection: {self._collection_name})"
        )

        client_kwargs: dict[str, Any] = {
            "url": self.settings.qdrant_url,
            "timeout": self.settings.qdrant_timeout,
        }
        if self.settings.qdrant_api_key:
            client_kwargs["api_key"] = self.settings.qdrant_api_key

        self._client = AsyncQdrantClient(**client_kwargs)

        try:
            await self._client.get_collection(collection_name=self._collection_name)
            logger.info(f"Successfully connected to Qdrant collection: {self._collection_name}")
        except Exception as e:
            logger.warning(
                f"Could not verify collection '{self._collection_name}': {e}. "
                "Collection may not exist yet."
            )

    async def close(self) -> None:
        if self._client is not None:
            logger.info("Closing Qdrant client connection")
            await self._client.close()
            self._client = None

    @property
    def client(self) -> AsyncQdrantClient:
        """Get the underlying AsyncQdrantClient instance.

        Raises:
            RuntimeError: If client is not connected.
        """
        if self._client is None:
            raise RuntimeError("Qdrant client not connected. Call connect() first.")
        return self._client

    async def health_check(self) -> bool:
        """Check if Qdrant is healthy and responsive."""
        try:
            if self._client is None:
                return False
            await self._client.get_collections()
            return True
        except Exception as e:
            logger.error(f"Qdrant health check failed: {e}")
            return False

    async def collection_exists(self, collection_name: str | None = None) -> bool:
        if self._client is None:
            return False

        collection = collection_name or self._collection_name
        try:
            await self._client.get_collection(collection_name=collection)
            return True
        except Exception:
            return False

    async def get_collection_info(
        self, collection_name: str | None = None
    ) -> models.CollectionInfo | None:
        """Get information about a collection.

        Returns:
            Collection information or None if collection doesn't exist.
        """
        if self._client is None:
            return None

        collection = collection_name or self._collection_name
        try:
            return await self._client.get_collection(collection_name=collection)
        except Exception as e:
            logger.debug(f"No collection info for '{collection}': {e}")
            return None

    async def __aenter__(self) -> "QdrantClientWrapper":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class QdrantIndex:
    """One Qdrant collection used as a search index."""

    def __init__(self, qdrant: QdrantClientWrapper, name: str) -> None:
        self.qdrant = qdrant
        self.name = name

    @track_qdrant("partial_update")
    async def partial_update(self, record: IndexRecord, create_if_absent: bool = True) -> None:
        """Merge record fields into the stored payload.

        Keys absent from ``record`` are left untouched. When the point does not
        exist it is created, unless ``create_if_absent`` is False.
        """
        pid = point_id(_object_id(record))
        existing = await self.qdrant.client.retrieve(
            collection_name=self.name,
            ids=[pid],
            with_payload=False,
            with_vectors=False,
        )
        if existing:
            await self.qdrant.client.set_payload(
                collection_name=self.name, payload=record, points=[pid]
            )
            return

        if not create_if_absent:
            logger.debug(f"Record {record['objectID']} not in {self.name}, not creating")
            return

        await self.qdrant.client.upsert(collection_name=self.name, points=[_to_point(record)])

    @track_qdrant("save")
    async def save(self, record: IndexRecord) -> None:
        """Replace the stored payload with exactly ``record``."""
        await self.qdrant.client.upsert(collection_name=self.name, points=[_to_point(record)])

    @track_qdrant("delete")
    async def delete(self, object_id: str) -> None:
        await self.qdrant.client.delete(
            collection_name=self.name,
            points_selector=models.PointIdsList(points=[point_id(object_id)]),
        )

    @track_qdrant("save_many")
    async def save_many(
        self, records: Sequence[IndexRecord], auto_generate_id: bool = True
    ) -> int:
        """Upsert records in one request.

        Records without an ``objectID`` get a generated one when
        ``auto_generate_id`` is set; otherwise they are rejected.

        Returns:
            Number of records written.
        """
        if not records:
            return 0

        points = []
        for record in records:
            if not record.get("objectID"):
                if not auto_generate_id:
                    raise ValueError("Index record is missing objectID")
                record = {**record, "objectID": uuid.uuid4().hex}
            points.append(_to_point(record))

        await self.qdrant.client.upsert(collection_name=self.name, points=points)
        logger.debug(f"Saved {len(points)} records to {self.name}")
        return len(points)

    @track_qdrant("delete_index")
    async def delete_index(self) -> None:
        await self.qdrant.client.delete_collection(collection_name=self.name)


class QdrantIndexClient:
    """Collection-level operations: index handles, settings and data copies.

    The production index name is served as a Qdrant alias. Promoting a
    rebuilt index fills a fresh collection and repoints the alias in one
    ``update_collection_aliases`` call, so readers see either the old or the
    new data and never a partial copy.
    """

    def __init__(self, qdrant: QdrantClientWrapper) -> None:
        self.qdrant = qdrant

    def init_index(self, name: str) -> QdrantIndex:
        return QdrantIndex(self.qdrant, name)

    async def index_exists(self, name: str) -> bool:
        return await self.qdrant.collection_exists(name)

    @track_qdrant("copy_settings")
    async def copy_settings(self, source: str, destination: str) -> None:
        """Create ``destination`` with the vector config and payload indexes of ``source``.

        An existing destination is left as is, so a redelivered bootstrap
        reuses it. A missing source yields a destination with an empty
        vector config.
        """
        if await self.index_exists(destination):
            logger.info(f"Collection '{destination}' already exists, reusing it")
            return

        info = await self.qdrant.get_collection_info(source)
        if info is None:
            logger.warning(f"Collection '{source}' does not exist, creating '{destination}' empty")
        await self._create_like(info, destination)

    @track_qdrant("copy_index")
    async def copy_index(self, source: str, destination: str) -> None:
        """Atomically replace ``destination`` with the settings and every point of ``source``.

        Points are copied into a new collection first. ``destination`` only
        switches over once the copy has fully succeeded; on failure the
        partial collection is dropped and ``destination`` is untouched.
        """
        info = await self.qdrant.get_collection_info(source)
        if info is None:
            raise ValueError(f"Cannot copy missing collection '{source}'")

        target = f"{destination}_{uuid.uuid4().hex[:8]}"
        await self._create_like(info, target)
        try:
            copied = await self._copy_points(source, target)
        except Exception:
            logger.error(f"Copy from '{source}' failed, dropping partial collection '{target}'")
            await self.qdrant.client.delete_collection(collection_name=target)
            raise

        previous = await self._alias_target(destination)
        operations: list[Any] = []
        if previous is not None:
            operations.append(
                models.DeleteAliasOperation(
                    delete_alias=models.DeleteAlias(alias_name=destination)
                )
            )
        elif await self.qdrant.collection_exists(destination):
            # A plain collection holds the name; it has to go before the alias can take it.
            logger.warning(f"Replacing plain collection '{destination}' with an alias")
            await self.qdrant.client.delete_collection(collection_name=destination)
        operations.append(
            models.CreateAliasOperation(
                create_alias=models.CreateAlias(collection_name=target, alias_name=destination)
            )
        )
        await self.qdrant.client.update_collection_aliases(change_aliases_operations=operations)

        if previous is not None:
            await self.qdrant.client.delete_collection(collection_name=previous)

        logger.info(
            f"Copied {copied} points from '{source}' to '{target}', "
            f"alias '{destination}' now points at it"
        )

    async def _alias_target(self, alias: str) -> str | None:
        response = await self.qdrant.client.get_aliases()
        for description in response.aliases:
            if description.alias_name == alias:
                return description.collection_name
        return None

    async def _copy_points(self, source: str, target: str) -> int:
        copied = 0
        offset: Any = None
        while True:
            points, offset = await self.qdrant.client.scroll(
                collection_name=source,
                limit=SCROLL_BATCH_SIZE,
                offset=offset,
                with_payload=True,
                with_vectors=True,
            )
            if points:
                await self.qdrant.client.upsert(
                    collection_name=target,
                    points=[
                        models.PointStruct(
                            id=point.id, vector=point.vector or {}, payload=point.payload or {}
                        )
                        for point in points
                    ],
                )
                copied += len(points)
            if offset is None:
                return copied

    async def _create_like(self, info: models.CollectionInfo | None, name: str) -> None:
        if info is None:
            await self.qdrant.client.create_collection(collection_name=name, vectors_config={})
            return

        params = info.config.params
        await self.qdrant.client.create_collection(
            collection_name=name,
            vectors_config=params.vectors if params.vectors is not None else {},
            sparse_vectors_config=params.sparse_vectors,
            on_disk_payload=params.on_disk_payload,
        )
        for field_name, schema in (info.payload_schema or {}).items():
            await self.qdrant.client.create_payload_index(
                collection_name=name,
                field_name=field_name,
                field_schema=schema.data_type,
            )
