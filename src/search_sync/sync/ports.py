"""Collaborator interfaces consumed by the sync controllers.

Concrete implementations live in ``search_sync.clients`` (Qdrant, Firestore,
NATS); tests substitute in-memory fakes.
"""

from collections.abc import Sequence
from typing import Any, Protocol

from search_sync.models import DocumentSnapshot, IndexRecord, ProcessingState, ReindexState


class IndexStore(Protocol):
    """Handle to a single search index."""

    name: str

    async def partial_update(self, record: IndexRecord, create_if_absent: bool = True) -> None:
        """Merge the record's fields into an existing entry."""
        ...

    async def save(self, record: IndexRecord) -> None:
        """Replace the entry with exactly the record's fields."""
        ...

    async def delete(self, object_id: str) -> None: ...

    async def save_many(
        self, records: Sequence[IndexRecord], auto_generate_id: bool = True
    ) -> int:
        """Save records in bulk; returns the number written."""
        ...

    async def delete_index(self) -> None: ...


class IndexStoreClient(Protocol):
    """Account-level operations on the search service."""

    def init_index(self, name: str) -> IndexStore: ...

    async def copy_settings(self, source: str, destination: str) -> None:
        """Create ``destination`` with the configuration of ``source``."""
        ...

    async def copy_index(self, source: str, destination: str) -> None:
        """Atomically replace ``destination`` with the settings and records of ``source``."""
        ...


class DocumentDatabase(Protocol):
    async def get_document(self, path: str) -> DocumentSnapshot: ...

    async def fetch_page(
        self, collection_path: str, offset: int, limit: int
    ) -> list[DocumentSnapshot]: ...


class Extractor(Protocol):
    async def __call__(self, snapshot: DocumentSnapshot, timestamp: int) -> IndexRecord: ...


class TaskQueue(Protocol):
    async def enqueue(self, state: ReindexState) -> None: ...


class StatusReporter(Protocol):
    async def set_processing_state(
        self, state: ProcessingState, message: str, **details: Any
    ) -> None: ...
