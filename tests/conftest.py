"""Pytest configuration and shared fixtures.

The sync controllers only talk to collaborator interfaces, so most tests run
against the in-memory fakes defined here instead of Qdrant, Firestore or NATS.
"""

from collections.abc import Sequence
from typing import Any

import pytest

from search_sync.models import EventSnapshot, IndexRecord, ProcessingState, ReindexState
from search_sync.sync.extract import ExtractionError, RecordExtractor


class InMemoryIndex:
    """Index store fake with Algolia-like merge/save semantics."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.records: dict[str, IndexRecord] = {}
        self.calls: list[tuple[str, Any]] = []
        self.fail_with: Exception | None = None
        self.deleted = False

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def partial_update(self, record: IndexRecord, create_if_absent: bool = True) -> None:
        self.calls.append(("partial_update", dict(record)))
        self._check()
        object_id = record["objectID"]
        if object_id in self.records:
            self.records[object_id] = {**self.records[object_id], **record}
        elif create_if_absent:
            self.records[object_id] = dict(record)

    async def save(self, record: IndexRecord) -> None:
        self.calls.append(("save", dict(record)))
        self._check()
        self.records[record["objectID"]] = dict(record)

    async def delete(self, object_id: str) -> None:
        self.calls.append(("delete", object_id))
        self._check()
        self.records.pop(object_id, None)

    async def save_many(
        self, records: Sequence[IndexRecord], auto_generate_id: bool = True
    ) -> int:
        self.calls.append(("save_many", [dict(r) for r in records]))
        self._check()
        for i, record in enumerate(records):
            object_id = record.get("objectID") or f"auto-{len(self.records)}-{i}"
            self.records[object_id] = {**record, "objectID": object_id}
        return len(records)

    async def delete_index(self) -> None:
        self.calls.append(("delete_index", self.name))
        self._check()
        self.deleted = True


class InMemoryIndexClient:
    """Index client fake that tracks every index it hands out."""

    def __init__(self) -> None:
        self.indexes: dict[str, InMemoryIndex] = {}
        self.calls: list[tuple[str, str, str]] = []

    def init_index(self, name: str) -> InMemoryIndex:
        if name not in self.indexes:
            self.indexes[name] = InMemoryIndex(name)
        return self.indexes[name]

    async def copy_settings(self, source: str, destination: str) -> None:
        self.calls.append(("copy_settings", source, destination))
        self.init_index(destination)

    async def copy_index(self, source: str, destination: str) -> None:
        self.calls.append(("copy_index", source, destination))
        target = self.init_index(destination)
        target.records = {k: dict(v) for k, v in self.init_index(source).records.items()}


class FakeDatabase:
    """Document database fake keyed by document path."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        self.documents: dict[str, dict[str, Any]] = dict(documents or {})
        self.reads: list[str] = []
        self.pages: list[tuple[str, int, int]] = []

    async def get_document(self, path: str) -> EventSnapshot:
        self.reads.append(path)
        data = self.documents.get(path)
        return EventSnapshot(
            id=path.rsplit("/", 1)[-1],
            path=path,
            data=dict(data) if data is not None else None,
        )

    async def fetch_page(self, collection_path: str, offset: int, limit: int) -> list[EventSnapshot]:
        self.pages.append((collection_path, offset, limit))
        prefix = f"{collection_path}/"
        paths = sorted(p for p in self.documents if p.startswith(prefix))
        return [
            EventSnapshot(id=p[len(prefix):], path=p, data=dict(self.documents[p]))
            for p in paths[offset : offset + limit]
        ]


class FailingExtractor:
    """Wraps RecordExtractor and fails for selected document ids."""

    def __init__(self, fail_ids: set[str] | None = None, fail_all: bool = False) -> None:
        self.inner = RecordExtractor()
        self.fail_ids = fail_ids or set()
        self.fail_all = fail_all
        self.calls: list[tuple[str, int]] = []

    async def __call__(self, snapshot: EventSnapshot, timestamp: int) -> IndexRecord:
        self.calls.append((snapshot.id, timestamp))
        if self.fail_all or snapshot.id in self.fail_ids:
            raise ExtractionError(snapshot.id, "boom")
        return await self.inner(snapshot, timestamp)


class RecordingTaskQueue:
    def __init__(self, fail_times: int = 0) -> None:
        self.enqueued: list[ReindexState] = []
        self.fail_times = fail_times

    async def enqueue(self, state: ReindexState) -> None:
        if self.fail_times:
            self.fail_times -= 1
            raise ConnectionError("publish failed")
        self.enqueued.append(state)


class RecordingReporter:
    def __init__(self) -> None:
        self.reports: list[tuple[ProcessingState, str]] = []

    async def set_processing_state(
        self, state: ProcessingState, message: str, **details: Any
    ) -> None:
        self.reports.append((state, message))


def make_documents(count: int, collection: str = "products") -> dict[str, dict[str, Any]]:
    """Build ``count`` documents with zero-padded ids so they sort by number."""
    return {
        f"{collection}/doc-{i:04d}": {"title": f"Product {i}", "price": i}
        for i in range(count)
    }


@pytest.fixture
def index_client() -> InMemoryIndexClient:
    return InMemoryIndexClient()


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def task_queue() -> RecordingTaskQueue:
    return RecordingTaskQueue()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()
