"""Shared data types for change events, snapshots and reindex payloads."""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

# An index record is a plain mapping; it always carries ``objectID``.
IndexRecord = dict[str, Any]


class ChangeType(StrEnum):
    """Kind of write a change event represents."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    INVALID = "invalid"


class ProcessingState(StrEnum):
    """Terminal state of a full reindex run, as reported to operators."""

    COMPLETE = "PROCESSING_COMPLETE"
    WARNING = "PROCESSING_WARNING"
    FAILED = "PROCESSING_FAILED"


@runtime_checkable
class DocumentSnapshot(Protocol):
    """Read-only view of a database document at a point in time."""

    @property
    def id(self) -> str: ...

    @property
    def path(self) -> str: ...

    @property
    def exists(self) -> bool: ...

    def to_dict(self) -> dict[str, Any] | None: ...


@dataclass(frozen=True, slots=True)
class EventSnapshot:
    """Snapshot carried inside a change event message."""

    id: str
    path: str
    data: dict[str, Any] | None = None

    @property
    def exists(self) -> bool:
        return self.data is not None

    def to_dict(self) -> dict[str, Any] | None:
        return None if self.data is None else dict(self.data)


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A single document write: before/after snapshots plus the event time."""

    before: DocumentSnapshot | None
    after: DocumentSnapshot | None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def timestamp_ms(self) -> int:
        """Event time as epoch milliseconds."""
        return int(self.timestamp.timestamp() * 1000)

    @property
    def document_id(self) -> str | None:
        snapshot = self.after if self.after is not None else self.before
        return snapshot.id if snapshot is not None else None


class SnapshotPayload(BaseModel):
    """Wire shape of one side of a change event."""

    id: str
    path: str | None = None
    data: dict[str, Any] | None = Field(default_factory=dict)

    def to_snapshot(self) -> EventSnapshot:
        return EventSnapshot(id=self.id, path=self.path or self.id, data=self.data)


class ChangeEventPayload(BaseModel):
    """Wire shape of a change event message.

    Expected event structure:
    {
        "before": {"id": "doc-id", "path": "col/doc-id", "data": {...}} | null,
        "after": {"id": "doc-id", "path": "col/doc-id", "data": {...}} | null,
        "timestamp": "2024-01-01T00:00:00Z"
    }
    """

    before: SnapshotPayload | None = None
    after: SnapshotPayload | None = None
    timestamp: datetime

    def to_event(self) -> ChangeEvent:
        return ChangeEvent(
            before=self.before.to_snapshot() if self.before else None,
            after=self.after.to_snapshot() if self.after else None,
            timestamp=self.timestamp,
        )


def now_ms() -> int:
    """Current wall time in epoch milliseconds."""
    return int(time.time() * 1000)


class ReindexState(BaseModel):
    """Checkpoint threaded through re-enqueued full reindex tasks.

    Serialized with camelCase keys so the task payload keeps its external
    shape: ``offset``, ``successCount``, ``errorCount``, ``startTime``,
    ``tempIndexName``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    offset: int = Field(default=0, ge=0)
    success_count: int = Field(default=0, ge=0, alias="successCount")
    error_count: int = Field(default=0, ge=0, alias="errorCount")
    start_time: int = Field(default_factory=now_ms, alias="startTime")
    temp_index_name: str | None = Field(default=None, alias="tempIndexName")

    @classmethod
    def from_payload(cls, data: dict[str, Any] | None) -> "ReindexState":
        """Build state from a task payload, defaulting missing or null fields."""
        return cls.model_validate({k: v for k, v in (data or {}).items() if v is not None})

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    @property
    def processed_count(self) -> int:
        return self.success_count + self.error_count
