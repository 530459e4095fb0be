"""Conversion of database documents into search index records."""

import base64
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any

from search_sync.models import DocumentSnapshot, IndexRecord
from search_sync.sync.diff import lookup

logger = logging.getLogger(__name__)

Transformer = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


class ExtractionError(Exception):
    """Raised when a document cannot be turned into an index record."""

    def __init__(self, document_id: str, reason: str) -> None:
        super().__init__(f"Failed to extract document {document_id}: {reason}")
        self.document_id = document_id
        self.reason = reason


def normalize_value(value: Any) -> Any:
    """Convert database-native values into JSON-compatible payload values."""
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, Mapping):
        return {str(k): normalize_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [normalize_value(v) for v in value]
    # GeoPoint
    if hasattr(value, "latitude") and hasattr(value, "longitude"):
        return {"lat": value.latitude, "lng": value.longitude}
    # DocumentReference
    if hasattr(value, "path") and hasattr(value, "id") and not isinstance(value, str):
        return value.path
    return value


def select_fields(data: Mapping[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    """Keep only the given (possibly dotted) fields, dropping absent ones."""
    selected: dict[str, Any] = {}
    for field in fields:
        value = lookup(data, field)
        if value is not None:
            selected[field] = value
    return selected


class RecordExtractor:
    """Builds index records from document snapshots.

    Keeps only the tracked fields (all fields when none are configured),
    normalizes values, runs the optional transform, then stamps ``objectID``,
    ``path`` and, for non-zero timestamps, ``_updatedAt``.
    """

    def __init__(
        self,
        tracked_fields: Iterable[str] | None = None,
        transformer: Transformer | None = None,
    ) -> None:
        self.tracked_fields = [f for f in (tracked_fields or []) if f]
        self.transformer = transformer

    async def __call__(self, snapshot: DocumentSnapshot, timestamp: int) -> IndexRecord:
        data = snapshot.to_dict() if snapshot.exists else None
        if data is None:
            raise ExtractionError(snapshot.id, "document does not exist")

        if self.tracked_fields:
            data = select_fields(data, self.tracked_fields)

        payload: dict[str, Any] = normalize_value(data)

        if self.transformer is not None:
            try:
                payload = await self.transformer(payload)
            except Exception as e:
                raise ExtractionError(snapshot.id, f"transform failed: {e}") from e
            if not isinstance(payload, dict):
                raise ExtractionError(snapshot.id, "transform did not return an object")

        record: IndexRecord = {**payload, "objectID": snapshot.id, "path": snapshot.path}
        if timestamp:
            record["_updatedAt"] = timestamp

        logger.debug(f"Extracted record {snapshot.id} with {len(record)} fields")
        return record
