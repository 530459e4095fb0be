"""Tests for the default record extractor."""

from datetime import UTC, date, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from search_sync.models import EventSnapshot
from search_sync.sync.extract import ExtractionError, RecordExtractor, normalize_value


def snap(data: dict | None, doc_id: str = "doc-1") -> EventSnapshot:
    return EventSnapshot(id=doc_id, path=f"products/{doc_id}", data=data)


class TestNormalizeValue:
    def test_datetime_to_epoch_ms(self) -> None:
        value = datetime(2024, 1, 1, tzinfo=UTC)
        assert normalize_value(value) == 1704067200000

    def test_date_to_iso(self) -> None:
        assert normalize_value(date(2024, 1, 2)) == "2024-01-02"

    def test_bytes_to_base64(self) -> None:
        assert normalize_value(b"hi") == "aGk="

    def test_geo_point(self) -> None:
        point = SimpleNamespace(latitude=1.5, longitude=-2.0)
        assert normalize_value(point) == {"lat": 1.5, "lng": -2.0}

    def test_document_reference(self) -> None:
        ref = SimpleNamespace(id="u1", path="users/u1")
        assert normalize_value(ref) == "users/u1"

    def test_nested(self) -> None:
        value = {"when": [datetime(2024, 1, 1, tzinfo=UTC)], "n": {"x": 1}}
        assert normalize_value(value) == {"when": [1704067200000], "n": {"x": 1}}


class TestRecordExtractor:
    """Tests for RecordExtractor."""

    async def test_record_carries_identity_and_timestamp(self) -> None:
        record = await RecordExtractor()(snap({"title": "Lamp"}), 1234)
        assert record == {
            "title": "Lamp",
            "objectID": "doc-1",
            "path": "products/doc-1",
            "_updatedAt": 1234,
        }

    async def test_zero_timestamp_omits_updated_at(self) -> None:
        record = await RecordExtractor()(snap({"title": "Lamp"}), 0)
        assert "_updatedAt" not in record

    async def test_tracked_fields_only(self) -> None:
        extractor = RecordExtractor(["title", "meta.color"])
        record = await extractor(
            snap({"title": "Lamp", "price": 3, "meta": {"color": "red", "w": 1}}), 0
        )
        assert record == {
            "title": "Lamp",
            "meta.color": "red",
            "objectID": "doc-1",
            "path": "products/doc-1",
        }

    async def test_document_id_overrides_data_object_id(self) -> None:
        record = await RecordExtractor()(snap({"objectID": "spoofed"}), 0)
        assert record["objectID"] == "doc-1"

    async def test_missing_document_raises(self) -> None:
        with pytest.raises(ExtractionError, match="does not exist"):
            await RecordExtractor()(snap(None), 0)

    async def test_transform_result_used(self) -> None:
        transformer = AsyncMock(return_value={"name": "LAMP"})
        record = await RecordExtractor(transformer=transformer)(snap({"name": "lamp"}), 0)

        transformer.assert_awaited_once_with({"name": "lamp"})
        assert record["name"] == "LAMP"
        assert record["objectID"] == "doc-1"

    async def test_transform_failure_raises_extraction_error(self) -> None:
        transformer = AsyncMock(side_effect=RuntimeError("down"))
        with pytest.raises(ExtractionError, match="transform failed"):
            await RecordExtractor(transformer=transformer)(snap({"name": "lamp"}), 0)

    async def test_transform_non_object_rejected(self) -> None:
        transformer = AsyncMock(return_value=["not", "a", "dict"])
        with pytest.raises(ExtractionError, match="did not return an object"):
            await RecordExtractor(transformer=transformer)(snap({"name": "lamp"}), 0)
