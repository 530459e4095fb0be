"""Tests for API routes."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from search_sync.api import router
from search_sync.clients.nats_pubsub import ProcessingStateUpdate
from search_sync.models import ProcessingState, ReindexState


@pytest.fixture
def mock_qdrant():
    """Create mock Qdrant client."""
    qdrant = MagicMock()
    qdrant.health_check = AsyncMock(return_value=True)
    return qdrant


@pytest.fixture
def mock_task_queue():
    task_queue = MagicMock()
    task_queue.enqueue = AsyncMock()
    return task_queue


@pytest.fixture
def app(mock_qdrant, mock_task_queue) -> FastAPI:
    """Create FastAPI app with mocked state."""
    app = FastAPI()
    app.include_router(router)
    app.state.qdrant = mock_qdrant
    app.state.task_queue = mock_task_queue
    app.state.status_reporter = MagicMock(last_update=None)
    return app


@pytest.fixture
async def client(app: FastAPI):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestHealth:
    """Tests for health and readiness endpoints."""

    async def test_healthy(self, client: AsyncClient) -> None:
        response = await client.get("/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["qdrant_connected"] is True
        assert data["version"] == "0.1.0"

    async def test_degraded_without_qdrant(self, app: FastAPI, client: AsyncClient) -> None:
        app.state.qdrant = None

        data = (await client.get("/v1/health")).json()

        assert data["status"] == "degraded"
        assert data["qdrant_connected"] is False

    async def test_degraded_when_health_check_raises(
        self, mock_qdrant: MagicMock, client: AsyncClient
    ) -> None:
        mock_qdrant.health_check = AsyncMock(side_effect=Exception("down"))

        assert (await client.get("/v1/health")).json()["status"] == "degraded"

    async def test_ready(self, client: AsyncClient) -> None:
        assert (await client.get("/v1/ready")).json() == {"status": "ready"}

    async def test_not_ready(self, mock_qdrant: MagicMock, client: AsyncClient) -> None:
        mock_qdrant.health_check = AsyncMock(return_value=False)

        data = (await client.get("/v1/ready")).json()

        assert data["status"] == "not_ready"
        assert "health check failed" in data["reason"]

    async def test_metrics(self, client: AsyncClient) -> None:
        response = await client.get("/v1/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]


class TestReindex:
    """Tests for full reindex control endpoints."""

    async def test_start_reindex_enqueues_fresh_state(
        self, mock_task_queue: MagicMock, client: AsyncClient
    ) -> None:
        response = await client.post("/v1/reindex")

        assert response.status_code == 202
        state = mock_task_queue.enqueue.call_args.args[0]
        assert isinstance(state, ReindexState)
        assert state.offset == 0
        assert state.temp_index_name is None
        assert response.json() == {"status": "enqueued", "start_time": state.start_time}

    async def test_start_reindex_without_queue(self, app: FastAPI, client: AsyncClient) -> None:
        app.state.task_queue = None

        response = await client.post("/v1/reindex")

        assert response.status_code == 503

    async def test_start_reindex_enqueue_failure(
        self, mock_task_queue: MagicMock, client: AsyncClient
    ) -> None:
        mock_task_queue.enqueue = AsyncMock(side_effect=ConnectionError("no server"))

        response = await client.post("/v1/reindex")

        assert response.status_code == 503
        assert "no server" in response.json()["detail"]

    async def test_status_before_any_run(self, client: AsyncClient) -> None:
        assert (await client.get("/v1/reindex/status")).status_code == 404

    async def test_status_after_run(self, app: FastAPI, client: AsyncClient) -> None:
        app.state.status_reporter.last_update = ProcessingStateUpdate(
            state=ProcessingState.WARNING,
            message="Successfully indexed 9 documents, 1 errors in 5ms.",
            indexName="products",
            timestamp=1700000000000,
        )

        response = await client.get("/v1/reindex/status")

        assert response.status_code == 200
        assert response.json() == {
            "state": "PROCESSING_WARNING",
            "message": "Successfully indexed 9 documents, 1 errors in 5ms.",
            "index_name": "products",
            "timestamp": 1700000000000,
        }
