"""NATS Core pub/sub publisher for operator-facing status updates.

Full reindex runs end with exactly one processing-state report. Reports are
published on Core NATS (not JetStream) and the latest one is kept in memory
for the HTTP status endpoint.
"""

import asyncio
import logging
import time
from typing import Any

import nats
from pydantic import BaseModel, Field

from search_sync.models import ProcessingState

logger = logging.getLogger(__name__)

PROCESSING_STATE_SUBJECT = "sync.status.processing"


class ProcessingStateUpdate(BaseModel):
    """Terminal processing state of a full reindex run."""

    state: ProcessingState = Field(description="PROCESSING_COMPLETE, _WARNING or _FAILED")
    message: str = Field(description="Human-readable summary")
    indexName: str = Field(  # noqa: N815 - matches the published payload
        default="", description="Target index of the run"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: int = Field(description="Unix timestamp in milliseconds")


class NatsPubSubPublisher:
    """Publishes processing-state reports via Core NATS."""

    def __init__(self, url: str = "nats://localhost:4222", index_name: str = "") -> None:
        self.url = url
        self.index_name = index_name
        self.last_update: ProcessingStateUpdate | None = None
        self._nc: nats.NATS | None = None
        self._connect_promise: asyncio.Task[nats.NATS] | None = None

    async def connect(self) -> nats.NATS:
        """Connect to NATS server with connection reuse."""
        if self._nc is not None and self._nc.is_connected:
            return self._nc

        # If already connecting, wait for that attempt
        if self._connect_promise is not None:
            return await self._connect_promise

        async def _connect() -> nats.NATS:
            try:
                logger.info(f"Connecting to NATS pub/sub at {self.url}")
                nc = await nats.connect(servers=self.url, name="search-sync-pubsub")
                self._nc = nc
                logger.info("NATS pub/sub publisher connected successfully")
                return nc
            finally:
                self._connect_promise = None

        self._connect_promise = asyncio.create_task(_connect())
        return await self._connect_promise

    async def set_processing_state(
        self, state: ProcessingState, message: str, **details: Any
    ) -> None:
        """Record and publish the terminal state of a full reindex run.

        The update is stored before publishing, so the status endpoint reflects
        it even if NATS is unreachable.
        """
        update = ProcessingStateUpdate(
            state=state,
            message=message,
            indexName=self.index_name,
            details=details,
            timestamp=int(time.time() * 1000),
        )
        self.last_update = update

        nc = await self.connect()
        await nc.publish(PROCESSING_STATE_SUBJECT, update.model_dump_json().encode("utf-8"))
        logger.info(f"Published processing state {state}: {message}")

    async def disconnect(self) -> None:
        if self._nc is not None:
            logger.info("Disconnecting NATS pub/sub publisher")
            await self._nc.drain()
            self._nc = None

    async def __aenter__(self) -> "NatsPubSubPublisher":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
