"""Full reindex task queue and task consumer over NATS JetStream."""

import asyncio
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from search_sync.clients.nats import REINDEX_SUBJECT, NatsClient
from search_sync.models import ReindexState
from search_sync.sync.reindex import BatchReindexController
from search_sync.utils.metrics import record_nats_message

logger = logging.getLogger(__name__)


class ReindexTaskQueue:
    """Enqueues reindex task payloads.

    The message key combines the run's start time and offset, so a
    continuation published twice for the same page is de-duplicated.
    """

    def __init__(self, nats_client: NatsClient, subject: str = REINDEX_SUBJECT) -> None:
        self.nats = nats_client
        self.subject = subject

    async def enqueue(self, state: ReindexState) -> None:
        key = f"reindex-{state.start_time}-{state.offset}"
        await self.nats.publish(self.subject, key, state.to_payload())
        logger.debug(f"Enqueued reindex task {key}")


class ReindexConsumerConfig(BaseModel):
    """Configuration for the reindex task consumer."""

    subject: str = Field(default=REINDEX_SUBJECT, description="Subject to consume")
    group_id: str = Field(default="search-sync", description="Durable consumer name")


class ReindexTaskConsumer:
    """Runs one BatchReindexController invocation per task message.

    Infrastructure errors raised by the controller propagate to the NATS
    client, which nak's the message so that invocation is redelivered.
    """

    def __init__(
        self,
        nats_client: NatsClient,
        controller: BatchReindexController,
        config: ReindexConsumerConfig | None = None,
    ) -> None:
        self.nats = nats_client
        self.controller = controller
        self.config = config or ReindexConsumerConfig()
        self._running = False

    async def start(self) -> None:
        if self._running:
            logger.warning("Reindex consumer already running")
            return

        logger.info(f"Starting reindex consumer for '{self.config.subject}'")
        self._running = True

        try:
            await self.nats.subscribe(
                subject=self.config.subject,
                group_id=self.config.group_id,
                handler=self._handle_message,
            )
        except asyncio.CancelledError:
            logger.info("Reindex consumer task cancelled")
        except Exception as e:
            logger.error(f"Error in reindex consumer loop: {e}", exc_info=True)
        finally:
            self._running = False

    async def stop(self) -> None:
        if not self._running:
            return
        logger.info("Stopping reindex consumer")
        self._running = False

    async def _handle_message(self, subject: str, data: dict[str, Any]) -> None:
        try:
            state = ReindexState.from_payload(data)
        except ValidationError as e:
            logger.error(f"Dropping malformed reindex task: {e}")
            record_nats_message(subject, success=False)
            return

        try:
            await self.controller.run(state)
        except Exception:
            record_nats_message(subject, success=False)
            raise
        record_nats_message(subject, success=True)
