"""NATS JetStream consumer for document change events."""

import asyncio
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from search_sync.clients.nats import CHANGES_SUBJECT, NatsClient
from search_sync.models import ChangeEventPayload
from search_sync.sync.classifier import InvalidChangeError
from search_sync.sync.incremental import IncrementalSyncController, SyncAction
from search_sync.utils.logging import bind_context, clear_context
from search_sync.utils.metrics import record_nats_message

logger = logging.getLogger(__name__)


class ChangeConsumerConfig(BaseModel):
    """Configuration for the change event consumer."""

    subject: str = Field(default=CHANGES_SUBJECT, description="Subject to consume")
    group_id: str = Field(default="search-sync", description="Durable consumer name")


class ChangeEventConsumer:
    """Consumes document change events and applies them to the search index.

    Each message is decoded into a ChangeEvent and handed to the
    IncrementalSyncController. Malformed messages and invalid change shapes
    are logged and acknowledged; redelivering them would fail the same way.
    """

    def __init__(
        self,
        nats_client: NatsClient,
        controller: IncrementalSyncController,
        config: ChangeConsumerConfig | None = None,
    ) -> None:
        self.nats = nats_client
        self.controller = controller
        self.config = config or ChangeConsumerConfig()
        self._running = False

    async def start(self) -> None:
        """Start consuming change events until cancelled."""
        if self._running:
            logger.warning("Change consumer already running")
            return

        logger.info(
            f"Starting change consumer for '{self.config.subject}' "
            f"(group: {self.config.group_id})"
        )
        self._running = True

        try:
            await self.nats.subscribe(
                subject=self.config.subject,
                group_id=self.config.group_id,
                handler=self._handle_message,
            )
        except asyncio.CancelledError:
            logger.info("Change consumer task cancelled")
        except Exception as e:
            logger.error(f"Error in change consumer loop: {e}", exc_info=True)
        finally:
            self._running = False

    async def stop(self) -> None:
        if not self._running:
            return
        logger.info("Stopping change consumer")
        self._running = False

    async def _handle_message(self, subject: str, data: dict[str, Any]) -> None:
        try:
            event = ChangeEventPayload.model_validate(data).to_event()
        except ValidationError as e:
            logger.error(f"Dropping malformed change event: {e}")
            record_nats_message(subject, success=False)
            return

        bind_context(document_id=event.document_id, subject=subject)
        try:
            action = await self.controller.handle(event)
            record_nats_message(subject, success=action is not SyncAction.FAILED)
        except InvalidChangeError as e:
            logger.error(f"Dropping change event: {e}")
            record_nats_message(subject, success=False)
        finally:
            clear_context()
