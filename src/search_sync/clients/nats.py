"""Async NATS JetStream client wrapper."""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import nats
from nats.js import JetStreamContext
from nats.js.api import AckPolicy, ConsumerConfig, DeliverPolicy
from nats.js.errors import NotFoundError
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CHANGES_SUBJECT = "sync.changes"
REINDEX_SUBJECT = "sync.reindex"


class NatsClientConfig(BaseModel):
    """Configuration for NATS client."""

    servers: str = Field(default="nats://localhost:4222", description="NATS server URL")
    client_name: str = Field(default="search-sync", description="NATS client name")
    fetch_batch: int = Field(default=10, description="Messages fetched per pull")
    fetch_timeout: float = Field(default=5.0, description="Pull timeout in seconds")


class NatsClient:
    """Async NATS JetStream client wrapper.

    Provides publish/subscribe functionality using NATS JetStream
    for durable message delivery.
    """

    # Subject prefix to stream mapping
    STREAM_MAPPINGS: dict[str, str] = {
        "sync.": "SYNC",
    }

    def __init__(self, config: NatsClientConfig | None = None) -> None:
        self.config = config or NatsClientConfig()
        self._nc: nats.NATS | None = None
        self._js: JetStreamContext | None = None

    async def connect(self) -> None:
        """Connect to NATS server and initialize JetStream context."""
        if self._nc is not None:
            return

        logger.info(f"Connecting to NATS at {self.config.servers}")
        self._nc = await nats.connect(
            servers=self.config.servers,
            name=self.config.client_name,
        )
        self._js = self._nc.jetstream()
        logger.info("Connected to NATS JetStream")

    async def ensure_streams(self) -> None:
        """Create the JetStream streams this service publishes to, if missing."""
        await self.connect()
        for prefix, stream in self.STREAM_MAPPINGS.items():
            try:
                await self._js.stream_info(stream)
            except NotFoundError:
                logger.info(f"Creating stream {stream} for {prefix}>")
                await self._js.add_stream(name=stream, subjects=[f"{prefix}>"])

    async def publish(self, subject: str, key: str, message: dict[str, Any]) -> None:
        """Publish a message to a JetStream subject.

        Args:
            subject: NATS subject.
            key: Message key for deduplication.
            message: Message payload.
        """
        await self.connect()

        payload = json.dumps(message).encode("utf-8")
        await self._js.publish(subject, payload, headers={"Nats-Msg-Id": key})
        logger.debug(f"Published message to {subject} with key {key}")

    async def subscribe(
        self,
        subject: str,
        group_id: str,
        handler: Callable[[str, dict[str, Any]], Awaitable[None]],
    ) -> None:
        """Pull messages from a subject and dispatch them to ``handler``.

        Messages are acked after the handler returns and nak'ed (redelivered)
        when it raises. Runs until cancelled.

        Args:
            subject: NATS subject.
            group_id: Durable consumer name.
            handler: Async callback for processing messages.
        """
        await self.connect()

        stream = self._subject_to_stream(subject)
        durable = f"{group_id}-{subject.replace('.', '-')}"
        logger.info(f"Subscribing to {subject} on stream {stream} as {durable}")

        psub = await self._js.pull_subscribe(
            subject=subject,
            durable=durable,
            stream=stream,
            config=ConsumerConfig(
                durable_name=durable,
                ack_policy=AckPolicy.EXPLICIT,
                deliver_policy=DeliverPolicy.ALL,
            ),
        )

        logger.info(f"Started consuming from {subject}")

        while True:
            try:
                msgs = await psub.fetch(
                    batch=self.config.fetch_batch, timeout=self.config.fetch_timeout
                )

                for msg in msgs:
                    try:
                        data = json.loads(msg.data.decode("utf-8"))
                        await handler(msg.subject, data)
                        await msg.ack()
                    except Exception as e:
                        logger.error(f"Error processing message: {e}", exc_info=True)
                        await msg.nak()

            except nats.errors.TimeoutError:
                continue
            except Exception as e:
                logger.error(f"Error fetching messages: {e}", exc_info=True)
                continue

    async def close(self) -> None:
        """Close the NATS connection."""
        if self._nc is not None:
            await self._nc.drain()
            self._nc = None
            self._js = None
            logger.info("NATS connection closed")

    def _subject_to_stream(self, subject: str) -> str:
        """Determine which stream a subject belongs to."""
        for prefix, stream in self.STREAM_MAPPINGS.items():
            if subject.startswith(prefix):
                return stream
        raise ValueError(f"Unknown stream for subject: {subject}")

    async def __aenter__(self) -> "NatsClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
