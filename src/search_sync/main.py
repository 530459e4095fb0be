"""Search Sync Service - FastAPI application entry point."""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from search_sync import __version__
from search_sync.api import router
from search_sync.clients import (
    FirestoreDatabase,
    NatsClient,
    NatsClientConfig,
    NatsPubSubPublisher,
    QdrantClientWrapper,
    QdrantIndexClient,
    TransformClient,
)
from search_sync.config import Settings, get_settings
from search_sync.indexing import (
    ChangeConsumerConfig,
    ChangeEventConsumer,
    ReindexConsumerConfig,
    ReindexTaskConsumer,
    ReindexTaskQueue,
)
from search_sync.sync import RecordExtractor, create_reindex_controller, create_sync_controller
from search_sync.utils.logging import configure_logging, get_logger
from search_sync.utils.metrics import SERVICE_INFO

settings = get_settings()
configure_logging(
    level="DEBUG" if settings.debug else "INFO",
    json_format=not settings.debug,
)
logger = get_logger(__name__)

SERVICE_INFO.info({"version": __version__, "service": "search-sync"})


def build_extractor(settings: Settings) -> tuple[RecordExtractor, TransformClient | None]:
    """Create the record extractor, with the transform client when one is configured."""
    transformer = None
    if settings.transform_url:
        transformer = TransformClient(settings.transform_url, timeout=settings.transform_timeout)
    return RecordExtractor(settings.fields, transformer=transformer), transformer


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build collaborators, start consumers, and tear everything down on shutdown."""
    settings = get_settings()

    logger.info("Starting Search Sync Service...")
    logger.info(f"Collection path: {settings.collection_path}")
    logger.info(f"Index: {settings.index_name}")
    logger.info(f"Tracked fields: {settings.fields or 'all'}")
    logger.info(f"Force data sync: {settings.force_data_sync}")

    qdrant_client = QdrantClientWrapper(settings)
    try:
        await qdrant_client.connect()
        app.state.qdrant = qdrant_client
        logger.info("Qdrant client initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize Qdrant client: {e}")
        logger.warning("Service starting in degraded mode without Qdrant")
        app.state.qdrant = None

    database = FirestoreDatabase(settings)
    extractor, transformer = build_extractor(settings)
    app.state.transformer = transformer

    status_reporter = NatsPubSubPublisher(settings.nats_url, index_name=settings.index_name)
    app.state.status_reporter = status_reporter

    app.state.nats_client = None
    app.state.task_queue = None
    app.state.consumer_tasks = []

    if app.state.qdrant is not None and settings.nats_consumer_enabled:
        try:
            nats_client = NatsClient(
                config=NatsClientConfig(servers=settings.nats_url),
            )
            await nats_client.ensure_streams()
            app.state.nats_client = nats_client

            task_queue = ReindexTaskQueue(nats_client)
            app.state.task_queue = task_queue

            index_client = QdrantIndexClient(app.state.qdrant)
            sync_controller = create_sync_controller(
                settings,
                index=index_client.init_index(settings.index_name),
                database=database,
                extractor=extractor,
            )
            reindex_controller = create_reindex_controller(
                settings,
                client=index_client,
                database=database,
                extractor=extractor,
                task_queue=task_queue,
                reporter=status_reporter,
            )

            change_consumer = ChangeEventConsumer(
                nats_client,
                sync_controller,
                ChangeConsumerConfig(group_id=settings.nats_consumer_group),
            )
            reindex_consumer = ReindexTaskConsumer(
                nats_client,
                reindex_controller,
                ReindexConsumerConfig(group_id=settings.nats_consumer_group),
            )
            app.state.consumer_tasks = [
                asyncio.create_task(change_consumer.start()),
                asyncio.create_task(reindex_consumer.start()),
            ]
            logger.info(f"Consumers started (group: {settings.nats_consumer_group})")
        except Exception as e:
            logger.error(f"Failed to start consumers: {e}")
            logger.warning("Service running without change sync")
    else:
        logger.info("Consumers disabled")

    logger.info("Search Sync Service startup complete")

    yield

    logger.info("Shutting down Search Sync Service...")

    for task in app.state.consumer_tasks:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    if app.state.nats_client is not None:
        try:
            await app.state.nats_client.close()
        except Exception as e:
            logger.error(f"Error closing NATS client: {e}")

    try:
        await status_reporter.disconnect()
    except Exception as e:
        logger.error(f"Error closing NATS pub/sub publisher: {e}")

    if transformer is not None:
        await transformer.close()

    database.close()

    if app.state.qdrant is not None:
        try:
            await app.state.qdrant.close()
        except Exception as e:
            logger.error(f"Error closing Qdrant client: {e}")

    logger.info("Search Sync Service shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = get_settings()

    app = FastAPI(
        title="Search Sync Service",
        description="Keeps a Qdrant search collection in sync with a Firestore collection",
        version=__version__,
        lifespan=lifespan,
        debug=app_settings.debug,
    )
    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    """Run the application with uvicorn.

    Entry point for the 'search-sync' console script.
    """
    settings = get_settings()

    logger.info(f"Starting server on {settings.host}:{settings.port}")

    uvicorn.run(
        "search_sync.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info",
    )


if __name__ == "__main__":
    run()
