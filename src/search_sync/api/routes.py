"""API route handlers for health, metrics and full reindex control."""

import logging

from fastapi import APIRouter, HTTPException, Request, Response, status

from search_sync import __version__
from search_sync.api.schemas import HealthResponse, ProcessingStateResponse, ReindexResponse
from search_sync.models import ReindexState
from search_sync.utils.metrics import get_content_type, get_metrics

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Check service health and Qdrant connectivity."""
    qdrant = getattr(request.app.state, "qdrant", None)
    qdrant_connected = False

    if qdrant is not None:
        try:
            qdrant_connected = await qdrant.health_check()
        except Exception as e:
            logger.error(f"Health check error: {e}")
            qdrant_connected = False

    return HealthResponse(
        status="healthy" if qdrant_connected else "degraded",
        version=__version__,
        qdrant_connected=qdrant_connected,
    )


@router.get("/ready")
async def readiness_check(request: Request) -> dict[str, str]:
    """Kubernetes readiness probe."""
    qdrant = getattr(request.app.state, "qdrant", None)

    if qdrant is None:
        return {"status": "not_ready", "reason": "qdrant client not initialized"}

    try:
        if await qdrant.health_check():
            return {"status": "ready"}
        return {"status": "not_ready", "reason": "qdrant health check failed"}
    except Exception as e:
        return {"status": "not_ready", "reason": str(e)}


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=get_metrics(), media_type=get_content_type())


@router.post(
    "/reindex",
    response_model=ReindexResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_reindex(request: Request) -> ReindexResponse:
    """Enqueue the first task of a fresh full reindex run.

    Raises:
        HTTPException: 503 if the task queue is unavailable.
    """
    task_queue = getattr(request.app.state, "task_queue", None)
    if task_queue is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reindex task queue not available",
        )

    state = ReindexState()
    try:
        await task_queue.enqueue(state)
    except Exception as e:
        logger.error(f"Failed to enqueue full reindex: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to enqueue full reindex: {e}",
        ) from e

    logger.info(f"Enqueued full reindex starting at {state.start_time}")
    return ReindexResponse(status="enqueued", start_time=state.start_time)


@router.get("/reindex/status", response_model=ProcessingStateResponse)
async def reindex_status(request: Request) -> ProcessingStateResponse:
    """Return the last reported processing state.

    Raises:
        HTTPException: 404 if no run has finished since startup.
    """
    reporter = getattr(request.app.state, "status_reporter", None)
    update = getattr(reporter, "last_update", None)
    if update is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No full reindex has finished yet",
        )

    return ProcessingStateResponse(
        state=str(update.state),
        message=update.message,
        index_name=update.indexName,
        timestamp=update.timestamp,
    )
