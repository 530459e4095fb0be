"""Prometheus metrics instrumentation for the sync service.

Tracks:
- Incremental sync actions (partial update, save, delete, skipped, failed)
- Full reindex pages, documents and terminal states
- NATS message processing
- Qdrant request counts and latency
"""

import functools
import time
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, Info, generate_latest

SERVICE_INFO = Info("search_sync_service", "Search sync service information")

# ==================== Sync Metrics ====================

SYNC_ACTIONS = Counter(
    "sync_actions_total",
    "Change events handled, by resulting action",
    ["action"],
)

# ==================== Reindex Metrics ====================

REINDEX_PAGES = Counter(
    "reindex_pages_total",
    "Full reindex pages processed",
)

REINDEX_DOCUMENTS = Counter(
    "reindex_documents_total",
    "Documents processed by full reindex",
    ["status"],
)

REINDEX_RUNS = Counter(
    "reindex_runs_total",
    "Full reindex runs finished, by terminal state",
    ["state"],
)

# ==================== Messaging Metrics ====================

NATS_MESSAGES_PROCESSED = Counter(
    "nats_messages_processed_total",
    "Total NATS messages processed",
    ["subject", "status"],
)

# ==================== Qdrant Metrics ====================

QDRANT_REQUESTS = Counter(
    "qdrant_requests_total",
    "Total Qdrant requests",
    ["operation", "status"],
)

QDRANT_LATENCY = Histogram(
    "qdrant_latency_seconds",
    "Qdrant operation latency in seconds",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)


P = ParamSpec("P")
T = TypeVar("T")


def track_qdrant(operation: str) -> Callable[..., Any]:
    """Decorator to track Qdrant request count and latency.

    Example:
        @track_qdrant("upsert")
        async def save(self, record: dict) -> None:
            ...
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            start_time = time.perf_counter()
            success = False
            try:
                result = await func(*args, **kwargs)
                success = True
                return result
            finally:
                record_qdrant_request(operation, success, time.perf_counter() - start_time)

        return wrapper

    return decorator


def record_sync_action(action: str) -> None:
    SYNC_ACTIONS.labels(action=str(action)).inc()


def record_reindex_page(succeeded: int, failed: int) -> None:
    """Record one processed reindex page.

    Args:
        succeeded: Records written from the page.
        failed: Documents of the page that were not indexed.
    """
    REINDEX_PAGES.inc()
    if succeeded:
        REINDEX_DOCUMENTS.labels(status="success").inc(succeeded)
    if failed:
        REINDEX_DOCUMENTS.labels(status="error").inc(failed)


def record_reindex_run(state: str) -> None:
    REINDEX_RUNS.labels(state=str(state)).inc()


def record_nats_message(subject: str, success: bool) -> None:
    """Record a NATS message processing event.

    Args:
        subject: NATS subject.
        success: Whether processing succeeded.
    """
    status = "success" if success else "error"
    NATS_MESSAGES_PROCESSED.labels(subject=subject, status=status).inc()


def record_qdrant_request(operation: str, success: bool, latency: float) -> None:
    """Record a Qdrant request.

    Args:
        operation: Operation name (upsert, set_payload, delete, etc.).
        success: Whether the request succeeded.
        latency: Request latency in seconds.
    """
    status = "success" if success else "error"
    QDRANT_REQUESTS.labels(operation=operation, status=status).inc()
    QDRANT_LATENCY.labels(operation=operation).observe(latency)


# ==================== Metrics Endpoint ====================


def get_metrics() -> bytes:
    """Get Prometheus metrics in text exposition format."""
    return generate_latest()


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST
