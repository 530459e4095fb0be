"""Message consumers that drive the sync controllers.

Components:
    - ChangeEventConsumer: applies sync.changes events to the index
    - ReindexTaskQueue: enqueues full reindex continuations on sync.reindex
    - ReindexTaskConsumer: runs one full reindex invocation per task
"""

from search_sync.indexing.consumer import ChangeConsumerConfig, ChangeEventConsumer
from search_sync.indexing.tasks import (
    ReindexConsumerConfig,
    ReindexTaskConsumer,
    ReindexTaskQueue,
)

__all__ = [
    "ChangeConsumerConfig",
    "ChangeEventConsumer",
    "ReindexConsumerConfig",
    "ReindexTaskConsumer",
    "ReindexTaskQueue",
]
