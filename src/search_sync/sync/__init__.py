"""Synchronization decision engine.

- classifier: create / update / delete classification of change events
- diff: tracked-field change detection and removed-field detection
- extract: default document-to-record extraction
- incremental: per-event sync controller
- reindex: resumable full reindex state machine and controller
"""

from search_sync.sync.classifier import InvalidChangeError, classify, get_change_type
from search_sync.sync.diff import fields_updated, removed_fields
from search_sync.sync.extract import ExtractionError, RecordExtractor
from search_sync.sync.incremental import (
    IncrementalSyncController,
    SyncAction,
    SyncConfig,
    create_sync_controller,
)
from search_sync.sync.reindex import (
    BatchReindexController,
    Finished,
    PageResult,
    ReindexConfig,
    Running,
    create_reindex_controller,
    step,
)

__all__ = [
    "BatchReindexController",
    "ExtractionError",
    "Finished",
    "IncrementalSyncController",
    "InvalidChangeError",
    "PageResult",
    "RecordExtractor",
    "ReindexConfig",
    "Running",
    "SyncAction",
    "SyncConfig",
    "classify",
    "create_reindex_controller",
    "create_sync_controller",
    "fields_updated",
    "get_change_type",
    "removed_fields",
    "step",
]
