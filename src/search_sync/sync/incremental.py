"""Per-event incremental synchronization of the search index."""

import logging
from enum import StrEnum

from pydantic import BaseModel, Field

from search_sync.config import Settings
from search_sync.models import ChangeEvent, ChangeType, DocumentSnapshot
from search_sync.sync.classifier import InvalidChangeError, get_change_type
from search_sync.sync.diff import fields_updated, removed_fields
from search_sync.sync.ports import DocumentDatabase, Extractor, IndexStore
from search_sync.utils.metrics import record_sync_action

logger = logging.getLogger(__name__)


class SyncAction(StrEnum):
    """What the controller did with one change event."""

    PARTIAL_UPDATE = "partial_update"
    SAVE = "save"
    DELETE = "delete"
    SKIPPED = "skipped"
    FAILED = "failed"


class SyncConfig(BaseModel):
    """Options for the incremental sync controller."""

    tracked_fields: list[str] = Field(default_factory=list, description="Empty = all fields")
    force_data_sync: bool = Field(default=False, description="Re-read and fully replace")

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncConfig":
        return cls(tracked_fields=settings.fields, force_data_sync=settings.force_data_sync)


class IncrementalSyncController:
    """Applies one database change event to the search index.

    Creates are partial merges with create-if-absent. Updates are skipped when
    no tracked field changed, partial-merged when no field was removed, and
    fully saved (with the removed keys dropped) otherwise. Deletes remove the
    record. In force-data-sync mode creates and updates re-read the document
    and always fully save it.

    Index-store and extraction failures are logged and reported as
    ``SyncAction.FAILED``; only an invalid change shape raises.
    """

    def __init__(
        self,
        index: IndexStore,
        database: DocumentDatabase,
        extractor: Extractor,
        config: SyncConfig | None = None,
    ) -> None:
        self.index = index
        self.database = database
        self.extract = extractor
        self.config = config or SyncConfig()

    async def handle(self, event: ChangeEvent) -> SyncAction:
        """Handle a change event.

        Raises:
            InvalidChangeError: If neither side of the event exists.
        """
        change_type = get_change_type(event)
        logger.info(f"Handling {change_type} for document {event.document_id}")

        match change_type:
            case ChangeType.CREATE:
                action = await self._handle_create(event.after, event.timestamp_ms)
            case ChangeType.UPDATE:
                action = await self._handle_update(event.before, event.after, event.timestamp_ms)
            case ChangeType.DELETE:
                action = await self._handle_delete(event.before)
            case _:
                raise InvalidChangeError(change_type)

        record_sync_action(action)
        return action

    async def _handle_create(self, snapshot: DocumentSnapshot, timestamp: int) -> SyncAction:
        try:
            if self.config.force_data_sync:
                return await self._force_sync(snapshot)

            record = await self.extract(snapshot, timestamp)
            logger.debug(f"Creating index record {snapshot.id}: {record}")
            await self.index.partial_update(record, create_if_absent=True)
            logger.info(f"Created index record {snapshot.id} (partial_update)")
            return SyncAction.PARTIAL_UPDATE
        except Exception as e:
            logger.error(f"Error creating index record {snapshot.id}: {e}", exc_info=True)
            return SyncAction.FAILED

    async def _handle_update(
        self, before: DocumentSnapshot, after: DocumentSnapshot, timestamp: int
    ) -> SyncAction:
        try:
            if self.config.force_data_sync:
                return await self._force_sync(after)

            before_data = before.to_dict()
            after_data = after.to_dict()

            if not fields_updated(self.config.tracked_fields, before_data, after_data):
                logger.debug(f"No tracked field changed for {after.id}, skipping")
                return SyncAction.SKIPPED

            removed = removed_fields(before_data, after_data)
            logger.debug(f"Removed fields for {after.id}: {sorted(removed)}")

            if not removed:
                record = await self.extract(after, timestamp)
                logger.debug(f"Updating index record {after.id}: {record}")
                await self.index.partial_update(record, create_if_absent=True)
                logger.info(f"Updated index record {after.id} (partial_update)")
                return SyncAction.PARTIAL_UPDATE

            record = await self.extract(after, 0)
            for key in removed:
                record.pop(key, None)
            logger.debug(f"Replacing index record {after.id}: {record}")
            await self.index.save(record)
            logger.info(f"Replaced index record {after.id} (save)")
            return SyncAction.SAVE
        except Exception as e:
            logger.error(f"Error updating index record {after.id}: {e}", exc_info=True)
            return SyncAction.FAILED

    async def _handle_delete(self, snapshot: DocumentSnapshot) -> SyncAction:
        try:
            logger.info(f"Deleting index record {snapshot.id}")
            await self.index.delete(snapshot.id)
            return SyncAction.DELETE
        except Exception as e:
            logger.error(f"Error deleting index record {snapshot.id}: {e}", exc_info=True)
            return SyncAction.FAILED

    async def _force_sync(self, snapshot: DocumentSnapshot) -> SyncAction:
        current = await self.database.get_document(snapshot.path)
        if not current.exists:
            # The document was deleted after this event; its delete event cleans up.
            logger.info(f"Document {snapshot.id} no longer exists, skipping force sync")
            return SyncAction.SKIPPED

        record = await self.extract(current, 0)
        logger.debug(f"Force syncing index record {current.id}: {record}")
        await self.index.save(record)
        logger.info(f"Force synced index record {current.id} (save)")
        return SyncAction.SAVE


def create_sync_controller(
    settings: Settings,
    index: IndexStore,
    database: DocumentDatabase,
    extractor: Extractor,
) -> IncrementalSyncController:
    """Create an IncrementalSyncController configured from settings."""
    return IncrementalSyncController(
        index=index,
        database=database,
        extractor=extractor,
        config=SyncConfig.from_settings(settings),
    )
