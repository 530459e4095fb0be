"""Resumable full reindex of the source collection.

A full reindex runs as a chain of bounded task invocations. Each invocation
reads one page of documents, writes the extracted records and then either
re-enqueues itself with an advanced ``ReindexState`` or finishes the run.

The decision part is the pure :func:`step` transition; the
:class:`BatchReindexController` performs the I/O around it and applies the
effects it returns.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from search_sync.config import Settings
from search_sync.models import (
    DocumentSnapshot,
    IndexRecord,
    ProcessingState,
    ReindexState,
    now_ms,
)
from search_sync.sync.ports import (
    DocumentDatabase,
    Extractor,
    IndexStoreClient,
    StatusReporter,
    TaskQueue,
)
from search_sync.utils.metrics import record_reindex_page, record_reindex_run

logger = logging.getLogger(__name__)

DOCS_PER_INDEXING = 250

DISABLED_MESSAGE = (
    'Existing documents were not indexed because "Indexing existing documents?" is '
    "configured to false. If you want to run a full reindex, reconfigure this instance."
)


@dataclass(frozen=True, slots=True)
class PageResult:
    """Outcome of processing one page."""

    fetched: int
    succeeded: int
    failed: int


@dataclass(frozen=True, slots=True)
class EnqueueNext:
    state: ReindexState


@dataclass(frozen=True, slots=True)
class PromoteTempIndex:
    temp_index_name: str


@dataclass(frozen=True, slots=True)
class DropTempIndex:
    temp_index_name: str


@dataclass(frozen=True, slots=True)
class ReportState:
    state: ProcessingState
    message: str


Effect = EnqueueNext | PromoteTempIndex | DropTempIndex | ReportState


@dataclass(frozen=True, slots=True)
class Running:
    """More pages remain; the run continues with ``state``."""

    state: ReindexState


@dataclass(frozen=True, slots=True)
class Finished:
    """The run reached a terminal state."""

    state: ProcessingState
    success_count: int
    error_count: int
    elapsed_ms: int
    message: str


ReindexPhase = Running | Finished


@dataclass(frozen=True, slots=True)
class Transition:
    next: ReindexPhase
    effects: tuple[Effect, ...]


def completion_message(state: ProcessingState, success: int, errors: int, elapsed_ms: int) -> str:
    if state is ProcessingState.COMPLETE:
        return f"Successfully indexed {success} documents in {elapsed_ms}ms."
    return (
        f"Successfully indexed {success} documents, {errors} errors in {elapsed_ms}ms. "
        "See function logs for specific error messages."
    )


def step(
    state: ReindexState,
    page: PageResult,
    *,
    page_size: int = DOCS_PER_INDEXING,
    replace_all: bool = False,
    now: int | None = None,
) -> Transition:
    """Advance a reindex run by one processed page.

    A full page means more documents may remain, so the run continues at the
    next offset. A short page ends the run:

    - no errors: COMPLETE, temp index promoted;
    - errors and successes: WARNING, temp index still promoted;
    - errors only: FAILED, temp index dropped without promotion.
    """
    success_count = state.success_count + page.succeeded
    error_count = state.error_count + page.failed

    if page.fetched >= page_size:
        next_state = state.model_copy(
            update={
                "offset": state.offset + page_size,
                "success_count": success_count,
                "error_count": error_count,
            }
        )
        return Transition(next=Running(next_state), effects=(EnqueueNext(next_state),))

    elapsed_ms = max(0, (now if now is not None else now_ms()) - state.start_time)
    temp_index = state.temp_index_name if replace_all else None
    effects: list[Effect] = []

    if error_count == 0:
        status = ProcessingState.COMPLETE
    elif success_count > 0:
        status = ProcessingState.WARNING
    else:
        status = ProcessingState.FAILED

    if temp_index:
        if status is not ProcessingState.FAILED:
            effects.append(PromoteTempIndex(temp_index))
        effects.append(DropTempIndex(temp_index))

    message = completion_message(status, success_count, error_count, elapsed_ms)
    effects.append(ReportState(status, message))

    return Transition(
        next=Finished(
            state=status,
            success_count=success_count,
            error_count=error_count,
            elapsed_ms=elapsed_ms,
            message=message,
        ),
        effects=tuple(effects),
    )


class ReindexConfig(BaseModel):
    """Options for the batch reindex controller."""

    index_name: str = Field(default="documents", description="Production index")
    collection_path: str = Field(default="documents", description="Source collection")
    enabled: bool = Field(default=False, description="Full indexing enabled")
    replace_all: bool = Field(default=False, description="Build in a temp index and swap")
    page_size: int = Field(default=DOCS_PER_INDEXING, gt=0, description="Documents per task")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReindexConfig":
        return cls(
            index_name=settings.index_name,
            collection_path=settings.collection_path,
            enabled=settings.do_full_indexing,
            replace_all=settings.full_indexing_replace_all,
            page_size=settings.reindex_page_size,
        )


class BatchReindexController:
    """Runs one invocation of a full reindex.

    All continuation state travels in the task payload; the controller keeps
    nothing between invocations.
    """

    def __init__(
        self,
        client: IndexStoreClient,
        database: DocumentDatabase,
        extractor: Extractor,
        task_queue: TaskQueue,
        reporter: StatusReporter,
        config: ReindexConfig | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.client = client
        self.database = database
        self.extract = extractor
        self.task_queue = task_queue
        self.reporter = reporter
        self.config = config or ReindexConfig()
        self.clock = clock

    async def run(self, payload: dict[str, Any] | ReindexState | None = None) -> ReindexPhase:
        """Process one page of the collection and continue or finish the run."""
        if not self.config.enabled:
            logger.info("Full indexing disabled, nothing to do")
            await self.reporter.set_processing_state(ProcessingState.COMPLETE, DISABLED_MESSAGE)
            return Finished(
                state=ProcessingState.COMPLETE,
                success_count=0,
                error_count=0,
                elapsed_ms=0,
                message=DISABLED_MESSAGE,
            )

        state = payload if isinstance(payload, ReindexState) else ReindexState.from_payload(payload)

        if self.config.replace_all and not state.temp_index_name:
            state = await self._bootstrap_temp_index(state)

        documents = await self.database.fetch_page(
            self.config.collection_path, state.offset, self.config.page_size
        )
        logger.info(f"Fetched {len(documents)} documents at offset {state.offset}")

        records, extract_failures = await self._extract_page(documents, state.start_time)
        written, write_failures = await self._write(records, state)

        page = PageResult(
            fetched=len(documents),
            succeeded=written,
            failed=extract_failures + write_failures,
        )
        record_reindex_page(page.succeeded, page.failed)

        transition = step(
            state,
            page,
            page_size=self.config.page_size,
            replace_all=self.config.replace_all,
            now=self.clock(),
        )
        for effect in transition.effects:
            await self._apply(effect)

        if isinstance(transition.next, Finished):
            record_reindex_run(transition.next.state)
        return transition.next

    async def _bootstrap_temp_index(self, state: ReindexState) -> ReindexState:
        # Derived from the run start so a redelivered first task reuses the same index.
        temp_index_name = f"{self.config.index_name}_tmp_{state.start_time}"
        logger.info(f"Creating temporary index {temp_index_name} from {self.config.index_name}")
        await self.client.copy_settings(self.config.index_name, temp_index_name)
        return state.model_copy(update={"temp_index_name": temp_index_name})

    async def _extract_page(
        self, documents: Sequence[DocumentSnapshot], timestamp: int
    ) -> tuple[list[IndexRecord], int]:
        results = await asyncio.gather(
            *(self.extract(doc, timestamp) for doc in documents),
            return_exceptions=True,
        )

        records: list[IndexRecord] = []
        failures = 0
        for doc, result in zip(documents, results, strict=True):
            if isinstance(result, Exception):
                failures += 1
                logger.error(f"Failed to extract document {doc.id}: {result}")
            elif isinstance(result, BaseException):
                raise result
            else:
                records.append(result)
        return records, failures

    async def _write(self, records: list[IndexRecord], state: ReindexState) -> tuple[int, int]:
        if not records:
            return 0, 0

        target = (
            state.temp_index_name
            if self.config.replace_all and state.temp_index_name
            else self.config.index_name
        )
        try:
            written = await self.client.init_index(target).save_many(
                records, auto_generate_id=True
            )
        except Exception as e:
            logger.error(
                f"Failed to write {len(records)} records to {target}: {e}", exc_info=True
            )
            return 0, len(records)
        return written, len(records) - written

    async def _apply(self, effect: Effect) -> None:
        match effect:
            case EnqueueNext(state=next_state):
                logger.info(f"Enqueuing next reindex task at offset {next_state.offset}")
                await self.task_queue.enqueue(next_state)
            case PromoteTempIndex(temp_index_name=temp):
                logger.info(f"Copying {temp} over {self.config.index_name}")
                await self.client.copy_index(temp, self.config.index_name)
            case DropTempIndex(temp_index_name=temp):
                logger.info(f"Deleting temporary index {temp}")
                await self.client.init_index(temp).delete_index()
            case ReportState(state=status, message=message):
                logger.info(f"Full indexing finished: {status} - {message}")
                await self.reporter.set_processing_state(status, message)


def create_reindex_controller(
    settings: Settings,
    client: IndexStoreClient,
    database: DocumentDatabase,
    extractor: Extractor,
    task_queue: TaskQueue,
    reporter: StatusReporter,
) -> BatchReindexController:
    """Create a BatchReindexController configured from settings."""
    return BatchReindexController(
        client=client,
        database=database,
        extractor=extractor,
        task_queue=task_queue,
        reporter=reporter,
        config=ReindexConfig.from_settings(settings),
    )
