"""
Pipeline Controller Module.

This module provides the PipelineController class that orchestrates a
session: ingesting PDFs, expanding them into page tasks, running the
tasks through the bounded scheduler and turning the returned notes into
deduplicated, derived rows that are persisted after every change.

Pipeline Flow:
    1. Ingestion filter queues PDFs (non-PDFs produce a notice)
    2. Page counts are read and the ordered task list is built
    3. Each task: rasterize -> extraction service -> dedupe -> derive
    4. Result store is persisted after each page's notes are added
    5. Progress advances once per task, whatever its outcome

Usage:
    >>> from cmr_notes.pipeline import PipelineController
    >>> controller = PipelineController()
    >>> controller.load()
    >>> controller.add_files(["scan.pdf"])
    >>> summary = asyncio.run(controller.process_queue())

Author: ML Engineering Team
"""

import asyncio
from typing import Callable, Iterable, List, Optional, Sequence, Union
from pathlib import Path

from cmr_notes.utils.logger import get_logger, page_logger
from cmr_notes.utils.exceptions import CorruptedFileError, PersistenceError
from cmr_notes.extraction.client import ExtractionClient
from cmr_notes.extraction.schemas import PageMeta, RawNote
from cmr_notes.input_handler.handler import InputHandler, IngestionResult, ONLY_PDF_NOTICE
from cmr_notes.input_handler.pdf_processor import PDFProcessor
from cmr_notes.output_handler.state_store import StateStore
from cmr_notes.postprocessor.derived_row import DerivedRow
from cmr_notes.postprocessor.processor import FieldDerivationEngine
from .dedupe import make_key
from .scheduler import ConcurrencyScheduler, RunSummary
from .session import PipelineSession
from .tasks import PageTask, flatten_tasks

# Initialize module logger
logger = get_logger(__name__)

CLEARED_NOTICE = "Cleared all rows and storage"
UNREADABLE_PDF_NOTICE = "Could not read PDF"


class PipelineController:
    """
    Orchestrates ingestion, page processing and persistence.

    Collaborators are injectable so tests can swap the rasterizer and
    the extraction client for fakes.

    Attributes:
        session: Mutable session state
        rasterizer: Renders PDF pages to PNG bytes
        client: Extraction service client
        state_store: Persistence for the result store, or None
        engine: Field derivation engine
        scheduler: Bounded-concurrency task runner
        notices: Every operator notice raised so far, in order
    """

    def __init__(
        self,
        session: Optional[PipelineSession] = None,
        rasterizer: Optional[PDFProcessor] = None,
        client: Optional[ExtractionClient] = None,
        state_store: Optional[StateStore] = None,
        engine: Optional[FieldDerivationEngine] = None,
        concurrency: Optional[int] = None,
        endpoint: Optional[str] = None,
        notify: Optional[Callable[[str], None]] = None
    ) -> None:
        """
        Initialize the controller.

        Args:
            session: Existing session. If None, a fresh one is created.
            rasterizer: PDF page renderer. If None, uses PDFProcessor.
            client: Extraction client. If None, one is built from config.
            state_store: Persistence slot. If None, nothing is persisted.
            engine: Derivation engine. If None, a default one is used.
            concurrency: Scheduler slot count. If None, uses config.
            endpoint: Extraction service URL for the default client.
            notify: Callback receiving operator notices.
        """
        self.notices: List[str] = []
        self._on_notice = notify

        self.session = session or PipelineSession()
        self.input_handler = InputHandler()
        self.rasterizer = rasterizer or PDFProcessor()
        self.client = client or ExtractionClient(endpoint=endpoint, notify=self._notify)
        self.state_store = state_store
        self.engine = engine or FieldDerivationEngine()
        self.scheduler = ConcurrencyScheduler(concurrency, notify=self._notify)

        logger.debug(
            f"PipelineController initialized "
            f"(concurrency={self.scheduler.concurrency}, "
            f"persistence={'on' if state_store else 'off'})"
        )

    @property
    def results(self):
        return self.session.results

    @property
    def progress(self):
        return self.session.progress

    def _notify(self, message: str) -> None:
        self.notices.append(message)
        logger.warning(message)
        if self._on_notice is not None:
            self._on_notice(message)

    def load(self) -> int:
        """
        Restore persisted rows and rehydrate the dedupe store.

        Returns:
            Number of rows restored.
        """
        if self.state_store is None:
            return 0
        rows = self.state_store.load_rows()
        self.session.results.load(rows)
        return len(rows)

    def add_files(self, filepaths: Iterable[Union[str, Path]]) -> IngestionResult:
        """
        Offer files to the queue.

        Args:
            filepaths: Files chosen by the operator.

        Returns:
            IngestionResult; accepted files are appended to the queue.
        """
        result = self.input_handler.accept(filepaths)
        for filepath, _ in result.rejected:
            self._notify(f"{ONLY_PDF_NOTICE} ({Path(filepath).name})")
        self.session.files.extend(result.accepted)
        return result

    async def _page_counts(self) -> List[int]:
        counts = []
        for queued in self.session.files:
            try:
                count = await asyncio.to_thread(self.rasterizer.get_page_count, queued.path)
            except CorruptedFileError as e:
                logger.error(f"Skipping {queued.name}: {e}")
                self._notify(f"{UNREADABLE_PDF_NOTICE} ({queued.name})")
                count = 0
            counts.append(count)
        return counts

    async def process_queue(self) -> Optional[RunSummary]:
        """
        Process every page of every queued file.

        Does nothing when the queue is empty or a run is already active.
        A page that fails is counted as processed and the run continues.

        Returns:
            RunSummary of the run, or None if nothing was started.
        """
        session = self.session
        if session.in_progress or self.scheduler.is_running:
            logger.info("A run is already in progress")
            return None
        if not session.files:
            logger.info("No files queued")
            return None

        session.in_progress = True
        try:
            page_counts = await self._page_counts()
            tasks = flatten_tasks(session.files, page_counts)

            session.progress.start_run(page_counts)
            summary = await self.scheduler.run(
                tasks,
                self.handle_page,
                on_start=session.progress.begin_task,
                on_complete=lambda task, error: session.progress.complete_task()
            )
            session.progress.finish()
        finally:
            session.in_progress = False

        return summary

    async def handle_page(self, task: PageTask) -> None:
        """
        Rasterize one page, extract its notes and store them.

        Raises:
            PageRenderError: If the page cannot be rendered.
            ExtractionServiceError: If the service call fails.
        """
        log = page_logger(logger, task)
        image = await self.rasterizer.render_page(task.source, task.page_index)
        log.debug(f"Rendered {len(image)} bytes")
        meta = task.meta
        notes = await self.client.extract(image, meta)
        log.debug(f"{len(notes)} note(s) returned")
        self.add_notes(notes, meta)

    def add_notes(self, notes: Sequence[RawNote], meta: PageMeta) -> List[DerivedRow]:
        """
        Admit a page's notes, derive the new ones and persist.

        Args:
            notes: Notes returned for the page, in response order.
            meta: Page metadata.

        Returns:
            Rows created; duplicates are dropped silently.
        """
        added = []
        for note_index, note in enumerate(notes):
            key = make_key(meta.file_name, meta.page_index, note)
            if not self.session.dedupe.admit(key):
                continue
            row = self.engine.build_row(note, meta, note_index)
            self.session.results.append(row)
            added.append(row)

        logger.info(
            f"{meta.file_name} p{meta.page_index}: "
            f"{len(added)} new row(s) of {len(notes)} note(s)"
        )
        self._persist()
        return added

    def clear_all(self) -> None:
        """Empty rows, dedupe keys, the file queue and persisted state."""
        self.session.results.clear()
        self.session.files.clear()
        self.session.progress.reset()
        self._persist()
        self._notify(CLEARED_NOTICE)

    def _persist(self) -> None:
        if self.state_store is None:
            return
        try:
            self.state_store.save_rows(self.session.results.rows)
        except PersistenceError as e:
            logger.error(f"Could not persist rows: {e}")
