"""
Progress Tracker Module.

Aggregates page counts for a run and produces the status line shown to
the operator. The current file/page pointers are for display only.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from cmr_notes.utils.logger import get_logger
from cmr_notes.postprocessor.normalizers import round_half_up
from .tasks import PageTask

# Initialize module logger
logger = get_logger(__name__)

IDLE_TEXT = "Idle - no files yet"
DONE_TEXT = "Done processing."


@dataclass
class ProgressState:
    """
    Snapshot of run progress.

    Attributes:
        total_pages: Pages across all files of the run, fixed at start
        processed_pages: Completed tasks, successful or failed
        file_page_totals: Page count per queued file
        current_file_index: 1-based file of the last started task
        current_page: Page of the last started task
        current_page_total: Page count of that file
    """
    total_pages: int = 0
    processed_pages: int = 0
    file_page_totals: List[int] = field(default_factory=list)
    current_file_index: int = 0
    current_page: int = 0
    current_page_total: int = 0


class ProgressTracker:
    """
    Tracks processed pages against the run total.

    Example:
        >>> tracker = ProgressTracker()
        >>> tracker.start_run([2, 1])
        >>> tracker.complete_task()
        >>> tracker.percentage
        33
    """

    def __init__(self, on_update: Optional[Callable[['ProgressTracker'], None]] = None) -> None:
        self.state = ProgressState()
        self.in_progress = False
        self.done = False
        self._on_update = on_update

    def start_run(self, file_page_totals: List[int]) -> None:
        """Reset counters for a new run over files with the given page counts."""
        self.state = ProgressState(
            total_pages=sum(file_page_totals),
            file_page_totals=list(file_page_totals)
        )
        self.in_progress = True
        self.done = False
        logger.info(
            f"Run started: {len(file_page_totals)} file(s), "
            f"{self.state.total_pages} page(s)"
        )
        self._notify()

    def begin_task(self, task: PageTask) -> None:
        """Point the status line at a task that just started."""
        self.state.current_file_index = task.file_index + 1
        self.state.current_page = task.page_index
        self.state.current_page_total = task.page_count
        self._notify()

    def complete_task(self) -> None:
        """Count one finished task, whatever its outcome."""
        self.state.processed_pages += 1
        self._notify()

    def finish(self) -> None:
        self.in_progress = False
        self.done = True
        logger.info(
            f"Run finished: {self.state.processed_pages}/{self.state.total_pages} page(s)"
        )
        self._notify()

    def reset(self) -> None:
        self.state = ProgressState()
        self.in_progress = False
        self.done = False
        self._notify()

    @property
    def total_pages(self) -> int:
        return self.state.total_pages

    @property
    def processed_pages(self) -> int:
        return self.state.processed_pages

    @property
    def percentage(self) -> int:
        """Completed share of the run, 0-100."""
        total = self.state.total_pages or 1
        return min(100, round_half_up(self.state.processed_pages / total * 100))

    def status_text(self) -> str:
        """
        Human-readable status line.

        Returns:
            "Processing: file i/n - page p/t (x%)" during a run, otherwise
            the done or idle text.
        """
        if self.in_progress:
            totals = self.state.file_page_totals
            index = self.state.current_file_index
            file_total = 0
            if 0 < index <= len(totals):
                file_total = totals[index - 1]
            file_total = file_total or self.state.current_page_total or 1
            page = min(self.state.current_page, file_total)
            file_count = len(totals) or 1
            return (
                f"Processing: file {index}/{file_count} - "
                f"page {page}/{file_total} ({self.percentage}%)"
            )
        if self.done:
            return DONE_TEXT
        return IDLE_TEXT

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self)
