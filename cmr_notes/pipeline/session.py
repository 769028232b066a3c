"""
Pipeline Session Module.

Holds the mutable state of one operator session: the file queue, the
result and dedupe stores and the progress tracker.
"""

from dataclasses import dataclass, field
from typing import List

from cmr_notes.input_handler.handler import QueuedFile
from cmr_notes.output_handler.result_store import ResultStore
from .dedupe import DedupeStore
from .progress import ProgressTracker


def _new_result_store() -> ResultStore:
    return ResultStore(DedupeStore())


@dataclass
class PipelineSession:
    """
    State shared by every page task of the session.

    Attributes:
        files: Accepted PDFs in queue order
        results: Result store; owns the dedupe store
        progress: Progress tracker for the current or last run
        in_progress: True while a run is active
    """
    files: List[QueuedFile] = field(default_factory=list)
    results: ResultStore = field(default_factory=_new_result_store)
    progress: ProgressTracker = field(default_factory=ProgressTracker)
    in_progress: bool = False

    @property
    def dedupe(self) -> DedupeStore:
        return self.results.dedupe
