"""
Page Task Module.

A run is a flat, ordered list of page tasks: every queued file in queue
order, and within a file every page in page order.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from cmr_notes.extraction.schemas import PageMeta
from cmr_notes.input_handler.handler import QueuedFile


@dataclass(frozen=True)
class PageTask:
    """
    One page to rasterize and extract.

    Attributes:
        source: Path of the PDF
        file_name: Name of the PDF
        file_index: 0-based position of the file in the queue
        page_index: 1-based page number
        page_count: Number of pages in the file
    """
    source: Path
    file_name: str
    file_index: int
    page_index: int
    page_count: int

    @property
    def meta(self) -> PageMeta:
        """Metadata sent to the extraction service and kept on rows."""
        return PageMeta(
            fileName=self.file_name,
            fileIndex=self.file_index,
            pageIndex=self.page_index
        )

    def __str__(self) -> str:
        return f"{self.file_name} p{self.page_index}/{self.page_count}"


def flatten_tasks(files: Sequence[QueuedFile], page_counts: Sequence[int]) -> List[PageTask]:
    """
    Build the ordered task list for a run.

    Args:
        files: Queued files in queue order.
        page_counts: Page count for each file.

    Returns:
        Tasks in file order, then page order.
    """
    tasks: List[PageTask] = []
    for file_index, (queued, page_count) in enumerate(zip(files, page_counts)):
        for page_index in range(1, page_count + 1):
            tasks.append(PageTask(
                source=queued.path,
                file_name=queued.name,
                file_index=file_index,
                page_index=page_index,
                page_count=page_count
            ))
    return tasks
