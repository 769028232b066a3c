"""
Pipeline Package.

Page tasks, deduplication, progress, the bounded scheduler and the
controller that ties them together.
"""

from .tasks import PageTask, flatten_tasks
from .dedupe import DedupeStore, make_key, key_for_row
from .progress import ProgressTracker, IDLE_TEXT, DONE_TEXT
from .scheduler import ConcurrencyScheduler, RunSummary, FAILED_PAGE_NOTICE
from .session import PipelineSession
from .controller import PipelineController, CLEARED_NOTICE

__all__ = [
    'PageTask',
    'flatten_tasks',
    'DedupeStore',
    'make_key',
    'key_for_row',
    'ProgressTracker',
    'IDLE_TEXT',
    'DONE_TEXT',
    'ConcurrencyScheduler',
    'RunSummary',
    'FAILED_PAGE_NOTICE',
    'PipelineSession',
    'PipelineController',
    'CLEARED_NOTICE',
]
