"""
Concurrency Scheduler Module.

This module provides the bounded worker pool that drives page tasks.

Behaviour:
    - At most ``concurrency`` tasks run at any instant
    - Tasks are dispatched strictly in list order as slots free up
    - Completion order is unconstrained
    - Every task is attempted exactly once; failures are isolated
    - The run returns only when the list is exhausted and nothing is
      in flight

All bookkeeping happens on the event loop thread, so no locking is
needed around the callbacks.

Author: ML Engineering Team
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from cmr_notes.config import get_config
from cmr_notes.utils.logger import get_logger, page_logger
from cmr_notes.utils.exceptions import SchedulerBusyError
from .tasks import PageTask

# Initialize module logger
logger = get_logger(__name__)

FAILED_PAGE_NOTICE = "Failed processing a page. You can retry."

TaskWorker = Callable[[PageTask], Awaitable[None]]


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class RunSummary:
    """
    Outcome of one scheduler run.

    Attributes:
        total: Number of tasks in the run
        succeeded: Tasks that completed without error
        failed: (task, error) pairs for tasks that raised
        peak_concurrency: Highest number of tasks in flight at once
    """
    total: int = 0
    succeeded: int = 0
    failed: List[Tuple[PageTask, BaseException]] = field(default_factory=list)
    peak_concurrency: int = 0

    @property
    def completed(self) -> int:
        return self.succeeded + len(self.failed)


class ConcurrencyScheduler:
    """
    Bounded-concurrency runner for page tasks.

    Attributes:
        concurrency: Maximum number of tasks in flight
        state: IDLE or RUNNING

    Example:
        >>> scheduler = ConcurrencyScheduler(concurrency=2)
        >>> summary = await scheduler.run(tasks, handle_page)
        >>> summary.completed == len(tasks)
        True
    """

    DEFAULT_CONCURRENCY = 2

    def __init__(
        self,
        concurrency: Optional[int] = None,
        notify: Optional[Callable[[str], None]] = None
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            concurrency: Slot count. If None, uses config.
            notify: Callback receiving operator notices.
        """
        if concurrency is None:
            concurrency = get_config("pipeline.concurrency", self.DEFAULT_CONCURRENCY)
        self.concurrency = concurrency
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {self.concurrency}")

        self.state = SchedulerState.IDLE
        self._notify = notify

        logger.debug(f"ConcurrencyScheduler initialized (concurrency={self.concurrency})")

    @property
    def is_running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    async def run(
        self,
        tasks: Sequence[PageTask],
        worker: TaskWorker,
        on_start: Optional[Callable[[PageTask], None]] = None,
        on_complete: Optional[Callable[[PageTask, Optional[BaseException]], None]] = None
    ) -> RunSummary:
        """
        Run every task through ``worker``.

        Args:
            tasks: Ordered page tasks.
            worker: Coroutine function processing one task.
            on_start: Called as each task is dispatched.
            on_complete: Called once per task with its error or None.

        Returns:
            RunSummary for the run.

        Raises:
            SchedulerBusyError: If a run is already active.
        """
        if self.is_running:
            raise SchedulerBusyError()

        summary = RunSummary(total=len(tasks))
        if not tasks:
            logger.debug("No tasks to run")
            return summary

        self.state = SchedulerState.RUNNING
        cursor = 0
        in_flight: Dict[asyncio.Task, PageTask] = {}

        try:
            while cursor < len(tasks) or in_flight:
                while len(in_flight) < self.concurrency and cursor < len(tasks):
                    task = tasks[cursor]
                    cursor += 1
                    if on_start is not None:
                        on_start(task)
                    page_logger(logger, task).debug("Dispatched")
                    in_flight[asyncio.create_task(worker(task))] = task
                    summary.peak_concurrency = max(summary.peak_concurrency, len(in_flight))

                done, _ = await asyncio.wait(
                    in_flight.keys(),
                    return_when=asyncio.FIRST_COMPLETED
                )

                for finished in done:
                    task = in_flight.pop(finished)
                    error = self._task_error(finished)

                    if error is None:
                        summary.succeeded += 1
                        page_logger(logger, task).debug("Completed")
                    else:
                        summary.failed.append((task, error))
                        page_logger(logger, task).error(
                            f"Failed: {error}",
                            exc_info=(type(error), error, error.__traceback__)
                        )
                        if self._notify is not None:
                            self._notify(FAILED_PAGE_NOTICE)

                    if on_complete is not None:
                        on_complete(task, error)
        finally:
            self.state = SchedulerState.IDLE

        logger.info(
            f"Scheduler idle: {summary.succeeded} succeeded, "
            f"{len(summary.failed)} failed of {summary.total}"
        )
        return summary

    @staticmethod
    def _task_error(finished: asyncio.Task) -> Optional[BaseException]:
        if finished.cancelled():
            return asyncio.CancelledError()
        return finished.exception()
