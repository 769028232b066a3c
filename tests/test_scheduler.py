"""
Tests for the bounded-concurrency scheduler and the progress tracker.
"""

import asyncio
from pathlib import Path

import pytest

from cmr_notes.pipeline.progress import DONE_TEXT, IDLE_TEXT, ProgressTracker
from cmr_notes.pipeline.scheduler import FAILED_PAGE_NOTICE, ConcurrencyScheduler
from cmr_notes.pipeline.tasks import PageTask, flatten_tasks
from cmr_notes.input_handler.handler import QueuedFile
from cmr_notes.utils.exceptions import SchedulerBusyError


def make_tasks(count, file_name="scan.pdf"):
    return [
        PageTask(source=Path(file_name), file_name=file_name, file_index=0,
                 page_index=index, page_count=count)
        for index in range(1, count + 1)
    ]


class Recorder:
    """Worker that tracks how many calls overlap."""

    def __init__(self, fail_pages=(), delays=None):
        self.fail_pages = set(fail_pages)
        self.delays = delays or {}
        self.active = 0
        self.peak = 0
        self.started = []
        self.finished = []

    async def __call__(self, task):
        self.started.append(task.page_index)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delays.get(task.page_index, 0.005))
            if task.page_index in self.fail_pages:
                raise RuntimeError(f"page {task.page_index} broke")
        finally:
            self.active -= 1
            self.finished.append(task.page_index)


class TestFlattenTasks:
    """Tests for task list construction"""

    def test_file_order_then_page_order(self):
        files = [QueuedFile(Path("a.pdf"), "a.pdf"), QueuedFile(Path("b.pdf"), "b.pdf")]
        tasks = flatten_tasks(files, [2, 1])

        assert [(t.file_name, t.page_index) for t in tasks] == [("a.pdf", 1), ("a.pdf", 2), ("b.pdf", 1)]
        assert tasks[2].file_index == 1
        assert tasks[0].page_count == 2

    def test_zero_page_file_contributes_nothing(self):
        files = [QueuedFile(Path("a.pdf"), "a.pdf"), QueuedFile(Path("b.pdf"), "b.pdf")]
        assert [t.file_name for t in flatten_tasks(files, [0, 2])] == ["b.pdf", "b.pdf"]

    def test_task_meta(self):
        task = make_tasks(3)[1]
        assert task.meta.to_wire() == {"fileName": "scan.pdf", "fileIndex": 0, "pageIndex": 2}
        assert str(task) == "scan.pdf p2/3"


class TestConcurrencyScheduler:
    """Tests for ConcurrencyScheduler"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count,bound", [(1, 2), (5, 2), (7, 3), (4, 1)])
    async def test_bound_is_never_exceeded(self, count, bound):
        worker = Recorder()
        scheduler = ConcurrencyScheduler(concurrency=bound)

        summary = await scheduler.run(make_tasks(count), worker)

        assert worker.peak <= bound
        assert summary.peak_concurrency == min(bound, count)
        assert summary.completed == count
        assert sorted(worker.finished) == list(range(1, count + 1))
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_dispatch_follows_list_order(self):
        worker = Recorder(delays={1: 0.05, 2: 0.001, 3: 0.001, 4: 0.001})
        await ConcurrencyScheduler(concurrency=2).run(make_tasks(4), worker)

        assert worker.started == [1, 2, 3, 4]
        assert worker.finished[-1] == 1

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self):
        notices = []
        completed = []
        worker = Recorder(fail_pages={2, 3})
        scheduler = ConcurrencyScheduler(concurrency=2, notify=notices.append)

        summary = await scheduler.run(
            make_tasks(5), worker,
            on_complete=lambda task, error: completed.append((task.page_index, error is None))
        )

        assert summary.succeeded == 3
        assert sorted(task.page_index for task, _ in summary.failed) == [2, 3]
        assert all(isinstance(error, RuntimeError) for _, error in summary.failed)
        assert notices == [FAILED_PAGE_NOTICE, FAILED_PAGE_NOTICE]
        assert sorted(completed) == [(1, True), (2, False), (3, False), (4, True), (5, True)]

    @pytest.mark.asyncio
    async def test_on_start_called_per_task(self):
        started = []
        await ConcurrencyScheduler(concurrency=2).run(
            make_tasks(3), Recorder(), on_start=lambda task: started.append(task.page_index)
        )
        assert started == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_empty_task_list_is_a_noop(self):
        scheduler = ConcurrencyScheduler(concurrency=2)
        summary = await scheduler.run([], Recorder())
        assert summary.total == 0
        assert summary.completed == 0
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_second_run_while_busy_is_rejected(self):
        scheduler = ConcurrencyScheduler(concurrency=1)
        gate = asyncio.Event()

        async def blocked(task):
            await gate.wait()

        first = asyncio.create_task(scheduler.run(make_tasks(1), blocked))
        await asyncio.sleep(0)
        assert scheduler.is_running

        with pytest.raises(SchedulerBusyError):
            await scheduler.run(make_tasks(1), blocked)

        gate.set()
        summary = await first
        assert summary.succeeded == 1

    def test_concurrency_defaults_to_config(self):
        assert ConcurrencyScheduler().concurrency == 2

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            ConcurrencyScheduler(concurrency=-1)


class TestProgressTracker:
    """Tests for ProgressTracker"""

    def test_idle_status(self):
        assert ProgressTracker().status_text() == IDLE_TEXT

    def test_percentage_rounds_half_up(self):
        tracker = ProgressTracker()
        tracker.start_run([4, 4])
        tracker.complete_task()
        assert tracker.percentage == 13
        tracker.complete_task()
        assert tracker.percentage == 25

    def test_percentage_with_no_pages(self):
        tracker = ProgressTracker()
        tracker.start_run([])
        assert tracker.percentage == 0

    def test_percentage_is_capped(self):
        tracker = ProgressTracker()
        tracker.start_run([1])
        tracker.complete_task()
        tracker.complete_task()
        assert tracker.percentage == 100

    def test_status_while_running(self):
        tracker = ProgressTracker()
        tracker.start_run([2, 3])
        task = PageTask(source=Path("b.pdf"), file_name="b.pdf", file_index=1, page_index=2, page_count=3)
        tracker.begin_task(task)
        tracker.complete_task()
        tracker.complete_task()

        assert tracker.status_text() == "Processing: file 2/2 - page 2/3 (40%)"

    def test_done_status(self):
        tracker = ProgressTracker()
        tracker.start_run([1])
        tracker.complete_task()
        tracker.finish()
        assert tracker.status_text() == DONE_TEXT
        assert tracker.processed_pages == tracker.total_pages == 1

    def test_updates_are_reported(self):
        seen = []
        tracker = ProgressTracker(on_update=lambda t: seen.append(t.processed_pages))
        tracker.start_run([2])
        tracker.complete_task()
        tracker.reset()
        assert seen == [0, 1, 0]
