"""
Bounded-concurrency batch runner.

Every item becomes one task on a :class:`~dexfetch.utils.executors.WorkerPool`
(worker processes by default).  Admission is capped by a bounded semaphore:
the coordinator blocks once ``concurrency`` tasks are outstanding and admits
the next item only when one finishes.  Task futures are the result channel.

Each worker also publishes a status marker (``Running`` and then
``Success:<attempts>`` / ``Skipped:<reason>`` / ``Failed:<reason>``) under the
run's scratch directory.  A :class:`ProgressMonitor` thread polls those
markers and logs live counts; markers have exactly one writer each, so no
locking is needed.

The scratch directory, the pool and the monitor are scoped to :py:meth:`run`:
whether the run completes, raises, or is interrupted (Ctrl-C, or SIGTERM
while running on the main thread) the monitor is stopped, queued work is
cancelled, running worker processes are terminated, and the scratch
directory is deleted, exactly once.  Log records emitted inside worker
processes are forwarded to the coordinator's handlers, so per-attempt
errors reach the run's error log under any start method.
"""

from __future__ import annotations

import contextlib
import logging
import multiprocessing
import os
import signal
import threading
import time
from concurrent import futures
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from dexfetch.batch.config import BatchConfig
from dexfetch.batch.retry import RetryController
from dexfetch.batch.runner import BaseRunner, process_item
from dexfetch.configs.constants import Constants
from dexfetch.models import FailureReason, FetchResult, Outcome, RunSummary
from dexfetch.utils.executors import WorkerPool

ControllerFactory = Callable[[BatchConfig], RetryController]

RUNNING = "Running"


# ---------------------------------------------------------------------------
# Status markers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProgressSnapshot:
    total: int
    completed: int = 0
    skipped: int = 0
    failed: int = 0
    running: int = 0

    @property
    def finished(self) -> int:
        return self.completed + self.skipped + self.failed

    @property
    def pending(self) -> int:
        return self.total - self.finished - self.running

    @property
    def done(self) -> bool:
        return self.finished == self.total

    def render(self) -> str:
        return (
            f"Progress: {self.finished}/{self.total} done | "
            f"completed {self.completed} | running {self.running} | pending {self.pending} | "
            f"failed {self.failed} | skipped {self.skipped}"
        )


class StatusBoard:
    """Per-item status marker files under one directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, item: str) -> Path:
        return self.root / f"{item}.status"

    def write(self, item: str, status: str) -> None:
        tmp = self.root / f".{item}.status.tmp"
        tmp.write_text(status, encoding="utf-8")
        os.replace(tmp, self.path_for(item))

    def read(self, item: str) -> Optional[str]:
        try:
            return self.path_for(item).read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None

    def snapshot(self, items: Iterable[str]) -> ProgressSnapshot:
        counts = {"completed": 0, "skipped": 0, "failed": 0, "running": 0}
        items = list(items)
        for item in items:
            status = self.read(item)
            if status is None:
                continue
            kind = status.split(":", 1)[0]
            if kind == Outcome.SUCCESS.value:
                counts["completed"] += 1
            elif kind == Outcome.SKIPPED.value:
                counts["skipped"] += 1
            elif kind == Outcome.FAILED.value:
                counts["failed"] += 1
            elif kind == RUNNING:
                counts["running"] += 1
        return ProgressSnapshot(total=len(items), **counts)


class ProgressMonitor(threading.Thread):
    """Polls a :class:`StatusBoard` every *interval* seconds until all items are terminal."""

    def __init__(
        self,
        board: StatusBoard,
        items: Iterable[str],
        interval: float = Constants.MONITOR_INTERVAL,
        on_update: Optional[Callable[[ProgressSnapshot], None]] = None,
    ) -> None:
        super().__init__(name="dexfetch-monitor", daemon=True)
        self.board = board
        self.items = tuple(items)
        self.interval = interval
        self.on_update = on_update
        self.last: Optional[ProgressSnapshot] = None
        self._stop_event = threading.Event()
        self.logger = logging.getLogger(self.__class__.__name__)

    def run(self) -> None:
        while True:
            snapshot = self.board.snapshot(self.items)
            if snapshot != self.last:
                self.last = snapshot
                self.logger.info(snapshot.render())
                if self.on_update is not None:
                    self.on_update(snapshot)
            if snapshot.done or self._stop_event.wait(self.interval):
                return

    def stop(self) -> None:
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout=self.interval + 1.0)


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------


def run_worker(
    factory: ControllerFactory, config: BatchConfig, item: str, scratch_dir: str
) -> FetchResult:
    """
    Body of one worker task.  Module-level so process pools can pickle it.
    """
    scratch = Path(scratch_dir)
    board = StatusBoard(scratch / "status")
    board.write(item, RUNNING)

    controller = factory(config)
    try:
        result = process_item(controller, config, item, scratch)
    finally:
        controller.close()

    board.write(item, result.status_line())
    return result


@contextlib.contextmanager
def sigterm_as_interrupt():
    """Turn SIGTERM into KeyboardInterrupt for the duration of the block."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        raise KeyboardInterrupt(f"received signal {signum}")

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class ParallelRunner(BaseRunner):
    """
    Parameters
    ----------
    config : BatchConfig
        ``config.concurrency`` bounds the number of outstanding workers.
    controller_factory : callable
        Builds a :class:`RetryController` inside each worker.  Must be
        picklable when ``executor_kind`` is ``"process"``.
    executor_kind : str
        ``"process"`` (default) or ``"thread"``.
    monitor_interval : float
        Seconds between status-marker polls.
    on_progress : callable, optional
        Receives every distinct :class:`ProgressSnapshot` the monitor sees.
    start_method : str, optional
        multiprocessing start method for process workers (``"fork"``,
        ``"spawn"``, ``"forkserver"``); the platform default when omitted.
    """

    mode = "parallel"

    def __init__(
        self,
        config: BatchConfig,
        controller_factory: ControllerFactory = RetryController.from_config,
        executor_kind: str = "process",
        monitor_interval: float = Constants.MONITOR_INTERVAL,
        on_progress: Optional[Callable[[ProgressSnapshot], None]] = None,
        start_method: Optional[str] = None,
    ) -> None:
        super().__init__(config)
        self.controller_factory = controller_factory
        self.executor_kind = executor_kind
        self.monitor_interval = monitor_interval
        self.on_progress = on_progress
        self.start_method = start_method

        self.peak_active = 0
        self._active = 0
        self._lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(config.concurrency)

    # ------------------------------------------------------------------
    # Admission bookkeeping
    # ------------------------------------------------------------------

    def _admit(self) -> None:
        self._slots.acquire()
        with self._lock:
            self._active += 1
            self.peak_active = max(self.peak_active, self._active)

    def _release(self, _future: futures.Future) -> None:
        with self._lock:
            self._active -= 1
        self._slots.release()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> RunSummary:
        started = time.monotonic()
        items = self.config.items
        results: dict[str, FetchResult] = {}

        self.logger.info(
            f"Launching {len(items)} items with up to {self.config.concurrency} "
            f"{self.executor_kind} workers"
        )

        with contextlib.ExitStack() as stack:
            scratch = Path(stack.enter_context(self.scratch_dir()))
            board = StatusBoard(scratch / "status")
            board.root.mkdir()
            stack.enter_context(sigterm_as_interrupt())

            context = None
            if self.executor_kind == "process" and self.start_method is not None:
                context = multiprocessing.get_context(self.start_method)
            pool = WorkerPool(self.config.concurrency, kind=self.executor_kind, mp_context=context)
            stack.push(
                lambda exc_type, exc, tb: pool.shutdown(terminate=exc_type is not None)
            )

            monitor = ProgressMonitor(
                board, items, interval=self.monitor_interval, on_update=self.on_progress
            )
            monitor.start()
            stack.callback(monitor.stop)

            pending: dict[futures.Future, str] = {}
            for item in items:
                self._admit()
                self.logger.debug(f"Admitting worker for {item}")
                future = pool.submit(
                    run_worker, self.controller_factory, self.config, item, str(scratch)
                )
                future.add_done_callback(self._release)
                pending[future] = item

            for future in futures.as_completed(pending):
                item = pending[future]
                results[item] = self._collect(item, future)

        summary = self.summarize([results[item] for item in items], started)
        self.logger.info(f"Peak concurrent workers: {self.peak_active}")
        return summary

    def _collect(self, item: str, future: futures.Future) -> FetchResult:
        try:
            result = future.result()
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.error(f"{item}: worker crashed: {exc!r}")
            return FetchResult.failed(item, FailureReason.UNCLASSIFIED, 0, str(exc))

        if result.outcome is Outcome.FAILED:
            self.logger.error(
                f"{item}: failed ({result.reason.value}) after "
                f"{result.attempts} attempt(s): {result.message}"
            )
        else:
            self.logger.info(f"  ✓ {item}: {result.status_line()}")
        return result
