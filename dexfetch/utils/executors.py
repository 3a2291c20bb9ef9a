"""
Script containing the worker pool used by the parallel runner

Process workers do not log on their own: their root logger is reset to a
QueueHandler feeding a manager queue, and a QueueListener in the coordinator
replays every record through the coordinator's handlers.  This holds for
fork, spawn and forkserver alike.
"""

import logging
import signal
from concurrent import futures
from logging.handlers import QueueHandler, QueueListener
from multiprocessing.managers import SyncManager

logger = logging.getLogger(__name__)

EXECUTOR_KINDS = ("process", "thread")
JOIN_TIMEOUT = 5.0


def _init_manager_process():
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    signal.signal(signal.SIGTERM, signal.SIG_DFL)


def _init_worker_process(log_queue=None, level=logging.INFO):
    """Leave Ctrl-C to the coordinator; let SIGTERM kill the worker outright."""
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    signal.signal(signal.SIGTERM, signal.SIG_DFL)
    if log_queue is not None:
        root = logging.getLogger()
        # forked workers inherit the coordinator's handlers
        for handler in list(root.handlers):
            root.removeHandler(handler)
        root.addHandler(QueueHandler(log_queue))
        root.setLevel(level)


class WorkerPool:
    """Class to handle worker processes or threads
    """
    def __init__(self, max_workers, kind="process", mp_context=None):
        self._manager = None
        self._listener = None
        if kind == "process":
            self._manager = SyncManager(ctx=mp_context)
            self._manager.start(_init_manager_process)
            log_queue = self._manager.Queue()
            root = logging.getLogger()
            self._listener = QueueListener(log_queue, *root.handlers, respect_handler_level=True)
            self._listener.start()
            self.executor = futures.ProcessPoolExecutor(
                max_workers=max_workers,
                mp_context=mp_context,
                initializer=_init_worker_process,
                initargs=(log_queue, root.getEffectiveLevel()),
            )
        elif kind == "thread":
            self.executor = futures.ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="dexfetch-worker"
            )
        else:
            raise ValueError(f"Unknown executor kind {kind!r}, expected one of {EXECUTOR_KINDS}")
        self.kind = kind
        self._closed = False

    def submit(self, fn, *args):
        return self.executor.submit(fn, *args)

    def shutdown(self, terminate=False):
        """Stop the pool once; with *terminate*, drop queued work and kill running workers."""
        if self._closed:
            return
        self._closed = True
        try:
            if terminate and self.kind == "process":
                self._terminate_processes()
            else:
                self.executor.shutdown(wait=True, cancel_futures=True)
        finally:
            if self._listener is not None:
                self._listener.stop()
            if self._manager is not None:
                self._manager.shutdown()

    def _terminate_processes(self):
        # the executor exposes no public handle on its workers before Python 3.14
        processes = list((self.executor._processes or {}).values())
        logger.debug(f"WorkerPool: terminating {len(processes)} worker process(es)")
        kill = getattr(self.executor, "terminate_workers", None)
        if kill is not None:
            kill()
        else:
            self.executor.shutdown(wait=False, cancel_futures=True)
            for process in processes:
                if process.is_alive():
                    process.terminate()
        for process in processes:
            process.join(JOIN_TIMEOUT)
