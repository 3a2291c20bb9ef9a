"""
Per-item processing step and the sequential batch runner.

Both runners hand every item to :func:`process_item`, which skips items
whose output already validates, clears stale invalid output and otherwise
delegates to the :class:`~dexfetch.batch.retry.RetryController`.  The
sequential runner walks the item list in order with a fixed delay between
network-bound items.
"""

from __future__ import annotations

import contextlib
import logging
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

from dexfetch.batch.config import BatchConfig
from dexfetch.batch.retry import RetryController
from dexfetch.models import FailureReason, FetchResult, Outcome, RunSummary
from dexfetch.scraper.pokeapi import validate_output

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = ".dexfetch-"


def process_item(
    controller: RetryController,
    config: BatchConfig,
    item: str,
    scratch_dir: Path,
) -> FetchResult:
    """
    Run one item to a terminal :class:`FetchResult`.

    Never raises for per-item problems: anything unexpected is recorded as an
    ``unclassified`` failure so one bad item cannot stop the batch.
    """
    output = config.output_path(item)

    if validate_output(output, item) is not None:
        logger.info(f"{item}: valid output already on disk, skipping.")
        return FetchResult.skipped(item, output)

    try:
        if output.exists():
            logger.warning(f"{item}: removing invalid output {output}")
            output.unlink()
        return controller.run(item, output, scratch_dir)
    except Exception as exc:  # pylint: disable=broad-except
        logger.error(f"Unexpected error processing {item}: {exc!r}")
        return FetchResult.failed(item, FailureReason.UNCLASSIFIED, 1, str(exc))


class BaseRunner(ABC):
    """
    Abstract base for the batch runners.

    Subclasses implement :py:meth:`run` and return a :class:`RunSummary`.
    """

    mode = "batch"

    def __init__(self, config: BatchConfig) -> None:
        self.config = config
        self.config.output_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger(self.__class__.__name__)

    def scratch_dir(self) -> tempfile.TemporaryDirectory:
        """Private scratch space on the same filesystem as the outputs."""
        return tempfile.TemporaryDirectory(prefix=SCRATCH_PREFIX, dir=self.config.output_dir)

    def summarize(self, results: list[FetchResult], started: float) -> RunSummary:
        summary = RunSummary(
            results=results, elapsed=time.monotonic() - started, mode=self.mode
        )
        self.logger.info(
            f"Done: {summary.successful} successful, {summary.skipped} skipped, "
            f"{summary.failed} failed ({summary.success_rate:.1f}% ok) "
            f"in {summary.elapsed:.1f}s"
        )
        return summary

    @abstractmethod
    def run(self) -> RunSummary:
        """Process every configured item and return the aggregate summary."""
        ...


class SequentialRunner(BaseRunner):
    """
    Processes items one at a time, in order.

    Parameters
    ----------
    config : BatchConfig
        Items, output directory, delays and retry bounds.
    controller : RetryController, optional
        Shared controller; built from *config* (and closed afterwards) when
        omitted.
    sleep : callable
        Used for the inter-item delay; tests pass a recorder.
    """

    mode = "sequential"

    def __init__(
        self,
        config: BatchConfig,
        controller: Optional[RetryController] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(config)
        self.controller = controller
        self.sleep = sleep

    def run(self) -> RunSummary:
        started = time.monotonic()
        items = self.config.items
        results: list[FetchResult] = []

        with contextlib.ExitStack() as stack:
            controller = self.controller
            if controller is None:
                controller = RetryController.from_config(self.config)
                stack.callback(controller.close)
            scratch = Path(stack.enter_context(self.scratch_dir()))

            for index, item in enumerate(items, start=1):
                self.logger.info(f"[{index}/{len(items)}] Processing {item} …")
                result = process_item(controller, self.config, item, scratch)
                results.append(result)

                if result.outcome is Outcome.FAILED:
                    self.logger.warning(f"  ✗ {item}: {result.reason.value}")

                is_last = index == len(items)
                if result.outcome is not Outcome.SKIPPED and not is_last and self.config.delay:
                    self.sleep(self.config.delay)

        return self.summarize(results, started)
