"""
Batch configuration shared by both runners.

One :class:`BatchConfig` value carries the item list and every knob the
runners, the retry controller and the fetcher need; nothing is read from
module-level state.  The dataclass is picklable so it can be shipped to
worker processes unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from dexfetch.configs.constants import Constants
from dexfetch.scraper.base import FetchConfig
from dexfetch.scraper.pokeapi import is_valid_item


@dataclass
class BatchConfig:
    """
    Parameters
    ----------
    items : tuple[str, ...]
        Identifiers to fetch, in order.  Fixed for the lifetime of a run.
    output_dir : Path
        Where ``<item>.json`` files, reports and logs are written.
    delay : float
        Seconds to wait between items in the sequential runner.
    max_attempts : int
        Attempts per item before giving up (retryable failures only).
    retry_delay : float
        Seconds to wait between attempts for the same item.
    concurrency : int
        Worker cap for the parallel runner (1–10).
    fetch : FetchConfig
        Endpoint and timeout settings for the HTTP fetcher.
    """

    items: tuple[str, ...] = Constants.DEFAULT_POKEMON
    output_dir: Path = field(default_factory=lambda: Path(Constants.OUTPUT_DIR))
    delay: float = Constants.REQUEST_DELAY
    max_attempts: int = Constants.MAX_ATTEMPTS
    retry_delay: float = Constants.RETRY_DELAY
    concurrency: int = Constants.CONCURRENCY
    fetch: FetchConfig = field(default_factory=FetchConfig)

    def __post_init__(self) -> None:
        # Accept lists and plain strings from callers
        self.items = tuple(self.items)
        self.output_dir = Path(self.output_dir)

        bad = [item for item in self.items if not is_valid_item(item)]
        if bad:
            raise ValueError(f"Invalid item identifiers: {', '.join(map(repr, bad))}")
        if len(set(self.items)) != len(self.items):
            raise ValueError("Item identifiers must be unique")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0 or self.retry_delay < 0:
            raise ValueError("delays must not be negative")
        if not 1 <= self.concurrency <= Constants.MAX_CONCURRENCY:
            raise ValueError(
                f"concurrency must be between 1 and {Constants.MAX_CONCURRENCY}"
            )

    def output_path(self, item: str) -> Path:
        return self.output_dir / f"{item}.json"
