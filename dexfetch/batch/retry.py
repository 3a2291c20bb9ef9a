"""
Retry controller shared by the sequential and parallel runners.

Runs fetch → validate up to ``max_attempts`` times for one item.  A
``not_found`` or ``identity_mismatch`` failure ends the loop at once; every
other failure waits ``retry_delay`` seconds and tries again.  The body is
only moved to its final path once it validates, so a failed attempt never
leaves anything behind but its (deleted) temp file.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from dexfetch.errors import FetchError
from dexfetch.models import FetchResult, Record
from dexfetch.scraper.base import PokemonFetcher
from dexfetch.scraper.pokeapi import validate_response

if TYPE_CHECKING:
    from dexfetch.batch.config import BatchConfig


class RetryController:
    def __init__(
        self,
        fetcher: PokemonFetcher,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        validate: Callable[[Path, str], Record] = validate_response,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.fetcher = fetcher
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.validate = validate
        self.sleep = sleep
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_config(cls, config: "BatchConfig") -> "RetryController":
        return cls(
            PokemonFetcher(config.fetch),
            max_attempts=config.max_attempts,
            retry_delay=config.retry_delay,
        )

    def close(self) -> None:
        self.fetcher.close()

    def run(self, item: str, output_path: Path, scratch_dir: Path) -> FetchResult:
        """
        Fetch *item* into *output_path*, retrying per the policy above.

        *scratch_dir* must live on the same filesystem as *output_path* so
        the final move is atomic.
        """
        last_error: Optional[FetchError] = None

        for attempt in range(1, self.max_attempts + 1):
            tmp = scratch_dir / f"{item}.{attempt}.tmp"
            self.logger.info(f"{item}: attempt {attempt}/{self.max_attempts}")
            try:
                self.fetcher.fetch(item, tmp)
                record = self.validate(tmp, item)
                os.replace(tmp, output_path)
            except FetchError as exc:
                last_error = exc
                self.logger.error(f"{exc.message} (attempt {attempt}/{self.max_attempts})")
                if not exc.retryable:
                    self.logger.warning(
                        f"{item}: {exc.reason.value} is not retryable, giving up"
                    )
                    return FetchResult.failed(item, exc.reason, attempt, exc.message)
                if attempt < self.max_attempts:
                    self.logger.info(f"{item}: waiting {self.retry_delay:g}s before retry …")
                    self.sleep(self.retry_delay)
                continue
            finally:
                tmp.unlink(missing_ok=True)

            self.logger.info(f"  ✓ {record.name} saved (attempt {attempt}).")
            return FetchResult.success(item, output_path, attempt)

        self.logger.warning(f"{item}: failed after {self.max_attempts} attempts")
        return FetchResult.failed(
            item, last_error.reason, self.max_attempts, last_error.message
        )
