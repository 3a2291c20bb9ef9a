"""
Domain types shared by the fetcher, the runners and the report builder.

Nothing in here talks to the network or the filesystem: a :class:`Record`
is what a validated PokeAPI response turns into, a :class:`FetchResult` is
the outcome of processing one item, and a :class:`RunSummary` aggregates
the results of a whole batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class FailureReason(str, Enum):
    """Closed set of reasons a single item can fail."""

    NOT_FOUND = "not_found"
    NETWORK = "network"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed_response"
    MISSING_FIELDS = "missing_fields"
    IDENTITY_MISMATCH = "identity_mismatch"
    UNCLASSIFIED = "unclassified"

    @property
    def retryable(self) -> bool:
        # Retrying cannot change upstream's answer for these two
        return self not in (FailureReason.NOT_FOUND, FailureReason.IDENTITY_MISMATCH)


class Outcome(str, Enum):
    SUCCESS = "Success"
    SKIPPED = "Skipped"
    FAILED = "Failed"


@dataclass(frozen=True)
class Record:
    """
    Validated record for one Pokemon.

    ``height`` and ``weight`` stay in PokeAPI's native units (decimetres
    and hectograms); conversion happens in the report builder.
    """

    name: str
    id: int
    types: tuple[str, ...]
    height: int
    weight: int

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Record":
        return cls(
            name=payload["name"],
            id=payload["id"],
            types=tuple(t["type"]["name"] for t in payload["types"]),
            height=payload["height"],
            weight=payload["weight"],
        )


@dataclass(frozen=True)
class FetchResult:
    """Terminal outcome of processing a single item."""

    item: str
    outcome: Outcome
    path: Optional[Path] = None
    reason: Optional[FailureReason] = None
    attempts: int = 0
    message: str = ""

    @classmethod
    def success(cls, item: str, path: Path, attempts: int) -> "FetchResult":
        return cls(item=item, outcome=Outcome.SUCCESS, path=path, attempts=attempts)

    @classmethod
    def skipped(cls, item: str, path: Path, message: str = "already_valid") -> "FetchResult":
        return cls(item=item, outcome=Outcome.SKIPPED, path=path, message=message)

    @classmethod
    def failed(
        cls, item: str, reason: FailureReason, attempts: int, message: str = ""
    ) -> "FetchResult":
        return cls(
            item=item,
            outcome=Outcome.FAILED,
            reason=reason,
            attempts=attempts,
            message=message,
        )

    @property
    def ok(self) -> bool:
        return self.outcome is not Outcome.FAILED

    def status_line(self) -> str:
        """Text written to the item's status marker, e.g. ``Success:2``."""
        if self.outcome is Outcome.SUCCESS:
            return f"{self.outcome.value}:{self.attempts}"
        if self.outcome is Outcome.SKIPPED:
            return f"{self.outcome.value}:{self.message}"
        return f"{self.outcome.value}:{self.reason.value}"


@dataclass
class RunSummary:
    """Aggregate of every :class:`FetchResult` produced by one batch run."""

    results: list[FetchResult] = field(default_factory=list)
    elapsed: float = 0.0
    mode: str = "sequential"

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def successful(self) -> int:
        return self._count(Outcome.SUCCESS)

    @property
    def skipped(self) -> int:
        return self._count(Outcome.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILED)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def failures(self) -> list[FetchResult]:
        return [r for r in self.results if r.outcome is Outcome.FAILED]

    @property
    def success_rate(self) -> float:
        """Percentage of items that ended the run with a valid output file."""
        if not self.results:
            return 0.0
        return 100.0 * (self.successful + self.skipped) / self.total

    @property
    def mean_attempts(self) -> float:
        """Mean number of attempts over items that actually hit the network."""
        fetched = [r.attempts for r in self.results if r.outcome is not Outcome.SKIPPED]
        if not fetched:
            return 0.0
        return sum(fetched) / len(fetched)

    def render(self) -> str:
        lines = [
            f"dexfetch {self.mode} run summary",
            "=" * 40,
            f"Total items     : {self.total}",
            f"Successful      : {self.successful}",
            f"Skipped         : {self.skipped}",
            f"Failed          : {self.failed}",
            f"Success rate    : {self.success_rate:.1f}%",
            f"Mean attempts   : {self.mean_attempts:.2f}",
            f"Elapsed         : {self.elapsed:.2f}s",
        ]
        if self.failures:
            lines.append("")
            lines.append("Failures:")
            for result in self.failures:
                lines.append(
                    f"  - {result.item}: {result.reason.value} after "
                    f"{result.attempts} attempt(s) {result.message}".rstrip()
                )
        return "\n".join(lines) + "\n"
