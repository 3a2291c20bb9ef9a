"""
Exception hierarchy for dexfetch.

Every per-item failure is a :class:`FetchError` carrying a
:class:`~dexfetch.models.FailureReason`; the retry controller decides what
to do from the reason alone.  :class:`DependencyMissingError` is the only
fatal error and aborts a run before any item is processed.
"""

from __future__ import annotations

from dexfetch.models import FailureReason


class DexFetchError(Exception):
    """Base class for all dexfetch errors."""


class FetchError(DexFetchError):
    """A single fetch/validate attempt for one item failed."""

    reason: FailureReason = FailureReason.UNCLASSIFIED

    def __init__(self, item: str, message: str) -> None:
        super().__init__(message)
        self.item = item
        self.message = message

    @property
    def retryable(self) -> bool:
        return self.reason.retryable


class NotFoundError(FetchError):
    reason = FailureReason.NOT_FOUND


class NetworkError(FetchError):
    reason = FailureReason.NETWORK


class FetchTimeoutError(FetchError):
    reason = FailureReason.TIMEOUT


class UnclassifiedFetchError(FetchError):
    reason = FailureReason.UNCLASSIFIED


class MalformedResponseError(FetchError):
    reason = FailureReason.MALFORMED_RESPONSE


class MissingFieldsError(FetchError):
    reason = FailureReason.MISSING_FIELDS

    def __init__(self, item: str, missing: list[str]) -> None:
        super().__init__(item, f"Missing or invalid fields for {item}: {', '.join(missing)}")
        self.missing = missing


class IdentityMismatchError(FetchError):
    reason = FailureReason.IDENTITY_MISMATCH

    def __init__(self, item: str, returned: object) -> None:
        super().__init__(
            item, f"Requested {item!r} but upstream returned record {returned!r}"
        )
        self.returned = returned


class DependencyMissingError(DexFetchError):
    """A module the fetchers need is not importable."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing required dependencies: {', '.join(missing)}")
        self.missing = missing
