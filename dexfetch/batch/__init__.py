"""Batch runners and the retry controller they share."""

from .config import BatchConfig
from .parallel import ParallelRunner
from .retry import RetryController
from .runner import SequentialRunner, process_item

__all__ = [
    "BatchConfig",
    "ParallelRunner",
    "RetryController",
    "SequentialRunner",
    "process_item",
]
