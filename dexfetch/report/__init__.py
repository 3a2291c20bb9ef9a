"""Sentences, CSV rows and statistics over validated records."""

from .builder import (
    compute_stats,
    csv_rows,
    describe,
    format_height,
    format_stats,
    format_weight,
    load_records,
    records_frame,
    write_csv,
    write_summary,
)

__all__ = [
    "compute_stats",
    "csv_rows",
    "describe",
    "format_height",
    "format_stats",
    "format_weight",
    "load_records",
    "records_frame",
    "write_csv",
    "write_summary",
]
