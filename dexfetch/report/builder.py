"""
Field extraction and reporting over validated records.

Pure computation plus plain file writes: sentences for single records, a
CSV with one row per record, and count/min/max/range/mean statistics over
the CSV's numeric columns.  Heights arrive in decimetres and weights in
hectograms; both are divided by ten for display, height shown with one
decimal place and weight rounded half-up to a whole kilogram.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from dexfetch.configs.constants import Constants
from dexfetch.models import Record, RunSummary
from dexfetch.scraper.pokeapi import validate_output

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Unit conversion
# ---------------------------------------------------------------------------


def format_height(decimetres: int) -> str:
    """4 → ``"0.4"``"""
    return str((Decimal(decimetres) / 10).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_weight(hectograms: int) -> str:
    """60 → ``"6"``, 65 → ``"7"``"""
    return str((Decimal(hectograms) / 10).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def display_name(name: str) -> str:
    return name.capitalize()


# ---------------------------------------------------------------------------
# Sentences and CSV
# ---------------------------------------------------------------------------


def describe(record: Record) -> str:
    types = "/".join(t.capitalize() for t in record.types)
    return (
        f"{display_name(record.name)} is of type {types}, "
        f"weighs {format_weight(record.weight)} kg, "
        f"and is {format_height(record.height)} m tall."
    )


def records_frame(records: Iterable[Record]) -> pd.DataFrame:
    """One row per record with display-formatted values, in input order."""
    name_col, height_col, weight_col = Constants.CSV_HEADER
    rows = [
        {
            name_col: display_name(record.name),
            height_col: format_height(record.height),
            weight_col: format_weight(record.weight),
        }
        for record in records
    ]
    return pd.DataFrame(rows, columns=list(Constants.CSV_HEADER))


def csv_rows(records: Iterable[Record]) -> list[list[str]]:
    """Header row followed by one ``[name, height_m, weight_kg]`` row per record."""
    df = records_frame(records)
    return [list(df.columns)] + df.values.tolist()


def render_csv(records: Iterable[Record]) -> str:
    return records_frame(records).to_csv(index=False, lineterminator="\n")


def write_csv(records: Iterable[Record], path: Path) -> Path:
    """Write the CSV report; identical records always give identical bytes."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_csv(records), encoding="utf-8")
    logger.info(f"CSV report written → {path}")
    return path


def load_records(output_dir: Path, items: Iterable[str]) -> list[Record]:
    """Validated records for *items*, in order; missing or invalid files are skipped."""
    records = []
    for item in items:
        path = Path(output_dir) / f"{item}.json"
        record = validate_output(path, item)
        if record is None:
            logger.warning(f"No valid record for {item} at {path}, leaving it out.")
            continue
        records.append(record)
    return records


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnStats:
    label: str
    count: int
    minimum: float
    maximum: float
    mean: float

    @property
    def range(self) -> float:
        return self.maximum - self.minimum


@dataclass(frozen=True)
class ReportStats:
    count: int
    columns: tuple[ColumnStats, ...]

    def column(self, label: str) -> Optional[ColumnStats]:
        for column in self.columns:
            if column.label == label:
                return column
        return None


def compute_stats(csv_path: Path) -> ReportStats:
    """
    Statistics for every numeric column of a report CSV.

    The first row is treated as the header and skipped; rows whose value
    for a column does not parse as a number are left out of that column.
    """
    try:
        df = pd.read_csv(csv_path, encoding="utf-8")
    except pd.errors.EmptyDataError:
        return ReportStats(count=0, columns=())

    columns = []
    for label in df.columns[1:]:
        values = pd.to_numeric(df[label], errors="coerce").dropna()
        if values.empty:
            continue
        columns.append(
            ColumnStats(
                label=label,
                count=int(values.count()),
                minimum=float(values.min()),
                maximum=float(values.max()),
                mean=float(values.mean()),
            )
        )
    return ReportStats(count=len(df), columns=tuple(columns))


def format_stats(stats: ReportStats) -> str:
    lines = [f"Records: {stats.count}"]
    for column in stats.columns:
        lines.append(
            f"{column.label}: min {column.minimum:g}, max {column.maximum:g}, "
            f"range {column.range:g}, mean {column.mean:.2f}"
        )
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Run summary
# ---------------------------------------------------------------------------


def write_summary(summary: RunSummary, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(summary.render(), encoding="utf-8")
    logger.info(f"Run summary written → {path}")
    return path
