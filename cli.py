"""
dexfetch unified CLI.

Single entry point for all project operations.

Usage
-----
# Single Pokemon
python cli.py describe pikachu                 # fetch (with retries) and print a summary line

# Batch runs over the built-in Pokemon list
python cli.py fetch                            # sequential, one item after another
python cli.py fetch --delay 0.5 --retries 2    # tune pacing and retry bound
python cli.py parallel -j 5                    # up to 5 worker processes
python cli.py parallel --threads               # worker threads instead of processes

# Modes (fetch and parallel)
python cli.py fetch --validate-only            # check files on disk, no network
python cli.py fetch --stats-only               # CSV + statistics from files on disk
python cli.py fetch --cleanup-only             # delete outputs, reports and logs

# Reports
python cli.py report                           # sentences, CSV and statistics

Exit status is 0 on success, 1 when any item failed, an output does not
validate, a flag is unknown/invalid, or a required dependency is missing.
"""

from __future__ import annotations

import argparse
import logging
import shutil
import sys
from pathlib import Path
from typing import Optional

from dexfetch.configs.constants import Constants
from dexfetch.errors import DependencyMissingError
from dexfetch.utils.logger import setup_logging

logger = logging.getLogger("dexfetch.cli")


class ArgumentParser(argparse.ArgumentParser):
    """argparse with exit status 1 (not 2) on usage errors."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _jobs(value: str) -> int:
    try:
        jobs = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if not 1 <= jobs <= Constants.MAX_CONCURRENCY:
        raise argparse.ArgumentTypeError(
            f"must be between 1 and {Constants.MAX_CONCURRENCY}, got {jobs}"
        )
    return jobs


def _non_negative(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {value}")
    return number


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def _build_config(args: argparse.Namespace, items=Constants.DEFAULT_POKEMON):
    from dexfetch.batch import BatchConfig
    from dexfetch.scraper import FetchConfig

    return BatchConfig(
        items=items,
        output_dir=Path(args.output_dir),
        delay=getattr(args, "delay", Constants.REQUEST_DELAY),
        max_attempts=getattr(args, "retries", Constants.MAX_ATTEMPTS),
        retry_delay=getattr(args, "retry_delay", Constants.RETRY_DELAY),
        concurrency=getattr(args, "jobs", Constants.CONCURRENCY),
        fetch=FetchConfig(base_url=args.base_url),
    )


def _report_paths(output_dir: Path) -> dict[str, Path]:
    return {
        "csv": output_dir / Constants.CSV_REPORT,
        "summary": output_dir / Constants.SUMMARY_REPORT,
        "errors": output_dir / Constants.ERROR_LOG,
        "activity": output_dir / Constants.ACTIVITY_LOG,
    }


def _print_stats(csv_path: Path) -> None:
    from dexfetch.report import compute_stats, format_stats

    print(format_stats(compute_stats(csv_path)))


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


def _validate_only(config) -> int:
    from dexfetch.scraper import validate_output

    bad = 0
    for item in config.items:
        path = config.output_path(item)
        if not path.exists():
            logger.warning(f"{item}: missing ({path})")
            bad += 1
        elif validate_output(path, item) is None:
            logger.error(f"{item}: invalid record at {path}")
            bad += 1
        else:
            logger.info(f"{item}: valid")
    print(f"{len(config.items) - bad}/{len(config.items)} outputs valid")
    return 0 if bad == 0 else 1


def _stats_only(config) -> int:
    from dexfetch.report import load_records, write_csv

    records = load_records(config.output_dir, config.items)
    if not records:
        logger.error(f"No valid records under {config.output_dir}")
        return 1
    csv_path = write_csv(records, _report_paths(config.output_dir)["csv"])
    _print_stats(csv_path)
    return 0


def _cleanup_only(config) -> int:
    from dexfetch.batch.runner import SCRATCH_PREFIX

    removed = 0
    targets = [config.output_path(item) for item in config.items]
    targets += list(_report_paths(config.output_dir).values())
    for path in targets:
        if path.exists():
            path.unlink()
            removed += 1
    if config.output_dir.is_dir():
        for scratch in config.output_dir.glob(f"{SCRATCH_PREFIX}*"):
            shutil.rmtree(scratch, ignore_errors=True)
            removed += 1
    logger.info(f"Removed {removed} file(s) from {config.output_dir}")
    return 0


def _batch(args: argparse.Namespace, parallel: bool) -> int:
    from dexfetch.batch import ParallelRunner, SequentialRunner
    from dexfetch.report import load_records, write_csv, write_summary
    from dexfetch.utils.logger import run_logs

    config = _build_config(args)

    if args.cleanup_only:
        return _cleanup_only(config)
    if args.validate_only:
        return _validate_only(config)
    if args.stats_only:
        return _stats_only(config)

    paths = _report_paths(config.output_dir)
    config.output_dir.mkdir(parents=True, exist_ok=True)
    with run_logs(paths["errors"], paths["activity"]):
        if parallel:
            runner = ParallelRunner(
                config, executor_kind="thread" if args.threads else "process"
            )
        else:
            runner = SequentialRunner(config)
        summary = runner.run()

        write_summary(summary, paths["summary"])
        records = load_records(config.output_dir, [r.item for r in summary.results if r.ok])
        if records:
            write_csv(records, paths["csv"])

    print(summary.render(), end="")
    if records:
        _print_stats(paths["csv"])
    if summary.failed:
        print(f"Errors logged to {paths['errors']}")
    return 0 if summary.failed == 0 else 1


# ---------------------------------------------------------------------------
# Sub-command handlers
# ---------------------------------------------------------------------------


def cmd_describe(args: argparse.Namespace) -> int:
    """Fetch one Pokemon and print its summary sentence."""
    from dexfetch.batch import SequentialRunner
    from dexfetch.report import describe
    from dexfetch.scraper import validate_output
    from dexfetch.utils.logger import run_logs

    name = args.name.strip().lower()
    try:
        config = _build_config(args, items=(name,))
    except ValueError as exc:
        logger.error(str(exc))
        return 1

    paths = _report_paths(config.output_dir)
    config.output_dir.mkdir(parents=True, exist_ok=True)
    with run_logs(paths["errors"], paths["activity"]):
        summary = SequentialRunner(config).run()
        result = summary.results[0]
        if not result.ok:
            logger.error(
                f"Could not fetch {name}: {result.reason.value} {result.message}".rstrip()
            )
            return 1

    record = validate_output(config.output_path(name), name)
    print(describe(record))
    return 0


def cmd_fetch(args: argparse.Namespace) -> int:
    """Sequential batch run."""
    return _batch(args, parallel=False)


def cmd_parallel(args: argparse.Namespace) -> int:
    """Parallel batch run."""
    return _batch(args, parallel=True)


def cmd_report(args: argparse.Namespace) -> int:
    """Sentences, CSV and statistics for whatever is on disk."""
    from dexfetch.report import describe, load_records, write_csv

    config = _build_config(args)
    records = load_records(config.output_dir, config.items)
    if not records:
        logger.error(f"No valid records under {config.output_dir}")
        return 1

    for record in records:
        print(describe(record))
    csv_path = write_csv(records, _report_paths(config.output_dir)["csv"])
    _print_stats(csv_path)
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _add_batch_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--delay",
        type=_non_negative,
        default=Constants.REQUEST_DELAY,
        metavar="SECONDS",
        help="Pause between items",
    )
    parser.add_argument(
        "--retries",
        type=_positive_int,
        default=Constants.MAX_ATTEMPTS,
        metavar="N",
        help="Attempts per item",
    )
    parser.add_argument(
        "--retry-delay",
        type=_non_negative,
        default=Constants.RETRY_DELAY,
        metavar="SECONDS",
        help="Pause between attempts for the same item",
    )
    modes = parser.add_mutually_exclusive_group()
    modes.add_argument("--validate-only", action="store_true", help="Only validate files on disk")
    modes.add_argument("--stats-only", action="store_true", help="Only build CSV + statistics")
    modes.add_argument("--cleanup-only", action="store_true", help="Only delete outputs and logs")


def build_parser() -> ArgumentParser:
    root = ArgumentParser(
        prog="dexfetch",
        description="dexfetch PokeAPI batch fetcher, unified CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    root.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    root.add_argument("--output-dir", default=Constants.OUTPUT_DIR, metavar="DIR")
    root.add_argument("--base-url", default=Constants.POKEMON_ENDPOINT, metavar="URL")

    subparsers = root.add_subparsers(dest="command", required=True)

    # -- describe --
    describe_p = subparsers.add_parser("describe", help="Fetch one Pokemon and describe it")
    describe_p.add_argument("name", help="Pokemon identifier, e.g. pikachu")
    describe_p.add_argument("--retries", type=_positive_int, default=Constants.MAX_ATTEMPTS)
    describe_p.add_argument("--retry-delay", type=_non_negative, default=Constants.RETRY_DELAY)
    describe_p.set_defaults(func=cmd_describe)

    # -- fetch --
    fetch_p = subparsers.add_parser("fetch", help="Sequential batch fetch")
    _add_batch_flags(fetch_p)
    fetch_p.set_defaults(func=cmd_fetch)

    # -- parallel --
    par_p = subparsers.add_parser("parallel", help="Parallel batch fetch")
    _add_batch_flags(par_p)
    par_p.add_argument(
        "-j",
        "--jobs",
        type=_jobs,
        default=Constants.CONCURRENCY,
        help=f"Concurrent workers (1-{Constants.MAX_CONCURRENCY})",
    )
    par_p.add_argument("--threads", action="store_true", help="Use threads instead of processes")
    par_p.set_defaults(func=cmd_parallel)

    # -- report --
    subparsers.add_parser("report", help="CSV + statistics for fetched records").set_defaults(
        func=cmd_report
    )

    return root


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    from dexfetch.utils.dependencies import check_dependencies

    try:
        check_dependencies()
    except DependencyMissingError as exc:
        logger.error(str(exc))
        return 1

    try:
        return args.func(args)
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        return 130
    except OSError as exc:
        logger.error(f"Setup failure: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
