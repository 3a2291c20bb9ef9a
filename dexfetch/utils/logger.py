"""
Script contains logging setup for dexfetch
"""

import contextlib
import logging
import sys
from pathlib import Path

CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ERROR_FILE_FORMAT = "%(asctime)s ERROR: %(message)s"
ACTIVITY_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose=False):
    """Console logging: INFO (DEBUG with *verbose*) to stdout, errors to stderr."""
    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger()
    root.setLevel(level)

    out_handler = logging.StreamHandler(sys.stdout)
    out_handler.setLevel(level)
    out_handler.addFilter(lambda record: record.levelno < logging.ERROR)
    out_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))

    err_handler = logging.StreamHandler(sys.stderr)
    err_handler.setLevel(logging.ERROR)
    err_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))

    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(out_handler)
    root.addHandler(err_handler)


@contextlib.contextmanager
def run_logs(error_log, activity_log=None):
    """Attach the per-run error log (and activity log) to the root logger.

    Both files are truncated when the run starts and only ever appended to
    while it lasts.
    """
    root = logging.getLogger()
    handlers = []

    error_path = Path(error_log)
    error_path.parent.mkdir(parents=True, exist_ok=True)
    error_handler = logging.FileHandler(error_path, mode="w", encoding="utf-8")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(ERROR_FILE_FORMAT, datefmt=DATE_FORMAT))
    handlers.append(error_handler)

    if activity_log is not None:
        activity_handler = logging.FileHandler(Path(activity_log), mode="w", encoding="utf-8")
        activity_handler.setLevel(logging.INFO)
        activity_handler.setFormatter(
            logging.Formatter(ACTIVITY_FILE_FORMAT, datefmt=DATE_FORMAT)
        )
        handlers.append(activity_handler)

    previous_level = root.level
    if root.level > logging.INFO:
        root.setLevel(logging.INFO)
    for handler in handlers:
        root.addHandler(handler)
    try:
        yield error_path
    finally:
        for handler in handlers:
            root.removeHandler(handler)
            handler.close()
        root.setLevel(previous_level)
