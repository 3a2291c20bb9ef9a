"""
PokeAPI response validation.

A ``/pokemon/<name>`` response is accepted only when it is a JSON object
carrying ``name``, ``id``, ``types``, ``height`` and ``weight`` with the
expected shapes, and when ``name`` equals the identifier that was asked
for.  PokeAPI resolves some aliases to a different canonical record, so the
identity check is not redundant.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from dexfetch.configs.constants import Constants
from dexfetch.errors import (
    FetchError,
    IdentityMismatchError,
    MalformedResponseError,
    MissingFieldsError,
)
from dexfetch.models import Record

logger = logging.getLogger(__name__)

ITEM_PATTERN = re.compile(r"^[a-z0-9-]+$")


def is_valid_item(item: str) -> bool:
    """True for lowercase alphanumeric + hyphen identifiers."""
    return bool(ITEM_PATTERN.match(item))


def _is_count(value: Any) -> bool:
    # bool is an int subclass; PokeAPI never sends one for these fields
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _types_ok(value: Any) -> bool:
    if not isinstance(value, list) or not value:
        return False
    for entry in value:
        name = (entry.get("type") or {}).get("name") if isinstance(entry, dict) else None
        if not isinstance(name, str) or not name:
            return False
    return True


def _invalid_fields(payload: dict[str, Any]) -> list[str]:
    checks = {
        "name": lambda v: isinstance(v, str) and bool(v),
        "id": _is_count,
        "types": _types_ok,
        "height": _is_count,
        "weight": _is_count,
    }
    return [
        key
        for key in Constants.REQUIRED_FIELDS
        if key not in payload or not checks[key](payload[key])
    ]


def validate_response(path: Path, item: str) -> Record:
    """
    Parse and validate the body at *path* for the requested *item*.

    Raises
    ------
    MalformedResponseError
        Body is not a JSON object.
    MissingFieldsError
        A required field is absent or has the wrong shape.
    IdentityMismatchError
        The record's ``name`` differs from *item*.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            payload = json.load(fh)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedResponseError(item, f"Invalid JSON received for {item}: {exc}") from exc

    if not isinstance(payload, dict):
        raise MalformedResponseError(
            item, f"Invalid JSON received for {item}: expected an object"
        )

    missing = _invalid_fields(payload)
    if missing:
        raise MissingFieldsError(item, missing)

    if payload["name"] != item:
        raise IdentityMismatchError(item, payload["name"])

    return Record.from_payload(payload)


def validate_output(path: Path, item: str) -> Optional[Record]:
    """
    Non-raising form of :func:`validate_response` for files already on disk.

    Returns ``None`` when the file is missing or fails validation, so callers
    can treat ``None`` as "not yet fetched".
    """
    if not path.is_file():
        return None
    try:
        return validate_response(path, item)
    except FetchError as exc:
        logger.debug(f"{path} does not validate: {exc}")
        return None
    except OSError as exc:
        logger.warning(f"Unreadable output at {path}: {exc}")
        return None
