"""Calendar-date normalisation for loosely typed date cells."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any

from dateutil import parser as date_parser

EPOCH_MILLIS_THRESHOLD = 100_000_000_000
_INTEGER_RE = re.compile(r"^[+-]?\d+$")


def _from_epoch(value: int) -> str | None:
    seconds = value if abs(value) < EPOCH_MILLIS_THRESHOLD else value / 1000
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).date().isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def _as_integer(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None
    if isinstance(value, str) and _INTEGER_RE.match(value.strip()):
        return int(value.strip())
    return None


def normalize_date(value: Any) -> str | None:
    """Return ``YYYY-MM-DD`` (UTC) for an epoch or date-like value, else ``None``."""
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        value = value[0]
    if value is None or value == "":
        return None

    integer = _as_integer(value)
    if integer is not None:
        return _from_epoch(integer)

    if not isinstance(value, str):
        return None
    try:
        parsed = date_parser.parse(value.strip())
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()
