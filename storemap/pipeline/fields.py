"""Read scalar text out of table cells whose shape varies by column type.

Cells arrive as plain strings, numbers, multi-select lists, rich-text fragment
lists (``[{"type": "text", "text": "..."}]``) or labelled objects such as person
cells (``{"name": "...", "id": "..."}``). Every shape collapses to a string and
the empty string means "absent".
"""

from __future__ import annotations

import math
from typing import Any


def _number_text(value: int | float) -> str:
    if isinstance(value, float):
        if not math.isfinite(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def _labelled_text(value: dict) -> str:
    for key in ("name", "text"):
        candidate = value.get(key)
        if isinstance(candidate, str):
            return candidate
    return ""


def _fragment_text(fragment: Any) -> str:
    if fragment is None or isinstance(fragment, bool):
        return ""
    if isinstance(fragment, dict):
        text = fragment.get("text")
        if isinstance(text, str):
            return text
        return _labelled_text(fragment)
    if isinstance(fragment, (int, float)):
        return _number_text(fragment)
    return str(fragment)


def read_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return _number_text(value)
    if isinstance(value, (list, tuple)):
        texts = [_fragment_text(fragment) for fragment in value]
        return " ".join(text for text in texts if text)
    if isinstance(value, dict):
        return _labelled_text(value)
    return ""


def read_first_text(fields: dict[str, Any], candidates: list[str]) -> str:
    """First non-empty text among candidate column names, in candidate order."""
    for key in candidates:
        if key in fields:
            text = read_text(fields[key])
            if text:
                return text
    return ""
