"""
Row helpers for JSON-encoded list columns and portable booleans.
"""

import json
from typing import Any, Iterable, Optional


def dump_list(values: Optional[Iterable[Any]]) -> str:
    return json.dumps(list(values or []))


def load_list(value: Any) -> list:
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return json.loads(value)


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value)


def load_json(value: Any) -> Any:
    if value is None or value == "":
        return None
    if isinstance(value, (dict, list)):
        return value
    return json.loads(value)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards. Queries using it declare ESCAPE '\\'."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_pattern(value: str) -> str:
    """Case-insensitive substring pattern for LOWER(column) LIKE ... ESCAPE '\\'."""
    return f"%{escape_like(value.strip().lower())}%"


def tag_pattern(tag: str) -> str:
    """LIKE pattern matching one element of a JSON-encoded list column."""
    return f"%{escape_like(json.dumps(tag.strip().lower()))}%"
