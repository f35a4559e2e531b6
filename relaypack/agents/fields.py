"""Lenient field extraction helpers for agent event records.

Agents add, drop and retype fields between releases, so every accessor
returns a documented default instead of failing.
"""

from __future__ import annotations

import json
from typing import Any


def as_str(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    return default


def as_optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return default


def as_optional_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def as_count(value: Any) -> int:
    """Token counters are clamped to non-negative ints."""
    return max(0, as_int(value))


def as_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    return default


def as_optional_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def as_mapping(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}


def as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    return []


def encode_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def encode_json_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return encode_json(value)


def stringify_output(value: Any) -> str:
    """Strings pass through verbatim; anything else is JSON-encoded."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return encode_json(value)
