"""Schema-less decoded JSON records."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
import copy
from typing import Any


class DecodedRecord(Mapping[str, Any]):
    """Read-only view of one decoded JSON object, in original key order."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any]) -> None:
        self._data = dict(data)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DecodedRecord):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"DecodedRecord({self._data!r})"

    def data(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def has(self, key: str) -> bool:
        return key in self._data

    def get_string(self, key: str, default: str | None = None) -> str | None:
        value = self._data.get(key, default)
        if isinstance(value, str):
            return value
        return default

    def get_non_empty_string(self, key: str) -> str | None:
        value = self.get_string(key)
        if not value:
            return None
        return value

    def get_mapping(self, key: str) -> dict[str, Any]:
        value = self._data.get(key)
        if isinstance(value, dict):
            return copy.deepcopy(value)
        return {}
