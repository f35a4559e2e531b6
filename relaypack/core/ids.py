"""Opaque identifier value types.

Identifiers reported by agents (sessions, threads, tool calls, messages) are
wrapped so they cannot be mixed up with each other or with free-form text.
An identifier always holds a non-empty string; use ``from_raw`` to turn an
optional upstream value into an identifier or ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

_IdT = TypeVar("_IdT", bound="OpaqueId")


@dataclass(frozen=True, slots=True)
class OpaqueId:
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or self.value == "":
            raise ValueError(f"{type(self).__name__} requires a non-empty string.")

    @classmethod
    def from_raw(cls: type[_IdT], raw: Any) -> _IdT | None:
        """Build an identifier from an upstream value; empty or non-string is absent."""
        if isinstance(raw, OpaqueId):
            raw = raw.value
        if not isinstance(raw, str) or raw == "":
            return None
        return cls(raw)

    def __str__(self) -> str:
        return self.value


class SessionId(OpaqueId):
    """Session identifier exposed on a unified response."""

    __slots__ = ()


class ToolCallId(OpaqueId):
    """Correlation identifier of a tool invocation."""

    __slots__ = ()


class ThreadId(OpaqueId):
    """Codex thread identifier."""

    __slots__ = ()


class MessageId(OpaqueId):
    """OpenCode message identifier."""

    __slots__ = ()
