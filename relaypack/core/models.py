"""Unified response models shared by every agent grammar."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from relaypack.core.ids import SessionId, ToolCallId
from relaypack.core.records import DecodedRecord
from relaypack.core.types import AGENT_KINDS

MAX_PARSE_FAILURE_SAMPLES = 3


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A tool invocation reported by an agent.

    ``output is None`` means the call has not settled yet, except for agents
    that only report finished calls; there it means the call produced no
    result payload.
    """

    tool: str
    input: dict[str, Any] = field(default_factory=dict)
    output: str | None = None
    call_id: ToolCallId | None = None
    is_error: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.call_id, ToolCallId):
            object.__setattr__(self, "call_id", ToolCallId.from_raw(self.call_id))

    @property
    def is_completed(self) -> bool:
        return self.output is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "input": self.input,
            "output": self.output,
            "call_id": str(self.call_id) if self.call_id is not None else None,
            "is_error": self.is_error,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ToolCall":
        return cls(
            tool=raw["tool"],
            input=dict(raw.get("input", {})),
            output=raw.get("output"),
            call_id=raw.get("call_id"),
            is_error=bool(raw.get("is_error", False)),
        )


@dataclass(frozen=True, slots=True)
class StreamError:
    """An error the agent reported in its own event stream."""

    message: str
    code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}


@dataclass(frozen=True, slots=True)
class UsageStats:
    """Token usage counters."""

    input: int = 0
    output: int = 0
    reasoning: int = 0
    cache_read: int = 0
    cache_write: int = 0

    def __post_init__(self) -> None:
        for name in ("input", "output", "reasoning", "cache_read", "cache_write"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"UsageStats.{name} must be a non-negative int, got {value!r}")

    @property
    def total(self) -> int:
        return self.input + self.output + self.reasoning

    def merged(self, other: "UsageStats") -> "UsageStats":
        """Return the field-wise sum of two usage records."""
        return UsageStats(
            input=self.input + other.input,
            output=self.output + other.output,
            reasoning=self.reasoning + other.reasoning,
            cache_read=self.cache_read + other.cache_read,
            cache_write=self.cache_write + other.cache_write,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "input": self.input,
            "output": self.output,
            "reasoning": self.reasoning,
            "cache_read": self.cache_read,
            "cache_write": self.cache_write,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "UsageStats":
        return cls(
            input=int(raw.get("input", 0)),
            output=int(raw.get("output", 0)),
            reasoning=int(raw.get("reasoning", 0)),
            cache_read=int(raw.get("cache_read", 0)),
            cache_write=int(raw.get("cache_write", 0)),
        )


@dataclass(frozen=True, slots=True)
class Response:
    """Normalized result of one agent execution."""

    agent_kind: str
    text: str
    exit_code: int
    session_id: SessionId | None = None
    usage: UsageStats | None = None
    cost: float | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    decoded: tuple[DecodedRecord, ...] = ()
    parse_failure_count: int = 0
    parse_failure_samples: tuple[str, ...] = ()
    errors: tuple[StreamError, ...] = ()

    def __post_init__(self) -> None:
        if self.agent_kind not in AGENT_KINDS:
            raise ValueError(f"Unsupported agent kind: {self.agent_kind}")
        if not isinstance(self.session_id, SessionId):
            object.__setattr__(self, "session_id", SessionId.from_raw(self.session_id))
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls))
        object.__setattr__(self, "decoded", tuple(self.decoded))
        object.__setattr__(
            self,
            "parse_failure_samples",
            tuple(self.parse_failure_samples)[:MAX_PARSE_FAILURE_SAMPLES],
        )
        object.__setattr__(self, "errors", tuple(self.errors))

    @property
    def is_success(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_kind": self.agent_kind,
            "text": self.text,
            "exit_code": self.exit_code,
            "session_id": str(self.session_id) if self.session_id is not None else None,
            "usage": self.usage.to_dict() if self.usage is not None else None,
            "cost": self.cost,
            "tool_calls": [tool_call.to_dict() for tool_call in self.tool_calls],
            "decoded": [record.data() for record in self.decoded],
            "parse_failure_count": self.parse_failure_count,
            "parse_failure_samples": list(self.parse_failure_samples),
            "errors": [error.to_dict() for error in self.errors],
        }
