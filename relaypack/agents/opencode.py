"""OpenCode ``run --format json`` grammar.

Every line carries ``type``, ``timestamp``, ``sessionID`` and a nested
``part``. A run is a sequence of steps; ``step_finish`` closes each one with
its own token counters and cost, so usage and cost are summed over steps.
``tool_use`` reports a call together with its state; a call settles once
``part.state.status`` is ``completed`` or ``error``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from relaypack.agents.base import AgentGrammar
from relaypack.agents.fields import (
    as_count,
    as_float,
    as_int,
    as_mapping,
    as_optional_int,
    as_optional_str,
    as_str,
    stringify_output,
)
from relaypack.core.ids import MessageId, SessionId, ToolCallId
from relaypack.core.models import StreamError, ToolCall, UsageStats
from relaypack.core.records import DecodedRecord
from relaypack.stream.fold import FoldState
from relaypack.stream.sink import StreamSink

_SETTLED_STATUSES = {"completed", "error"}


@dataclass(frozen=True, slots=True, kw_only=True)
class OpenCodeEvent:
    type: str | None = None
    session_id: SessionId | None = None
    timestamp: int = 0


@dataclass(frozen=True, slots=True, kw_only=True)
class StepStartEvent(OpenCodeEvent):
    message_id: MessageId | None = None
    snapshot: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class TextEvent(OpenCodeEvent):
    message_id: MessageId | None = None
    text: str = ""
    start_time: int | None = None
    end_time: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ToolUseEvent(OpenCodeEvent):
    message_id: MessageId | None = None
    call_id: ToolCallId | None = None
    tool: str = ""
    status: str = "unknown"
    input: dict[str, Any] = field(default_factory=dict)
    output: Any = None
    title: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    @property
    def is_settled(self) -> bool:
        return self.status in _SETTLED_STATUSES

    def to_tool_call(self) -> ToolCall:
        return ToolCall(
            tool=self.tool,
            input=dict(self.input),
            output=stringify_output(self.output) if self.is_settled else None,
            call_id=self.call_id,
            is_error=self.is_error,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class StepFinishEvent(OpenCodeEvent):
    message_id: MessageId | None = None
    reason: str = "unknown"
    snapshot: str = ""
    cost: float = 0.0
    tokens: UsageStats | None = None

    @property
    def is_final(self) -> bool:
        return self.reason == "stop"

    @property
    def has_more_steps(self) -> bool:
        return self.reason == "tool-calls"


@dataclass(frozen=True, slots=True, kw_only=True)
class ErrorEvent(OpenCodeEvent):
    message: str = ""
    code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True, kw_only=True)
class UnknownEvent(OpenCodeEvent):
    raw: DecodedRecord


OpenCodeStreamEvent = Union[
    StepStartEvent,
    TextEvent,
    ToolUseEvent,
    StepFinishEvent,
    ErrorEvent,
    UnknownEvent,
]


def classify_event(record: DecodedRecord) -> OpenCodeStreamEvent:
    event_type = record.get_string("type", "unknown")
    common = {
        "type": event_type,
        "session_id": SessionId.from_raw(record.get("sessionID")),
        "timestamp": as_int(record.get("timestamp")),
    }
    part = record.get_mapping("part")
    message_id = MessageId.from_raw(part.get("messageID"))

    if event_type == "step_start":
        return StepStartEvent(
            message_id=message_id,
            snapshot=as_str(part.get("snapshot")),
            **common,
        )
    if event_type == "text":
        time = as_mapping(part.get("time"))
        return TextEvent(
            message_id=message_id,
            text=as_str(part.get("text")),
            start_time=as_optional_int(time.get("start")),
            end_time=as_optional_int(time.get("end")),
            **common,
        )
    if event_type == "tool_use":
        state = as_mapping(part.get("state"))
        return ToolUseEvent(
            message_id=message_id,
            call_id=ToolCallId.from_raw(part.get("callID")),
            tool=as_str(part.get("tool")),
            status=as_str(state.get("status"), "unknown"),
            input=as_mapping(state.get("input")),
            output=state.get("output"),
            title=as_optional_str(state.get("title")),
            **common,
        )
    if event_type == "step_finish":
        tokens = part.get("tokens")
        return StepFinishEvent(
            message_id=message_id,
            reason=as_str(part.get("reason"), "unknown"),
            snapshot=as_str(part.get("snapshot")),
            cost=as_float(part.get("cost")),
            tokens=_parse_tokens(tokens) if isinstance(tokens, dict) else None,
            **common,
        )
    if event_type == "error":
        error = part.get("error", record.get("error"))
        message, code = _error_fields(error)
        return ErrorEvent(
            message=message or as_str(record.get("message")),
            code=code,
            details=record.data(),
            **common,
        )
    return UnknownEvent(raw=record, **common)


def fold_event(state: FoldState, event: OpenCodeStreamEvent, sink: StreamSink | None) -> None:
    state.assign_session_once(event.session_id)

    if isinstance(event, TextEvent):
        state.append_text(event.text, sink)
    elif isinstance(event, ToolUseEvent):
        tool_call = event.to_tool_call()
        if event.is_settled:
            state.settle_tool_call(tool_call, sink)
        else:
            state.request_tool_call(tool_call)
    elif isinstance(event, StepFinishEvent):
        if event.tokens is not None:
            state.add_usage(event.tokens)
        state.add_cost(event.cost)
    elif isinstance(event, ErrorEvent):
        state.report_error(
            StreamError(message=event.message, code=event.code, details=event.details),
            sink,
        )


def _parse_tokens(data: dict[str, Any]) -> UsageStats:
    cache = as_mapping(data.get("cache"))
    return UsageStats(
        input=as_count(data.get("input")),
        output=as_count(data.get("output")),
        reasoning=as_count(data.get("reasoning")),
        cache_read=as_count(cache.get("read")),
        cache_write=as_count(cache.get("write")),
    )


def _error_fields(error: Any) -> tuple[str, str | None]:
    if isinstance(error, str):
        return error, None
    if not isinstance(error, dict):
        return "", None
    message = error.get("message")
    if not isinstance(message, str):
        message = as_mapping(error.get("data")).get("message")
    code = error.get("code", error.get("name"))
    return as_str(message), code if isinstance(code, str) else None


class OpenCodeGrammar(AgentGrammar):
    """Grammar for the OpenCode CLI."""

    name = "opencode"
    binary = "opencode"
    label = "OpenCode CLI"
    install_hint = (
        "Install via `npm install -g opencode` (or `curl -fsSL https://get.opencode.dev | bash`) "
        "and ensure `opencode` is available in PATH."
    )

    def classify(self, record: DecodedRecord) -> OpenCodeStreamEvent:
        return classify_event(record)

    def fold_step(self, state: FoldState, event: Any, sink: StreamSink | None) -> None:
        fold_event(state, event, sink)
