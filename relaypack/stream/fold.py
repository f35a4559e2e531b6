"""Incremental folding of classified events into running accumulators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from relaypack.core.ids import SessionId
from relaypack.core.models import StreamError, ToolCall, UsageStats
from relaypack.stream.sink import StreamSink

FoldStep = Callable[["FoldState", Any, "StreamSink | None"], None]


@dataclass(slots=True)
class FoldState:
    """Accumulators for one fold over one execution's events.

    A state instance belongs to a single call stack; the live path and the
    authoritative parse each build their own.
    """

    text_parts: list[str] = field(default_factory=list)
    tool_calls: list[ToolCall] = field(default_factory=list)
    pending_calls: dict[str, int] = field(default_factory=dict)
    session_id: SessionId | None = None
    usage: UsageStats | None = None
    cost: float | None = None
    errors: list[StreamError] = field(default_factory=list)
    event_count: int = 0

    @property
    def text(self) -> str:
        return "".join(self.text_parts)

    def append_text(self, fragment: str, sink: StreamSink | None) -> None:
        if not fragment:
            return
        self.text_parts.append(fragment)
        if sink is not None:
            sink.on_text(fragment)

    def pending_tool_call(self, call_id: Any) -> ToolCall | None:
        if call_id is None:
            return None
        index = self.pending_calls.get(str(call_id))
        if index is None:
            return None
        return self.tool_calls[index]

    def request_tool_call(self, tool_call: ToolCall) -> None:
        """Record an unsettled call; the sink only hears about it once settled."""
        if tool_call.call_id is not None:
            key = str(tool_call.call_id)
            index = self.pending_calls.get(key)
            if index is not None:
                self.tool_calls[index] = tool_call
                return
            self.pending_calls[key] = len(self.tool_calls)
        self.tool_calls.append(tool_call)

    def settle_tool_call(self, tool_call: ToolCall, sink: StreamSink | None) -> None:
        """Record a finished call, replacing its pending placeholder in place."""
        index = None
        if tool_call.call_id is not None:
            index = self.pending_calls.pop(str(tool_call.call_id), None)
        if index is None:
            self.tool_calls.append(tool_call)
        else:
            self.tool_calls[index] = tool_call
        if sink is not None:
            sink.on_tool_use(tool_call)

    def report_error(self, error: StreamError, sink: StreamSink | None) -> None:
        self.errors.append(error)
        if sink is not None:
            sink.on_error(error)

    def assign_session_once(self, session_id: SessionId | None) -> None:
        if self.session_id is None and session_id is not None:
            self.session_id = session_id

    def restate_session(self, session_id: SessionId | None) -> None:
        if session_id is not None:
            self.session_id = session_id

    def add_usage(self, usage: UsageStats) -> None:
        self.usage = usage if self.usage is None else self.usage.merged(usage)

    def replace_usage(self, usage: UsageStats) -> None:
        self.usage = usage

    def add_cost(self, delta: float) -> None:
        if delta <= 0:
            return
        self.cost = delta if self.cost is None else self.cost + delta

    def replace_cost(self, total: float) -> None:
        self.cost = total


def fold(
    events: Iterable[Any],
    step: FoldStep,
    sink: StreamSink | None = None,
    state: FoldState | None = None,
) -> FoldState:
    """Apply ``step`` to each event in arrival order."""
    current = state if state is not None else FoldState()
    for event in events:
        current.event_count += 1
        step(current, event, sink)
    return current
