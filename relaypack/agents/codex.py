"""Codex ``exec --json`` grammar.

Codex reports a thread, then turns made of items. Items are announced with
``item.started``/``item.updated`` and settle with ``item.completed``; only
completed items are turned into text or tool calls, so every Codex tool call
is reported once, already finished.

Example lines::

    {"type":"thread.started","thread_id":"0199a213-81c0-7800-8aa1-bbab2a035a53"}
    {"type":"item.completed","item":{"id":"item_1","type":"agent_message","text":"hi"}}
    {"type":"turn.completed","usage":{"input_tokens":10,"cached_input_tokens":2,"output_tokens":3}}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from relaypack.agents.base import AgentGrammar
from relaypack.agents.fields import (
    as_count,
    as_list,
    as_mapping,
    as_optional_int,
    as_str,
    encode_json_or_none,
)
from relaypack.core.ids import SessionId, ThreadId, ToolCallId
from relaypack.core.models import StreamError, ToolCall, UsageStats
from relaypack.core.records import DecodedRecord
from relaypack.stream.fold import FoldState
from relaypack.stream.sink import StreamSink

_ERROR_STATUSES = {"error", "failed", "cancelled", "canceled"}


@dataclass(frozen=True, slots=True, kw_only=True)
class Item:
    id: ToolCallId | None = None
    status: str = ""

    @property
    def is_status_error(self) -> bool:
        return self.status.lower() in _ERROR_STATUSES


@dataclass(frozen=True, slots=True, kw_only=True)
class AgentMessage(Item):
    text: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class Reasoning(Item):
    text: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class CommandExecution(Item):
    command: str = ""
    output: str | None = None
    exit_code: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class FileChange(Item):
    path: str = ""
    action: str = ""
    diff: str | None = None
    content: str | None = None
    changes: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class McpToolCall(Item):
    server: str = ""
    tool: str = ""
    arguments: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: Any = None

    @property
    def has_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True, slots=True, kw_only=True)
class WebSearch(Item):
    query: str = ""
    results: Any = None


@dataclass(frozen=True, slots=True, kw_only=True)
class PlanUpdate(Item):
    plan: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class TodoList(Item):
    items: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class UnknownItem(Item):
    item_type: str = "unknown"
    raw: dict[str, Any] = field(default_factory=dict)


CodexItem = Union[
    AgentMessage,
    Reasoning,
    CommandExecution,
    FileChange,
    McpToolCall,
    WebSearch,
    PlanUpdate,
    TodoList,
    UnknownItem,
]


@dataclass(frozen=True, slots=True, kw_only=True)
class CodexEvent:
    type: str | None = None
    thread_id: ThreadId | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ThreadStartedEvent(CodexEvent):
    pass


@dataclass(frozen=True, slots=True, kw_only=True)
class TurnStartedEvent(CodexEvent):
    pass


@dataclass(frozen=True, slots=True, kw_only=True)
class TurnCompletedEvent(CodexEvent):
    usage: UsageStats | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class TurnFailedEvent(CodexEvent):
    message: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class ItemStartedEvent(CodexEvent):
    item: CodexItem


@dataclass(frozen=True, slots=True, kw_only=True)
class ItemUpdatedEvent(CodexEvent):
    item: CodexItem


@dataclass(frozen=True, slots=True, kw_only=True)
class ItemCompletedEvent(CodexEvent):
    item: CodexItem


@dataclass(frozen=True, slots=True, kw_only=True)
class ErrorEvent(CodexEvent):
    message: str = ""
    code: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class UnknownEvent(CodexEvent):
    raw: DecodedRecord


CodexStreamEvent = Union[
    ThreadStartedEvent,
    TurnStartedEvent,
    TurnCompletedEvent,
    TurnFailedEvent,
    ItemStartedEvent,
    ItemUpdatedEvent,
    ItemCompletedEvent,
    ErrorEvent,
    UnknownEvent,
]

_ITEM_EVENTS = {
    "item.started": ItemStartedEvent,
    "item.updated": ItemUpdatedEvent,
    "item.completed": ItemCompletedEvent,
}


def classify_event(record: DecodedRecord) -> CodexStreamEvent:
    event_type = record.get_string("type")
    thread_id = ThreadId.from_raw(record.get("thread_id"))

    if event_type == "thread.started":
        return ThreadStartedEvent(type=event_type, thread_id=thread_id)
    if event_type == "turn.started":
        return TurnStartedEvent(type=event_type, thread_id=thread_id)
    if event_type == "turn.completed":
        usage = record.get("usage")
        return TurnCompletedEvent(
            type=event_type,
            thread_id=thread_id,
            usage=_parse_usage(usage) if isinstance(usage, dict) else None,
        )
    if event_type == "turn.failed":
        return TurnFailedEvent(
            type=event_type,
            thread_id=thread_id,
            message=as_str(record.get_mapping("error").get("message")),
        )
    if event_type in _ITEM_EVENTS:
        return _ITEM_EVENTS[event_type](
            type=event_type,
            thread_id=thread_id,
            item=parse_item(record.get_mapping("item")),
        )
    if event_type == "error":
        code = record.get("code")
        return ErrorEvent(
            type=event_type,
            thread_id=thread_id,
            message=as_str(record.get("message")),
            code=code if isinstance(code, str) else None,
        )
    return UnknownEvent(type=event_type, thread_id=thread_id, raw=record)


def parse_item(data: dict[str, Any]) -> CodexItem:
    item_type = as_str(data.get("type"), as_str(data.get("item_type"), "unknown"))
    common = {
        "id": ToolCallId.from_raw(data.get("id")),
        "status": as_str(data.get("status")),
    }

    if item_type == "agent_message":
        return AgentMessage(text=as_str(data.get("text")), **common)
    if item_type == "reasoning":
        return Reasoning(text=as_str(data.get("text")), **common)
    if item_type == "command_execution":
        output = data.get("aggregated_output", data.get("output"))
        return CommandExecution(
            command=as_str(data.get("command")),
            output=output if isinstance(output, str) else None,
            exit_code=as_optional_int(data.get("exit_code")),
            **common,
        )
    if item_type == "file_change":
        diff = data.get("diff")
        content = data.get("content")
        return FileChange(
            path=as_str(data.get("path")),
            action=as_str(data.get("action")),
            diff=diff if isinstance(diff, str) else None,
            content=content if isinstance(content, str) else None,
            changes=tuple(change for change in as_list(data.get("changes")) if isinstance(change, dict)),
            **common,
        )
    if item_type == "mcp_tool_call":
        return McpToolCall(
            server=as_str(data.get("server")),
            tool=as_str(data.get("tool")),
            arguments=as_mapping(data.get("arguments")),
            result=data.get("result"),
            error=data.get("error"),
            **common,
        )
    if item_type == "web_search":
        return WebSearch(query=as_str(data.get("query")), results=data.get("results"), **common)
    if item_type == "plan_update":
        return PlanUpdate(plan=as_str(data.get("plan")), **common)
    if item_type == "todo_list":
        return TodoList(
            items=tuple(entry for entry in as_list(data.get("items")) if isinstance(entry, dict)),
            **common,
        )
    return UnknownItem(item_type=item_type, raw=dict(data), **common)


def tool_call_from_item(item: CodexItem) -> ToolCall | None:
    """Unified tool call for a completed item; agent messages are text, not tools."""
    if isinstance(item, McpToolCall):
        return ToolCall(
            tool=item.tool,
            input=dict(item.arguments),
            output=encode_json_or_none(item.result),
            call_id=item.id,
            is_error=item.has_error or item.is_status_error,
        )
    if isinstance(item, CommandExecution):
        return ToolCall(
            tool="bash",
            input={"command": item.command},
            output=item.output,
            call_id=item.id,
            is_error=item.exit_code not in (None, 0) or item.is_status_error,
        )
    if isinstance(item, FileChange):
        tool_input: dict[str, Any] = {"path": item.path, "action": item.action}
        if item.changes:
            tool_input["changes"] = list(item.changes)
        return ToolCall(
            tool="file_change",
            input=tool_input,
            output=item.diff if item.diff is not None else item.content,
            call_id=item.id,
            is_error=item.is_status_error,
        )
    if isinstance(item, WebSearch):
        return ToolCall(
            tool="web_search",
            input={"query": item.query},
            output=encode_json_or_none(item.results),
            call_id=item.id,
            is_error=item.is_status_error,
        )
    if isinstance(item, PlanUpdate):
        return ToolCall(
            tool="plan_update",
            input={},
            output=item.plan,
            call_id=item.id,
            is_error=item.is_status_error,
        )
    if isinstance(item, TodoList):
        return ToolCall(
            tool="todo_list",
            input={},
            output=encode_json_or_none(list(item.items)),
            call_id=item.id,
            is_error=item.is_status_error,
        )
    if isinstance(item, Reasoning):
        return ToolCall(
            tool="reasoning",
            input={},
            output=item.text,
            call_id=item.id,
            is_error=item.is_status_error,
        )
    if isinstance(item, UnknownItem):
        return ToolCall(
            tool=item.item_type,
            input={},
            output=encode_json_or_none(item.raw),
            call_id=item.id,
            is_error=item.is_status_error,
        )
    return None


def fold_event(state: FoldState, event: CodexStreamEvent, sink: StreamSink | None) -> None:
    if isinstance(event, ThreadStartedEvent):
        if event.thread_id is not None:
            state.restate_session(SessionId(str(event.thread_id)))
    elif isinstance(event, ItemCompletedEvent):
        item = event.item
        if isinstance(item, AgentMessage):
            state.append_text(item.text, sink)
        tool_call = tool_call_from_item(item)
        if tool_call is not None:
            state.settle_tool_call(tool_call, sink)
    elif isinstance(event, TurnCompletedEvent):
        if event.usage is not None:
            state.replace_usage(event.usage)
    elif isinstance(event, TurnFailedEvent):
        state.report_error(StreamError(message=event.message, code="turn.failed"), sink)
    elif isinstance(event, ErrorEvent):
        state.report_error(StreamError(message=event.message, code=event.code), sink)


def _parse_usage(data: dict[str, Any]) -> UsageStats:
    return UsageStats(
        input=as_count(data.get("input_tokens")),
        output=as_count(data.get("output_tokens")),
        reasoning=as_count(data.get("reasoning_output_tokens")),
        cache_read=as_count(data.get("cached_input_tokens")),
    )


class CodexGrammar(AgentGrammar):
    """Grammar for the Codex CLI."""

    name = "codex"
    binary = "codex"
    label = "Codex CLI"
    install_hint = "Install via `npm install -g @openai/codex` and ensure `codex` is available in PATH."

    def classify(self, record: DecodedRecord) -> CodexStreamEvent:
        return classify_event(record)

    def fold_step(self, state: FoldState, event: Any, sink: StreamSink | None) -> None:
        fold_event(state, event, sink)
