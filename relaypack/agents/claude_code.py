"""Claude Code ``--output-format stream-json`` grammar.

Every line is an object with a ``type`` discriminator:

- ``system`` (``subtype: init``) announces the session, model and tools;
- ``assistant`` / ``user`` carry a ``message`` whose ``content`` array holds
  ``text``, ``tool_use`` and ``tool_result`` blocks;
- ``result`` closes the run with the final text, cost and usage;
- ``error`` reports an upstream problem.

Tool calls are two-phase: a ``tool_use`` block in an assistant message is
answered later by a ``tool_result`` block in a user message with the same
id. The session id may be restated on every line; the last one wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from relaypack.agents.base import AgentGrammar
from relaypack.agents.fields import (
    as_count,
    as_int,
    as_list,
    as_mapping,
    as_optional_float,
    as_str,
    encode_json,
)
from relaypack.core.ids import SessionId, ToolCallId
from relaypack.core.models import StreamError, ToolCall, UsageStats
from relaypack.core.records import DecodedRecord
from relaypack.stream.fold import FoldState
from relaypack.stream.sink import StreamSink


@dataclass(frozen=True, slots=True)
class TextContent:
    text: str


@dataclass(frozen=True, slots=True)
class ToolUseContent:
    id: ToolCallId | None
    name: str
    input: dict[str, Any]


@dataclass(frozen=True, slots=True)
class ToolResultContent:
    tool_use_id: ToolCallId | None
    content: str
    is_error: bool = False


@dataclass(frozen=True, slots=True)
class ThinkingContent:
    thinking: str


@dataclass(frozen=True, slots=True)
class UnknownContent:
    type: str
    raw: dict[str, Any]


ContentBlock = Union[
    TextContent,
    ToolUseContent,
    ToolResultContent,
    ThinkingContent,
    UnknownContent,
]


@dataclass(frozen=True, slots=True)
class Message:
    role: str
    content: tuple[ContentBlock, ...] = ()

    def text_content(self) -> list[TextContent]:
        return [block for block in self.content if isinstance(block, TextContent)]

    def tool_uses(self) -> list[ToolUseContent]:
        return [block for block in self.content if isinstance(block, ToolUseContent)]

    def tool_results(self) -> list[ToolResultContent]:
        return [block for block in self.content if isinstance(block, ToolResultContent)]


@dataclass(frozen=True, slots=True, kw_only=True)
class ClaudeEvent:
    type: str | None = None
    session_id: SessionId | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class SystemEvent(ClaudeEvent):
    subtype: str = ""
    model: str = ""
    cwd: str = ""
    tools: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class MessageEvent(ClaudeEvent):
    message: Message


@dataclass(frozen=True, slots=True, kw_only=True)
class ResultEvent(ClaudeEvent):
    subtype: str = ""
    result: str = ""
    is_error: bool = False
    num_turns: int = 0
    duration_ms: int = 0
    total_cost_usd: float | None = None
    usage: UsageStats | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ErrorEvent(ClaudeEvent):
    error: str = ""


@dataclass(frozen=True, slots=True, kw_only=True)
class UnknownEvent(ClaudeEvent):
    raw: DecodedRecord


ClaudeStreamEvent = Union[SystemEvent, MessageEvent, ResultEvent, ErrorEvent, UnknownEvent]


def classify_event(record: DecodedRecord) -> ClaudeStreamEvent:
    event_type = record.get_string("type")
    session_id = SessionId.from_raw(record.get("session_id"))

    if event_type == "system":
        return SystemEvent(
            type=event_type,
            session_id=session_id,
            subtype=as_str(record.get("subtype")),
            model=as_str(record.get("model")),
            cwd=as_str(record.get("cwd")),
            tools=tuple(tool for tool in as_list(record.get("tools")) if isinstance(tool, str)),
        )
    if event_type in ("assistant", "user"):
        return MessageEvent(
            type=event_type,
            session_id=session_id,
            message=_parse_message(record.get_mapping("message"), default_role=event_type),
        )
    if event_type == "result":
        usage_data = record.get("usage")
        return ResultEvent(
            type=event_type,
            session_id=session_id,
            subtype=as_str(record.get("subtype")),
            result=as_str(record.get("result")),
            is_error=record.get("is_error") is True,
            num_turns=as_int(record.get("num_turns")),
            duration_ms=as_int(record.get("duration_ms")),
            total_cost_usd=as_optional_float(record.get("total_cost_usd")),
            usage=_parse_usage(usage_data) if isinstance(usage_data, dict) else None,
        )
    if event_type == "error":
        return ErrorEvent(
            type=event_type,
            session_id=session_id,
            error=_error_message(record.get("error"), record.get("message")),
        )
    return UnknownEvent(type=event_type, session_id=session_id, raw=record)


def fold_event(state: FoldState, event: ClaudeStreamEvent, sink: StreamSink | None) -> None:
    state.restate_session(event.session_id)

    if isinstance(event, MessageEvent):
        _fold_message(state, event.message, sink)
    elif isinstance(event, ResultEvent):
        if event.usage is not None:
            state.replace_usage(event.usage)
        if event.total_cost_usd is not None:
            state.replace_cost(event.total_cost_usd)
        if event.is_error:
            state.report_error(
                StreamError(
                    message=event.result or event.subtype or "result reported an error",
                    code=event.subtype or None,
                ),
                sink,
            )
    elif isinstance(event, ErrorEvent):
        state.report_error(StreamError(message=event.error), sink)


def _fold_message(state: FoldState, message: Message, sink: StreamSink | None) -> None:
    for block in message.content:
        if isinstance(block, TextContent):
            state.append_text(block.text, sink)
        elif isinstance(block, ToolUseContent):
            state.request_tool_call(
                ToolCall(tool=block.name, input=dict(block.input), call_id=block.id)
            )
        elif isinstance(block, ToolResultContent):
            state.settle_tool_call(_settled_call(state, block), sink)


def _settled_call(state: FoldState, result: ToolResultContent) -> ToolCall:
    request = state.pending_tool_call(result.tool_use_id)
    if request is None:
        tool_use_id = str(result.tool_use_id) if result.tool_use_id is not None else None
        return ToolCall(
            tool="tool_result",
            input={"tool_use_id": tool_use_id},
            output=result.content,
            call_id=result.tool_use_id,
            is_error=result.is_error,
        )
    return ToolCall(
        tool=request.tool,
        input=request.input,
        output=result.content,
        call_id=result.tool_use_id,
        is_error=result.is_error,
    )


def _parse_message(data: dict[str, Any], *, default_role: str) -> Message:
    content = data.get("content")
    if isinstance(content, str):
        blocks: tuple[ContentBlock, ...] = (TextContent(content),)
    else:
        blocks = tuple(
            _parse_block(block) for block in as_list(content) if isinstance(block, dict)
        )
    return Message(role=as_str(data.get("role"), default_role), content=blocks)


def _parse_block(block: dict[str, Any]) -> ContentBlock:
    block_type = as_str(block.get("type"))
    if block_type == "text":
        return TextContent(as_str(block.get("text")))
    if block_type == "tool_use":
        return ToolUseContent(
            id=ToolCallId.from_raw(block.get("id")),
            name=as_str(block.get("name")),
            input=as_mapping(block.get("input")),
        )
    if block_type == "tool_result":
        return ToolResultContent(
            tool_use_id=ToolCallId.from_raw(block.get("tool_use_id")),
            content=_tool_result_text(block.get("content")),
            is_error=block.get("is_error") is True,
        )
    if block_type == "thinking":
        return ThinkingContent(as_str(block.get("thinking")))
    return UnknownContent(type=block_type, raw=block)


def _tool_result_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = [
            item["text"]
            for item in content
            if isinstance(item, dict) and item.get("type") == "text" and isinstance(item.get("text"), str)
        ]
        if texts:
            return "\n".join(texts)
    return encode_json(content)


def _parse_usage(data: dict[str, Any]) -> UsageStats:
    return UsageStats(
        input=as_count(data.get("input_tokens")),
        output=as_count(data.get("output_tokens")),
        cache_read=as_count(data.get("cache_read_input_tokens")),
        cache_write=as_count(data.get("cache_creation_input_tokens")),
    )


def _error_message(error: Any, message: Any) -> str:
    if isinstance(error, str):
        return error
    if isinstance(error, dict):
        nested = error.get("message")
        if isinstance(nested, str):
            return nested
    return as_str(message)


class ClaudeCodeGrammar(AgentGrammar):
    """Grammar for the Claude Code CLI."""

    name = "claude-code"
    binary = "claude"
    label = "Claude Code CLI"
    install_hint = "Install Claude Code CLI and ensure `claude` is available in PATH."

    def classify(self, record: DecodedRecord) -> ClaudeStreamEvent:
        return classify_event(record)

    def fold_step(self, state: FoldState, event: Any, sink: StreamSink | None) -> None:
        fold_event(state, event, sink)
