"""Core models and identifiers for RelayKit."""

from relaypack.core.ids import MessageId, OpaqueId, SessionId, ThreadId, ToolCallId
from relaypack.core.models import (
    MAX_PARSE_FAILURE_SAMPLES,
    Response,
    StreamError,
    ToolCall,
    UsageStats,
)
from relaypack.core.records import DecodedRecord
from relaypack.core.types import AGENT_KINDS, OUTPUT_FORMATS, AgentKind, OutputFormat, StreamTag

__all__ = [
    "AGENT_KINDS",
    "OUTPUT_FORMATS",
    "AgentKind",
    "OutputFormat",
    "StreamTag",
    "DecodedRecord",
    "OpaqueId",
    "SessionId",
    "ToolCallId",
    "ThreadId",
    "MessageId",
    "MAX_PARSE_FAILURE_SAMPLES",
    "Response",
    "StreamError",
    "ToolCall",
    "UsageStats",
]
