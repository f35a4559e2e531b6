"""Type definitions for RelayKit core models."""

from typing import Literal

AgentKind = Literal[
    "claude-code",
    "codex",
    "opencode",
]

AGENT_KINDS: tuple[str, ...] = (
    "claude-code",
    "codex",
    "opencode",
)

StreamTag = Literal["out", "err"]

OutputFormat = Literal["jsonl", "json", "text"]

OUTPUT_FORMATS: tuple[str, ...] = (
    "jsonl",
    "json",
    "text",
)
