"""Stable public API surface for RelayKit.

This module is the supported import path for library users.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from relaypack.agents import (
    AgentGrammar,
    AgentRegistryError,
    get_agent_grammar,
    list_agent_grammar_keys,
    load_agent_grammars_from_plugins,
    register_agent_grammar,
)
from relaypack.config import RelaySettings, load_settings
from relaypack.core import (
    AGENT_KINDS,
    OUTPUT_FORMATS,
    AgentKind,
    DecodedRecord,
    OutputFormat,
    Response,
    SessionId,
    StreamError,
    ToolCall,
    ToolCallId,
    UsageStats,
)
from relaypack.execution import (
    ExecResult,
    ExecutionError,
    MissingBinaryError,
    SubprocessExecutor,
    assert_available,
)
from relaypack.normalize import LiveNormalizer, ResponseParser, execute_streaming
from relaypack.stream import CallbackSink, ParsePolicy, RelayError, StreamParseError, StreamSink

__version__ = "0.1.0"


def parse_output(
    agent: AgentKind | str,
    stdout: str,
    *,
    exit_code: int = 0,
    output_format: OutputFormat | str = "jsonl",
    fail_fast: bool | None = None,
) -> Response:
    """Normalize captured agent stdout into a ``Response``.

    Args:
        agent: Registered agent key (``"claude-code"``, ``"codex"``, ``"opencode"``).
        stdout: Complete captured stdout of the agent process.
        exit_code: Process exit code recorded on the response.
        output_format: ``"jsonl"`` (default), ``"json"`` or ``"text"``.
        fail_fast: Raise on the first malformed line. Defaults to the
            ``RELAYKIT_FAIL_FAST`` setting.

    Returns:
        The normalized response.

    Raises:
        StreamParseError: If a line is malformed and fail-fast is active.
        AgentRegistryError: If ``agent`` is not registered.
    """
    policy = _resolve_policy(fail_fast)
    return ResponseParser(agent, policy).parse(
        stdout,
        exit_code=exit_code,
        output_format=output_format,
    )


def parse_output_file(
    agent: AgentKind | str,
    path: str | Path,
    *,
    exit_code: int = 0,
    output_format: OutputFormat | str = "jsonl",
    fail_fast: bool | None = None,
) -> Response:
    """Normalize agent stdout previously captured to a UTF-8 file."""
    stdout = Path(path).read_text(encoding="utf-8")
    return parse_output(
        agent,
        stdout,
        exit_code=exit_code,
        output_format=output_format,
        fail_fast=fail_fast,
    )


def run_agent(
    agent: AgentKind | str,
    args: Sequence[str] = (),
    *,
    sink: StreamSink | None = None,
    fail_fast: bool | None = None,
    binary: str | None = None,
    timeout: float | None = None,
    cwd: str | Path | None = None,
) -> Response:
    """Launch an agent CLI and return its normalized response.

    Args:
        agent: Registered agent key.
        args: Arguments passed to the agent binary after the binary itself.
        sink: Optional live sink; ``on_complete`` fires once with the result.
        fail_fast: Raise on the first malformed line of the final parse.
        binary: Binary override. Defaults to the ``RELAYKIT_<AGENT>_BIN``
            setting, then the agent's standard binary name.
        timeout: Seconds after which the process is killed.
        cwd: Working directory for the process.

    Raises:
        MissingBinaryError: If the binary cannot be found.
    """
    settings = load_settings()
    grammar = get_agent_grammar(agent)
    resolved_binary = binary or settings.binary_for(grammar.name, grammar.binary)
    assert_available(resolved_binary, label=grammar.label, install_hint=grammar.install_hint)
    executor = SubprocessExecutor(
        timeout=timeout,
        cwd=str(cwd) if cwd is not None else None,
        read_chunk_size=settings.read_chunk_size,
    )
    policy = ParsePolicy(fail_fast=settings.fail_fast if fail_fast is None else fail_fast)
    return execute_streaming(
        grammar,
        [resolved_binary, *args],
        sink=sink,
        executor=executor,
        policy=policy,
    )


def _resolve_policy(fail_fast: bool | None) -> ParsePolicy:
    if fail_fast is None:
        return ParsePolicy(fail_fast=load_settings().fail_fast)
    return ParsePolicy(fail_fast=fail_fast)


__all__ = [
    "__version__",
    "AGENT_KINDS",
    "OUTPUT_FORMATS",
    "AgentKind",
    "OutputFormat",
    "AgentGrammar",
    "AgentRegistryError",
    "CallbackSink",
    "DecodedRecord",
    "ExecResult",
    "ExecutionError",
    "LiveNormalizer",
    "MissingBinaryError",
    "ParsePolicy",
    "RelayError",
    "RelaySettings",
    "Response",
    "ResponseParser",
    "SessionId",
    "StreamError",
    "StreamParseError",
    "StreamSink",
    "SubprocessExecutor",
    "ToolCall",
    "ToolCallId",
    "UsageStats",
    "execute_streaming",
    "get_agent_grammar",
    "list_agent_grammar_keys",
    "load_agent_grammars_from_plugins",
    "load_settings",
    "parse_output",
    "parse_output_file",
    "register_agent_grammar",
    "run_agent",
]
