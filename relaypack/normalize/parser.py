"""Authoritative re-parse of captured agent stdout."""

from __future__ import annotations

import logging

from relaypack.agents.base import AgentGrammar
from relaypack.agents.registry import get_agent_grammar
from relaypack.core.models import Response
from relaypack.core.records import DecodedRecord
from relaypack.core.types import OUTPUT_FORMATS
from relaypack.stream.decoder import ParsePolicy, RecordDecoder
from relaypack.stream.fold import FoldState, fold
from relaypack.stream.lines import numbered_lines

logger = logging.getLogger(__name__)

_CONTEXT_NAMES = {
    "claude-code": "Claude",
    "codex": "Codex",
    "opencode": "OpenCode",
}
_LINE_FORMAT_NAMES = {
    "claude-code": "stream-json",
}


def resolve_grammar(agent: str | AgentGrammar) -> AgentGrammar:
    if isinstance(agent, str):
        return get_agent_grammar(agent)
    return agent


def context_name(grammar: AgentGrammar) -> str:
    """Short agent name used in parse failure messages."""
    return _CONTEXT_NAMES.get(grammar.name, grammar.label)


def line_format_name(grammar: AgentGrammar) -> str:
    """Name of the line-delimited output format in parse failure messages."""
    return _LINE_FORMAT_NAMES.get(grammar.name, "JSONL")


class ResponseParser:
    """Builds the returned ``Response`` from a process's complete stdout.

    Runs the same classify and fold steps as the live path, with no sink, so
    whatever the live path delivered or dropped never changes the result.
    """

    def __init__(self, agent: str | AgentGrammar, policy: ParsePolicy | None = None) -> None:
        self.grammar = resolve_grammar(agent)
        self.policy = policy or ParsePolicy()

    def parse(self, stdout: str, exit_code: int = 0, output_format: str = "jsonl") -> Response:
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"Unsupported output format: {output_format}. "
                f"Expected one of: {', '.join(OUTPUT_FORMATS)}."
            )
        logger.debug(
            "parsing %s output format=%s bytes=%d",
            self.grammar.name,
            output_format,
            len(stdout),
        )
        if output_format == "text":
            return Response(agent_kind=self.grammar.name, text=stdout, exit_code=exit_code)

        decoder = RecordDecoder(self.policy)
        decoded: list[DecodedRecord] = []
        state = FoldState()
        name = context_name(self.grammar)
        line_format = line_format_name(self.grammar)

        if output_format == "json":
            payload = stdout.strip()
            if payload:
                records = decoder.decode(payload, f"Failed to parse {name} JSON response")
                self._fold_records(records, state, decoded)
        else:
            for line_number, line in numbered_lines(stdout):
                records = decoder.decode(line, f"Failed to parse {name} {line_format} line {line_number}")
                self._fold_records(records, state, decoded)

        response = Response(
            agent_kind=self.grammar.name,
            text=state.text,
            exit_code=exit_code,
            session_id=state.session_id,
            usage=state.usage,
            cost=state.cost,
            tool_calls=state.tool_calls,
            decoded=decoded,
            parse_failure_count=decoder.failure_count,
            parse_failure_samples=decoder.failure_samples,
            errors=state.errors,
        )
        logger.debug(
            "parsed %s records=%d tool_calls=%d failures=%d",
            self.grammar.name,
            len(response.decoded),
            len(response.tool_calls),
            response.parse_failure_count,
        )
        return response

    def _fold_records(
        self,
        records: list[DecodedRecord] | None,
        state: FoldState,
        decoded: list[DecodedRecord],
    ) -> None:
        if not records:
            return
        decoded.extend(records)
        fold((self.grammar.classify(record) for record in records), self.grammar.fold_step, None, state)
