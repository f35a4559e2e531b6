"""Streaming execution: live notifications plus the authoritative response."""

from __future__ import annotations

import logging
from typing import Sequence

from relaypack.agents.base import AgentGrammar
from relaypack.core.models import Response
from relaypack.execution.executor import SubprocessExecutor
from relaypack.normalize.live import LiveNormalizer
from relaypack.normalize.parser import ResponseParser, resolve_grammar
from relaypack.stream.decoder import ParsePolicy
from relaypack.stream.sink import StreamSink

logger = logging.getLogger(__name__)


def execute_streaming(
    agent: str | AgentGrammar,
    command: Sequence[str],
    *,
    sink: StreamSink | None = None,
    executor: SubprocessExecutor | None = None,
    policy: ParsePolicy | None = None,
) -> Response:
    """Run ``command`` and normalize its stdout for ``agent``.

    With a sink, stdout chunks are normalized as they arrive and the sink
    hears about text, settled tool calls and error events. ``policy`` governs
    both paths: under fail-fast the first malformed live line raises
    ``StreamParseError`` from inside the read loop, which kills the process
    before anything else is classified. The authoritative parse of the full
    stdout after exit produces the returned response and the single
    ``on_complete`` notification.
    """
    grammar = resolve_grammar(agent)
    active_executor = executor or SubprocessExecutor()
    live = LiveNormalizer(grammar, sink, policy) if sink is not None else None

    logger.debug("executing %s command=%s", grammar.name, list(command))
    result = active_executor.execute(command, on_output=live.feed if live is not None else None)
    if live is not None:
        live.finish()
        if live.failure_count:
            logger.debug("live path skipped %d malformed lines", live.failure_count)

    response = ResponseParser(grammar, policy).parse(result.stdout, exit_code=result.exit_code)
    if sink is not None:
        sink.on_complete(response)
    return response
