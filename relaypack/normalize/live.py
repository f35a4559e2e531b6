"""Incremental normalization of streamed stdout chunks."""

from __future__ import annotations

from relaypack.agents.base import AgentGrammar
from relaypack.core.types import StreamTag
from relaypack.normalize.parser import context_name, resolve_grammar
from relaypack.stream.decoder import ParsePolicy, RecordDecoder
from relaypack.stream.fold import FoldState, fold
from relaypack.stream.lines import LineBuffer
from relaypack.stream.sink import StreamSink


class LiveNormalizer:
    """Feeds executor chunks through the line buffer, decoder and fold.

    Only ``out`` chunks are normalized. The accumulated ``state`` is a
    progress view; the returned response always comes from ``ResponseParser``.
    """

    def __init__(
        self,
        agent: str | AgentGrammar,
        sink: StreamSink | None = None,
        policy: ParsePolicy | None = None,
    ) -> None:
        self.grammar = resolve_grammar(agent)
        self.sink = sink
        self.state = FoldState()
        self._buffer = LineBuffer()
        self._decoder = RecordDecoder(policy)
        self._context = f"{context_name(self.grammar)} stream JSON line"

    @property
    def failure_count(self) -> int:
        return self._decoder.failure_count

    def feed(self, stream_tag: StreamTag, chunk: str) -> None:
        if stream_tag != "out":
            return
        for line in self._buffer.consume(chunk):
            self._handle_line(line)

    def finish(self) -> FoldState:
        for line in self._buffer.flush():
            self._handle_line(line)
        return self.state

    def _handle_line(self, line: str) -> None:
        records = self._decoder.decode(line, self._context)
        if not records:
            return
        fold((self.grammar.classify(record) for record in records), self.grammar.fold_step, self.sink, self.state)
