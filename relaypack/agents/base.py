"""Agent grammar contracts."""

from __future__ import annotations

from typing import Any, Protocol

from relaypack.core.records import DecodedRecord
from relaypack.stream.fold import FoldState
from relaypack.stream.sink import StreamSink


class AgentGrammar(Protocol):
    """Protocol for one coding agent's output grammar."""

    name: str
    binary: str
    label: str
    install_hint: str

    def classify(self, record: DecodedRecord) -> Any:
        """Map a decoded record to one event variant; never raises."""

    def fold_step(self, state: FoldState, event: Any, sink: StreamSink | None) -> None:
        """Apply one classified event to the running accumulators."""
