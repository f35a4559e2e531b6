"""Stream subsystem for RelayKit: lines, records, folding and sinks."""

from relaypack.stream.decoder import ParsePolicy, RecordDecoder, normalize_malformed_payload
from relaypack.stream.exceptions import RelayError, StreamParseError
from relaypack.stream.fold import FoldState, FoldStep, fold
from relaypack.stream.lines import LineBuffer, numbered_lines, split_lines
from relaypack.stream.sink import CallbackSink, StreamSink

__all__ = [
    "RelayError",
    "StreamParseError",
    "LineBuffer",
    "split_lines",
    "numbered_lines",
    "ParsePolicy",
    "RecordDecoder",
    "normalize_malformed_payload",
    "FoldState",
    "FoldStep",
    "fold",
    "StreamSink",
    "CallbackSink",
]
