"""Normalization engines: authoritative parser, live normalizer and bridge."""

from relaypack.normalize.bridge import execute_streaming
from relaypack.normalize.live import LiveNormalizer
from relaypack.normalize.parser import ResponseParser, context_name, line_format_name, resolve_grammar

__all__ = [
    "LiveNormalizer",
    "ResponseParser",
    "context_name",
    "execute_streaming",
    "line_format_name",
    "resolve_grammar",
]
