"""Chunk-to-line reassembly for newline-delimited agent output."""

from __future__ import annotations

import re

_LINE_SEPARATOR = re.compile(r"\r\n|\r|\n")


def split_lines(payload: str) -> list[str]:
    """Split a complete payload into trimmed, non-blank lines."""
    return [line for _, line in numbered_lines(payload)]


def numbered_lines(payload: str) -> list[tuple[int, str]]:
    """Like ``split_lines`` but paired with each line's 1-based position."""
    numbered: list[tuple[int, str]] = []
    for index, segment in enumerate(_LINE_SEPARATOR.split(payload), start=1):
        trimmed = segment.strip()
        if trimmed:
            numbered.append((index, trimmed))
    return numbered


class LineBuffer:
    """Holds the unterminated tail of a text stream between chunks.

    ``\\r\\n``, ``\\r`` and ``\\n`` all terminate a line. A ``\\r\\n`` pair
    split across two chunks only ever produces a blank segment, and blank
    segments are dropped, so the result does not depend on chunk boundaries.
    """

    __slots__ = ("_tail",)

    def __init__(self) -> None:
        self._tail = ""

    @property
    def tail(self) -> str:
        return self._tail

    def consume(self, chunk: str) -> list[str]:
        segments = _LINE_SEPARATOR.split(self._tail + chunk)
        self._tail = segments.pop()
        ready: list[str] = []
        for segment in segments:
            trimmed = segment.strip()
            if trimmed:
                ready.append(trimmed)
        return ready

    def flush(self) -> list[str]:
        last = self._tail.strip()
        self._tail = ""
        return [last] if last else []
