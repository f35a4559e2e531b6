from __future__ import annotations

from itertools import combinations

from relaypack.stream.lines import LineBuffer, numbered_lines, split_lines

MIXED_PAYLOAD = ' {"x":1}\r\n\r\n{"y":2}\r{"z":3}\n  \n{"w":"a\\nb"}'


def _consume_all(chunks: list[str]) -> list[str]:
    buffer = LineBuffer()
    lines: list[str] = []
    for chunk in chunks:
        lines.extend(buffer.consume(chunk))
    lines.extend(buffer.flush())
    return lines


def test_consume_holds_partial_tail_until_separator() -> None:
    buffer = LineBuffer()

    assert buffer.consume('{"a":') == []
    assert buffer.tail == '{"a":'
    assert buffer.consume('1}\n{"b"') == ['{"a":1}']
    assert buffer.tail == '{"b"'
    assert buffer.flush() == ['{"b"']
    assert buffer.tail == ""
    assert buffer.flush() == []


def test_mixed_separators_split_once_each() -> None:
    buffer = LineBuffer()

    assert buffer.consume("a\r\nb\rc\nd") == ["a", "b", "c"]
    assert buffer.flush() == ["d"]


def test_crlf_split_across_chunks_is_not_double_counted() -> None:
    assert _consume_all(["one\r", "\ntwo\r", "\n", "three"]) == ["one", "two", "three"]


def test_lines_are_trimmed_and_blank_lines_dropped() -> None:
    buffer = LineBuffer()

    assert buffer.consume("  first  \n\n   \n\tsecond\t\n") == ["first", "second"]
    assert buffer.consume("   ") == []
    assert buffer.flush() == []


def test_chunk_boundaries_do_not_change_lines() -> None:
    expected = split_lines(MIXED_PAYLOAD)
    assert expected == ['{"x":1}', '{"y":2}', '{"z":3}', '{"w":"a\\nb"}']

    positions = range(1, len(MIXED_PAYLOAD))
    for first, second in combinations(positions, 2):
        chunks = [
            MIXED_PAYLOAD[:first],
            MIXED_PAYLOAD[first:second],
            MIXED_PAYLOAD[second:],
        ]
        assert _consume_all(chunks) == expected, chunks


def test_single_character_chunks_match_whole_payload() -> None:
    assert _consume_all(list(MIXED_PAYLOAD)) == split_lines(MIXED_PAYLOAD)


def test_returned_lines_never_contain_separators() -> None:
    buffer = LineBuffer()
    lines = buffer.consume("a\r\r\nb\n\rc\r") + buffer.flush()

    assert lines == ["a", "b", "c"]
    for line in lines:
        assert "\r" not in line
        assert "\n" not in line


def test_flush_returns_at_most_one_line() -> None:
    buffer = LineBuffer()
    buffer.consume("partial without newline")

    assert buffer.flush() == ["partial without newline"]
    assert buffer.flush() == []


def test_numbered_lines_keep_original_positions() -> None:
    assert numbered_lines("a\r\n\r\nb\rc\n") == [(1, "a"), (3, "b"), (4, "c")]
