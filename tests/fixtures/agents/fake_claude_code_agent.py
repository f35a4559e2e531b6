"""Fixture claude-code-like agent emitting deterministic stream-json events.

Each line is written in two byte-level halves with a flush in between so
readers see lines split across chunks.

Flags:
    --malformed       emit a non-JSON line after the init event
    --exit-code N     exit with status N
    --stderr          also write diagnostics to stderr
"""

from __future__ import annotations

import json
import sys
import time

SESSION_ID = "sess-claude-001"


def _events() -> list[dict]:
    return [
        {
            "type": "system",
            "subtype": "init",
            "session_id": SESSION_ID,
            "model": "claude-sonnet-4",
            "cwd": "/tmp/project",
            "tools": ["Read", "Bash"],
        },
        {
            "type": "assistant",
            "session_id": SESSION_ID,
            "message": {
                "role": "assistant",
                "content": [{"type": "text", "text": "Hello "}],
            },
        },
        {
            "type": "assistant",
            "session_id": SESSION_ID,
            "message": {
                "role": "assistant",
                "content": [
                    {"type": "text", "text": "World"},
                    {
                        "type": "tool_use",
                        "id": "toolu_01",
                        "name": "Read",
                        "input": {"file_path": "README.md"},
                    },
                ],
            },
        },
        {
            "type": "user",
            "session_id": SESSION_ID,
            "message": {
                "role": "user",
                "content": [
                    {"type": "tool_result", "tool_use_id": "toolu_01", "content": "ok"},
                ],
            },
        },
        {
            "type": "result",
            "subtype": "success",
            "session_id": SESSION_ID,
            "result": "Hello World",
            "is_error": False,
            "num_turns": 2,
            "duration_ms": 1200,
            "total_cost_usd": 0.0042,
            "usage": {
                "input_tokens": 12,
                "output_tokens": 5,
                "cache_read_input_tokens": 3,
                "cache_creation_input_tokens": 1,
            },
        },
    ]


def _write_split(line: str) -> None:
    payload = (line + "\n").encode("utf-8")
    middle = len(payload) // 2
    sys.stdout.buffer.write(payload[:middle])
    sys.stdout.buffer.flush()
    time.sleep(0.005)
    sys.stdout.buffer.write(payload[middle:])
    sys.stdout.buffer.flush()


def main(argv: list[str]) -> int:
    exit_code = 0
    if "--exit-code" in argv:
        exit_code = int(argv[argv.index("--exit-code") + 1])
    malformed = "--malformed" in argv

    if "--stderr" in argv:
        sys.stderr.write("claude fixture: starting\n")
        sys.stderr.flush()

    for index, event in enumerate(_events()):
        _write_split(json.dumps(event, ensure_ascii=False))
        if malformed and index == 0:
            _write_split("not json at all")
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
