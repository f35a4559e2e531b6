from __future__ import annotations

import pytest

from relaypack.config import RelaySettings, load_settings


def test_defaults_without_environment() -> None:
    settings = load_settings({})

    assert settings == RelaySettings()
    assert settings.fail_fast is True
    assert settings.read_chunk_size == 65536
    assert settings.binary_for("codex", "codex") == "codex"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("0", False), ("false", False), (" Off ", False), ("no", False), ("1", True), ("maybe", True), ("", True)],
)
def test_fail_fast_environment_values(raw: str, expected: bool) -> None:
    assert load_settings({"RELAYKIT_FAIL_FAST": raw}).fail_fast is expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("4096", 4096), ("0", 1), ("-5", 1), ("99999999", 1048576), ("lots", 65536)],
)
def test_read_chunk_size_is_clamped(raw: str, expected: int) -> None:
    assert load_settings({"RELAYKIT_READ_CHUNK_SIZE": raw}).read_chunk_size == expected


def test_binary_overrides_ignore_blank_values() -> None:
    settings = load_settings(
        {
            "RELAYKIT_CLAUDE_CODE_BIN": "/opt/claude/bin/claude",
            "RELAYKIT_CODEX_BIN": "   ",
        }
    )

    assert settings.binaries == {"claude-code": "/opt/claude/bin/claude"}
    assert settings.binary_for("claude-code", "claude") == "/opt/claude/bin/claude"
    assert settings.binary_for("codex", "codex") == "codex"


def test_process_environment_is_used_by_default(monkeypatch) -> None:
    monkeypatch.setenv("RELAYKIT_OPENCODE_BIN", "opencode-dev")
    monkeypatch.delenv("RELAYKIT_FAIL_FAST", raising=False)

    settings = load_settings()

    assert settings.binary_for("opencode", "opencode") == "opencode-dev"
    assert settings.fail_fast is True
