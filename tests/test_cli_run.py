import json
from pathlib import Path
import sys

from typer.testing import CliRunner

from relaypack.cli.app import app

FIXTURES = Path(__file__).parent / "fixtures" / "agents"


def test_cli_run_emits_response_json() -> None:
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "run",
            "--agent",
            "opencode",
            "--json",
            "--",
            sys.executable,
            str(FIXTURES / "fake_opencode_agent.py"),
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout.strip())
    assert payload["status"] == "ok"
    assert payload["response"]["text"] == "Checking files. All good."
    assert payload["response"]["session_id"] == "ses_opencode_001"
    assert payload["response"]["usage"]["input"] == 8


def test_cli_run_streams_text_then_summary() -> None:
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "run",
            "--agent",
            "codex",
            "--",
            sys.executable,
            str(FIXTURES / "fake_codex_agent.py"),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Done ✓ naïve" in result.stdout
    assert "agent=codex" in result.stdout
    assert "session=thread-codex-001" in result.stdout


def test_cli_run_exits_nonzero_when_agent_fails() -> None:
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "run",
            "--agent",
            "claude-code",
            "--json",
            "--",
            sys.executable,
            str(FIXTURES / "fake_claude_code_agent.py"),
            "--exit-code",
            "5",
        ],
    )

    assert result.exit_code == 1
    payload = json.loads(result.stdout.strip())
    assert payload["status"] == "error"
    assert payload["response"]["exit_code"] == 5
    assert payload["response"]["text"] == "Hello World"


def test_cli_run_lenient_flag_reaches_final_parse() -> None:
    runner = CliRunner()
    command = [sys.executable, str(FIXTURES / "fake_claude_code_agent.py"), "--malformed"]

    strict = runner.invoke(app, ["run", "--agent", "claude-code", "--json", "--", *command])
    lenient = runner.invoke(app, ["run", "--agent", "claude-code", "--lenient", "--json", "--", *command])

    assert strict.exit_code == 1
    assert "Failed to parse Claude stream-json line 2" in json.loads(strict.stdout.strip())["message"]
    assert lenient.exit_code == 0
    assert json.loads(lenient.stdout.strip())["response"]["parse_failure_count"] == 1


def test_cli_run_streaming_stops_at_first_malformed_line() -> None:
    runner = CliRunner()
    command = [sys.executable, str(FIXTURES / "fake_claude_code_agent.py"), "--malformed"]

    result = runner.invoke(app, ["run", "--agent", "claude-code", "--fail-fast", "--", *command])

    assert result.exit_code == 1
    assert "Claude stream JSON line" in result.output
    assert "Hello" not in result.output


def test_cli_run_requires_command_after_double_dash() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["run", "--agent", "codex", "--json"])

    assert result.exit_code == 2
    payload = json.loads(result.stdout.strip())
    assert payload["status"] == "error"
    assert payload["exit_code"] == 2
    assert "missing command" in payload["message"]


def test_cli_run_rejects_unsupported_agent() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["run", "--agent", "unknown-agent", "--json", "--", "echo", "hello"])

    assert result.exit_code == 2
    assert "unsupported agent" in json.loads(result.stdout.strip())["message"]


def test_cli_run_missing_binary_includes_install_hint(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("PATH", str(tmp_path))
    runner = CliRunner()
    result = runner.invoke(app, ["run", "--agent", "codex", "--json", "--", "codex", "exec", "--json", "hi"])

    assert result.exit_code == 1
    message = json.loads(result.stdout.strip())["message"]
    assert "Command not found: codex" in message
    assert "npm install -g @openai/codex" in message
