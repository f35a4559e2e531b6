import inspect
import json
from pathlib import Path
import sys

import pytest

import relaykit

FIXTURES = Path(__file__).parent / "fixtures" / "agents"


def test_public_api_symbol_list_is_explicit_and_stable() -> None:
    assert relaykit.__all__ == [
        "__version__",
        "AGENT_KINDS",
        "OUTPUT_FORMATS",
        "AgentKind",
        "OutputFormat",
        "AgentGrammar",
        "AgentRegistryError",
        "CallbackSink",
        "DecodedRecord",
        "ExecResult",
        "ExecutionError",
        "LiveNormalizer",
        "MissingBinaryError",
        "ParsePolicy",
        "RelayError",
        "RelaySettings",
        "Response",
        "ResponseParser",
        "SessionId",
        "StreamError",
        "StreamParseError",
        "StreamSink",
        "SubprocessExecutor",
        "ToolCall",
        "ToolCallId",
        "UsageStats",
        "execute_streaming",
        "get_agent_grammar",
        "list_agent_grammar_keys",
        "load_agent_grammars_from_plugins",
        "load_settings",
        "parse_output",
        "parse_output_file",
        "register_agent_grammar",
        "run_agent",
    ]
    for name in relaykit.__all__:
        assert hasattr(relaykit, name)


def test_public_api_function_signatures_and_annotations() -> None:
    expected_parameter_order = {
        "parse_output": ("agent", "stdout", "exit_code", "output_format", "fail_fast"),
        "parse_output_file": ("agent", "path", "exit_code", "output_format", "fail_fast"),
        "run_agent": ("agent", "args", "sink", "fail_fast", "binary", "timeout", "cwd"),
    }
    positional = {"parse_output": 2, "parse_output_file": 2, "run_agent": 2}

    for name, parameters in expected_parameter_order.items():
        function = getattr(relaykit, name)
        signature = inspect.signature(function)
        assert tuple(signature.parameters.keys()) == parameters
        assert "return" in function.__annotations__
        assert function.__doc__ is not None
        assert function.__doc__.strip() != ""

        for index, parameter in enumerate(signature.parameters.values()):
            if index < positional[name]:
                assert parameter.kind is inspect.Parameter.POSITIONAL_OR_KEYWORD
            else:
                assert parameter.kind is inspect.Parameter.KEYWORD_ONLY


def test_parse_output_and_file_agree(tmp_path: Path) -> None:
    stdout = "\n".join(
        [
            json.dumps({"type": "step_start", "sessionID": "ses_1", "part": {"messageID": "m"}}),
            json.dumps({"type": "text", "sessionID": "ses_1", "part": {"text": "hi"}}),
        ]
    )
    path = tmp_path / "opencode.jsonl"
    path.write_text(stdout, encoding="utf-8")

    from_text = relaykit.parse_output("opencode", stdout, exit_code=1)
    from_file = relaykit.parse_output_file("opencode", path, exit_code=1)

    assert from_text == from_file
    assert from_text.text == "hi"
    assert from_text.session_id == relaykit.SessionId("ses_1")
    assert from_text.is_success is False


def test_parse_output_policy_follows_environment(monkeypatch) -> None:
    monkeypatch.setenv("RELAYKIT_FAIL_FAST", "off")

    lenient = relaykit.parse_output("codex", "nope\n")
    assert lenient.parse_failure_count == 1

    with pytest.raises(relaykit.StreamParseError):
        relaykit.parse_output("codex", "nope\n", fail_fast=True)


def test_run_agent_with_binary_override_and_sink() -> None:
    texts: list[str] = []
    completed: list[relaykit.Response] = []

    response = relaykit.run_agent(
        "claude-code",
        [str(FIXTURES / "fake_claude_code_agent.py")],
        sink=relaykit.CallbackSink(text_handler=texts.append, complete_handler=completed.append),
        binary=sys.executable,
        timeout=30,
    )

    assert response.text == "Hello World"
    assert "".join(texts) == "Hello World"
    assert completed == [response]


def test_run_agent_binary_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("RELAYKIT_OPENCODE_BIN", sys.executable)

    response = relaykit.run_agent("opencode", [str(FIXTURES / "fake_opencode_agent.py")])

    assert response.text == "Checking files. All good."


def test_run_agent_missing_binary_is_reported_before_launch() -> None:
    with pytest.raises(relaykit.MissingBinaryError) as excinfo:
        relaykit.run_agent("codex", ["exec", "hi"], binary="relaykit-definitely-missing-binary")

    assert "Codex CLI binary 'relaykit-definitely-missing-binary' was not found in PATH." in str(excinfo.value)
    assert "npm install -g @openai/codex" in str(excinfo.value)


def test_unknown_agent_is_rejected() -> None:
    with pytest.raises(relaykit.AgentRegistryError):
        relaykit.parse_output("gemini", "")
