import json
from importlib.metadata import PackageNotFoundError, version as package_version
import logging
from pathlib import Path
import sys
from dataclasses import dataclass
from typing import Any, Optional

import typer

from relaypack.agents import AgentRegistryError, get_agent_grammar, list_agent_grammar_keys
from relaypack.config import load_settings
from relaypack.core.models import Response, StreamError, ToolCall
from relaypack.core.types import OUTPUT_FORMATS
from relaypack.execution import ExecutionError, MissingBinaryError, SubprocessExecutor
from relaypack.normalize import ResponseParser, execute_streaming
from relaypack.stream import CallbackSink, ParsePolicy, StreamParseError

app = typer.Typer(help="RelayKit CLI")


@dataclass(slots=True)
class _OutputOptions:
    quiet: bool = False
    stable_json: bool = True


_OUTPUT_OPTIONS = _OutputOptions()
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _resolve_cli_version() -> str:
    try:
        return package_version("relaykit")
    except PackageNotFoundError:
        from relaypack import __version__ as local_version

        return local_version


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(_resolve_cli_version())
    raise typer.Exit()


@app.callback()
def app_options(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show RelayKit version and exit.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Suppress non-error text output.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log normalization and process details to stderr.",
    ),
    stable_json: bool = typer.Option(
        True,
        "--stable-json/--pretty-json",
        help="Emit stable compact JSON (or pretty JSON).",
    ),
) -> None:
    """Global output controls for all CLI commands."""
    _OUTPUT_OPTIONS.quiet = quiet
    _OUTPUT_OPTIONS.stable_json = stable_json
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format=_LOG_FORMAT, stream=sys.stderr)


def _echo(message: str, *, err: bool = False, force: bool = False, nl: bool = True) -> None:
    if _OUTPUT_OPTIONS.quiet and not err and not force:
        return
    typer.echo(message, err=err, nl=nl)


def _echo_json(payload: dict[str, Any], *, err: bool = False) -> None:
    if _OUTPUT_OPTIONS.stable_json:
        rendered = json.dumps(
            payload,
            ensure_ascii=True,
            sort_keys=True,
            separators=(",", ":"),
        )
    else:
        rendered = json.dumps(
            payload,
            ensure_ascii=True,
            sort_keys=True,
            indent=2,
        )
    typer.echo(rendered, err=err)


def _fail(command: str, message: str, *, exit_code: int, json_output: bool) -> typer.Exit:
    rendered = f"{command} failed: {message}"
    if json_output:
        _echo_json({"status": "error", "exit_code": exit_code, "message": rendered})
    else:
        _echo(rendered, err=True)
    return typer.Exit(code=exit_code)


def _normalize_agent(command: str, agent: str, *, json_output: bool) -> str:
    normalized_agent = agent.strip().lower()
    supported_agents = set(list_agent_grammar_keys())
    if normalized_agent not in supported_agents:
        raise _fail(
            command,
            f"unsupported agent '{agent}'. Expected one of: {', '.join(sorted(supported_agents))}.",
            exit_code=2,
            json_output=json_output,
        )
    return normalized_agent


def _resolve_policy(lenient: bool | None) -> ParsePolicy:
    if lenient is None:
        return ParsePolicy(fail_fast=load_settings().fail_fast)
    return ParsePolicy(fail_fast=not lenient)


def _response_summary(response: Response) -> str:
    usage = response.usage.total if response.usage is not None else 0
    cost = f"{response.cost:.6f}" if response.cost is not None else "-"
    return (
        f"agent={response.agent_kind} exit_code={response.exit_code} "
        f"session={response.session_id or '-'} tool_calls={len(response.tool_calls)} "
        f"tokens={usage} cost={cost} errors={len(response.errors)} "
        f"parse_failures={response.parse_failure_count}"
    )


def _response_payload(response: Response) -> dict[str, Any]:
    return {
        "status": "ok" if response.is_success else "error",
        "exit_code": 0 if response.is_success else 1,
        "response": response.to_dict(),
    }


def _render_tool_call(tool_call: ToolCall) -> str:
    status = "error" if tool_call.is_error else "ok"
    call_id = f" {tool_call.call_id}" if tool_call.call_id is not None else ""
    return f"[tool {tool_call.tool}{call_id}: {status}]"


def _render_stream_error(error: StreamError) -> str:
    code = f" ({error.code})" if error.code else ""
    return f"[error{code}: {error.message}]"


@app.command("agents")
def agents(
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable agent listing output.",
    ),
) -> None:
    """List registered agent grammars."""
    keys = list(list_agent_grammar_keys())
    if json_output:
        entries = []
        for key in keys:
            grammar = get_agent_grammar(key)
            entries.append({"name": key, "label": grammar.label, "binary": grammar.binary})
        _echo_json(
            {
                "status": "ok",
                "exit_code": 0,
                "message": "registered agent grammars",
                "agents": keys,
                "details": entries,
            }
        )
    else:
        _echo("\n".join(keys), force=True)


@app.command("parse")
def parse(
    source: Path = typer.Argument(..., help="Captured agent stdout file, or - for stdin."),
    agent: str = typer.Option(
        ...,
        "--agent",
        help="Agent that produced the output. Supported: claude-code, codex, opencode.",
    ),
    output_format: str = typer.Option(
        "jsonl",
        "--format",
        help="Captured output format: jsonl, json or text.",
    ),
    lenient: Optional[bool] = typer.Option(
        None,
        "--lenient/--fail-fast",
        help="Skip and count malformed lines instead of failing (default from RELAYKIT_FAIL_FAST).",
    ),
    exit_code: int = typer.Option(
        0,
        "--exit-code",
        help="Exit code of the process that produced the output.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit the normalized response as JSON.",
    ),
) -> None:
    """Normalize captured agent output into a unified response."""
    normalized_agent = _normalize_agent("parse", agent, json_output=json_output)
    normalized_format = output_format.strip().lower()
    if normalized_format not in OUTPUT_FORMATS:
        raise _fail(
            "parse",
            f"unsupported format '{output_format}'. Expected one of: {', '.join(OUTPUT_FORMATS)}.",
            exit_code=2,
            json_output=json_output,
        )

    try:
        if str(source) == "-":
            stdout = sys.stdin.read()
        else:
            stdout = source.read_text(encoding="utf-8")
        response = ResponseParser(normalized_agent, _resolve_policy(lenient)).parse(
            stdout,
            exit_code=exit_code,
            output_format=normalized_format,
        )
    except StreamParseError as error:
        raise _fail(
            "parse",
            f"{error.context} (payload: {error.payload})",
            exit_code=1,
            json_output=json_output,
        ) from error
    except (OSError, UnicodeDecodeError) as error:
        raise _fail("parse", str(error), exit_code=1, json_output=json_output) from error

    if json_output:
        _echo_json({"status": "ok", "exit_code": 0, "response": response.to_dict()})
        return
    if response.text:
        _echo(response.text)
    for tool_call in response.tool_calls:
        _echo(_render_tool_call(tool_call))
    for stream_error in response.errors:
        _echo(_render_stream_error(stream_error), err=True)
    _echo(_response_summary(response))


@app.command(
    "run",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def run(
    ctx: typer.Context,
    agent: str = typer.Option(
        ...,
        "--agent",
        help="Agent grammar used to normalize the command's stdout.",
    ),
    lenient: Optional[bool] = typer.Option(
        None,
        "--lenient/--fail-fast",
        help="Skip and count malformed lines instead of failing (default from RELAYKIT_FAIL_FAST).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        min=0.001,
        help="Kill the process after this many seconds.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit the normalized response as JSON instead of streaming text.",
    ),
) -> None:
    """Run an agent command, stream its text live, then print the final response."""
    normalized_agent = _normalize_agent("run", agent, json_output=json_output)

    command = list(ctx.args)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        raise _fail("run", "missing command after `--`.", exit_code=2, json_output=json_output)

    settings = load_settings()
    grammar = get_agent_grammar(normalized_agent)
    executor = SubprocessExecutor(timeout=timeout, read_chunk_size=settings.read_chunk_size)

    streamed: list[str] = []

    def _on_text(fragment: str) -> None:
        streamed.append(fragment)
        _echo(fragment, nl=False)

    sink = None
    if not json_output:
        sink = CallbackSink(
            text_handler=_on_text,
            tool_use_handler=lambda tool_call: _echo(_render_tool_call(tool_call), err=True),
            error_handler=lambda error: _echo(_render_stream_error(error), err=True),
        )

    try:
        response = execute_streaming(
            grammar,
            command,
            sink=sink,
            executor=executor,
            policy=_resolve_policy(lenient),
        )
    except MissingBinaryError as error:
        message = str(error)
        if error.binary == grammar.binary:
            message = f"{message} {grammar.install_hint}"
        raise _fail("run", message, exit_code=1, json_output=json_output) from error
    except StreamParseError as error:
        raise _fail(
            "run",
            f"{error.context} (payload: {error.payload})",
            exit_code=1,
            json_output=json_output,
        ) from error
    except (ExecutionError, AgentRegistryError) as error:
        raise _fail("run", str(error), exit_code=1, json_output=json_output) from error

    if json_output:
        _echo_json(_response_payload(response))
    else:
        if streamed and not streamed[-1].endswith("\n"):
            _echo("")
        _echo(_response_summary(response))
    if not response.is_success:
        raise typer.Exit(code=1)


def main() -> None:
    app()
