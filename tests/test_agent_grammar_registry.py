from __future__ import annotations

from pathlib import Path

import pytest

from relaypack.agents import (
    AgentRegistryError,
    ClaudeCodeGrammar,
    GrammarRegistry,
    get_agent_grammar,
    initialize_default_agent_grammars,
    list_agent_grammar_keys,
    load_agent_grammars_from_plugins,
    load_grammar_factory,
    register_agent_grammar,
    reset_agent_grammar_registry,
)


def test_agent_registry_defaults_include_required_keys() -> None:
    assert list_agent_grammar_keys() == ("claude-code", "codex", "opencode")


def test_agent_registry_lookup_normalizes_keys() -> None:
    grammar = get_agent_grammar("  Claude-Code ")

    assert isinstance(grammar, ClaudeCodeGrammar)
    assert grammar.binary == "claude"
    assert get_agent_grammar("opencode").name == "opencode"


def test_agent_registry_rejects_bad_registrations() -> None:
    with pytest.raises(AgentRegistryError, match="cannot be empty"):
        register_agent_grammar("  ", ClaudeCodeGrammar)
    with pytest.raises(AgentRegistryError, match="already registered"):
        register_agent_grammar("codex", ClaudeCodeGrammar)
    with pytest.raises(AgentRegistryError, match="not registered"):
        get_agent_grammar("gemini")
    with pytest.raises(AgentRegistryError, match="Expected module:attribute"):
        load_agent_grammars_from_plugins({"broken": "no_separator"})
    with pytest.raises(AgentRegistryError, match="Unable to load"):
        load_agent_grammars_from_plugins({"broken": "relaypack_missing_module:Grammar"})


def test_agent_registry_plugin_hook_registers_entrypoint(
    tmp_path: Path,
    monkeypatch,
) -> None:
    plugin_module = tmp_path / "grammar_plugin_fixture.py"
    plugin_module.write_text(
        "\n".join(
            [
                "from relaypack.agents.codex import CodexGrammar",
                "",
                "class PatchedCodexGrammar(CodexGrammar):",
                "    binary = 'codex-nightly'",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    reset_agent_grammar_registry()
    initialize_default_agent_grammars()
    try:
        load_agent_grammars_from_plugins(
            {"codex": "grammar_plugin_fixture:PatchedCodexGrammar"},
            overwrite=True,
        )
        assert get_agent_grammar("codex").binary == "codex-nightly"
        assert list_agent_grammar_keys() == ("claude-code", "codex", "opencode")
    finally:
        reset_agent_grammar_registry()
        initialize_default_agent_grammars()

    assert get_agent_grammar("codex").binary == "codex"


def test_agent_registry_plugin_factory_builds_configured_grammar(
    tmp_path: Path,
    monkeypatch,
) -> None:
    plugin_module = tmp_path / "grammar_factory_fixture.py"
    plugin_module.write_text(
        "\n".join(
            [
                "from relaypack.agents.codex import CodexGrammar",
                "",
                "class TaggedCodexGrammar(CodexGrammar):",
                "    def __init__(self, tag):",
                "        self.tag = tag",
                "",
                "def make():",
                "    return TaggedCodexGrammar('nightly')",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    reset_agent_grammar_registry()
    initialize_default_agent_grammars()
    try:
        load_agent_grammars_from_plugins(
            {"codex": "grammar_factory_fixture:make", "codex-tagged": "grammar_factory_fixture:make"},
            overwrite=True,
        )
        first = get_agent_grammar("codex")
        second = get_agent_grammar("codex-tagged")
        assert first.tag == "nightly"
        assert second.tag == "nightly"
        assert first is not second
        assert list_agent_grammar_keys() == ("claude-code", "codex", "codex-tagged", "opencode")
    finally:
        reset_agent_grammar_registry()
        initialize_default_agent_grammars()

    assert not hasattr(get_agent_grammar("codex"), "tag")


def test_grammar_registry_rejects_non_callable_entrypoint(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "grammar_constant_fixture.py").write_text("GRAMMAR = 'codex'\n", encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    registry = GrammarRegistry()

    with pytest.raises(AgentRegistryError, match="is not callable"):
        registry.register("codex", load_grammar_factory("grammar_constant_fixture:GRAMMAR"))
    assert registry.keys() == ()
