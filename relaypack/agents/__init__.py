"""Agent grammar registry and built-in grammars."""

from relaypack.agents.base import AgentGrammar
from relaypack.agents.claude_code import ClaudeCodeGrammar
from relaypack.agents.codex import CodexGrammar
from relaypack.agents.opencode import OpenCodeGrammar
from relaypack.agents.registry import (
    AgentRegistryError,
    GrammarRegistry,
    get_agent_grammar,
    initialize_default_agent_grammars,
    list_agent_grammar_keys,
    load_agent_grammars_from_plugins,
    load_grammar_factory,
    register_agent_grammar,
    register_agent_grammar_entrypoint,
    reset_agent_grammar_registry,
)

initialize_default_agent_grammars()

__all__ = [
    "AgentGrammar",
    "AgentRegistryError",
    "GrammarRegistry",
    "ClaudeCodeGrammar",
    "CodexGrammar",
    "OpenCodeGrammar",
    "get_agent_grammar",
    "initialize_default_agent_grammars",
    "list_agent_grammar_keys",
    "load_agent_grammars_from_plugins",
    "load_grammar_factory",
    "register_agent_grammar",
    "register_agent_grammar_entrypoint",
    "reset_agent_grammar_registry",
]
