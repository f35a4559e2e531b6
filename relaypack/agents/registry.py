"""Agent grammar registry.

Grammars are stored as zero-argument factories and a fresh grammar is built
on every lookup, so a grammar never carries state from one parse into the
next. Plugins name a factory as ``module:attribute``; the attribute may be a
grammar class or any callable returning a grammar.
"""

from __future__ import annotations

import importlib
from typing import Callable

from relaypack.agents.base import AgentGrammar

GrammarFactory = Callable[[], AgentGrammar]


class AgentRegistryError(ValueError):
    """Raised when agent grammar registration or lookup fails."""


def _normalize_key(key: str) -> str:
    normalized = key.strip().lower()
    if not normalized:
        raise AgentRegistryError("Agent key cannot be empty.")
    return normalized


def load_grammar_factory(entrypoint: str) -> GrammarFactory:
    """Import the ``module:attribute`` factory named by ``entrypoint``."""
    module_name, separator, attribute = entrypoint.partition(":")
    if not separator or not module_name or not attribute:
        raise AgentRegistryError(
            f"Invalid agent grammar entrypoint '{entrypoint}'. Expected module:attribute."
        )
    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attribute)
    except (ImportError, AttributeError) as error:
        raise AgentRegistryError(
            f"Unable to load agent grammar entrypoint '{entrypoint}': {error}"
        ) from error
    if not callable(factory):
        raise AgentRegistryError(f"Agent grammar entrypoint '{entrypoint}' is not callable.")
    return factory


class GrammarRegistry:
    """Maps agent keys to grammar factories."""

    def __init__(self) -> None:
        self._factories: dict[str, GrammarFactory] = {}

    def register(self, key: str, factory: GrammarFactory, *, overwrite: bool = False) -> None:
        normalized = _normalize_key(key)
        if not callable(factory):
            raise AgentRegistryError(f"Grammar factory for '{normalized}' is not callable.")
        if not overwrite and normalized in self._factories:
            raise AgentRegistryError(f"Agent '{normalized}' is already registered.")
        self._factories[normalized] = factory

    def resolve(self, key: str) -> AgentGrammar:
        normalized = key.strip().lower()
        factory = self._factories.get(normalized)
        if factory is None:
            raise AgentRegistryError(f"Agent '{normalized}' is not registered.")
        return factory()

    def keys(self) -> tuple[str, ...]:
        return tuple(sorted(self._factories))

    def clear(self) -> None:
        self._factories.clear()

    def install_builtins(self, *, overwrite: bool = False) -> None:
        from relaypack.agents.claude_code import ClaudeCodeGrammar
        from relaypack.agents.codex import CodexGrammar
        from relaypack.agents.opencode import OpenCodeGrammar

        for grammar_cls in (ClaudeCodeGrammar, CodexGrammar, OpenCodeGrammar):
            if grammar_cls.name in self._factories and not overwrite:
                continue
            self._factories[grammar_cls.name] = grammar_cls


_REGISTRY = GrammarRegistry()


def register_agent_grammar(
    key: str,
    factory: GrammarFactory,
    *,
    overwrite: bool = False,
) -> None:
    _REGISTRY.register(key, factory, overwrite=overwrite)


def register_agent_grammar_entrypoint(
    key: str,
    entrypoint: str,
    *,
    overwrite: bool = False,
) -> None:
    _REGISTRY.register(key, load_grammar_factory(entrypoint), overwrite=overwrite)


def get_agent_grammar(key: str) -> AgentGrammar:
    return _REGISTRY.resolve(key)


def list_agent_grammar_keys() -> tuple[str, ...]:
    return _REGISTRY.keys()


def reset_agent_grammar_registry() -> None:
    _REGISTRY.clear()


def initialize_default_agent_grammars(*, overwrite: bool = False) -> None:
    _REGISTRY.install_builtins(overwrite=overwrite)


def load_agent_grammars_from_plugins(
    plugins: dict[str, str] | None = None,
    *,
    overwrite: bool = False,
) -> None:
    """Register every ``key -> module:attribute`` entry of ``plugins``."""
    if not plugins:
        return
    for key, entrypoint in plugins.items():
        register_agent_grammar_entrypoint(key, entrypoint, overwrite=overwrite)
