"""Environment-driven settings for RelayKit."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Mapping

_FAIL_FAST_ENV = "RELAYKIT_FAIL_FAST"
_READ_CHUNK_SIZE_ENV = "RELAYKIT_READ_CHUNK_SIZE"
_READ_CHUNK_SIZE_DEFAULT = 65536
_READ_CHUNK_SIZE_MAX = 1048576
_BINARY_ENV_BY_AGENT = {
    "claude-code": "RELAYKIT_CLAUDE_CODE_BIN",
    "codex": "RELAYKIT_CODEX_BIN",
    "opencode": "RELAYKIT_OPENCODE_BIN",
}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(slots=True)
class RelaySettings:
    """Resolved runtime settings."""

    fail_fast: bool = True
    read_chunk_size: int = _READ_CHUNK_SIZE_DEFAULT
    binaries: dict[str, str] = field(default_factory=dict)

    def binary_for(self, agent: str, default: str) -> str:
        return self.binaries.get(agent, default)


def load_settings(environ: Mapping[str, str] | None = None) -> RelaySettings:
    env = os.environ if environ is None else environ
    return RelaySettings(
        fail_fast=_resolve_fail_fast(env),
        read_chunk_size=_resolve_read_chunk_size(env),
        binaries=_resolve_binaries(env),
    )


def _resolve_fail_fast(env: Mapping[str, str]) -> bool:
    raw = env.get(_FAIL_FAST_ENV)
    if raw is None:
        return True
    # Unrecognized values keep the strict default.
    return raw.strip().lower() not in _FALSE_VALUES


def _resolve_read_chunk_size(env: Mapping[str, str]) -> int:
    raw = env.get(_READ_CHUNK_SIZE_ENV)
    if raw is None:
        return _READ_CHUNK_SIZE_DEFAULT
    try:
        parsed = int(raw)
    except ValueError:
        return _READ_CHUNK_SIZE_DEFAULT
    return min(max(1, parsed), _READ_CHUNK_SIZE_MAX)


def _resolve_binaries(env: Mapping[str, str]) -> dict[str, str]:
    binaries: dict[str, str] = {}
    for agent, env_key in _BINARY_ENV_BY_AGENT.items():
        value = env.get(env_key, "").strip()
        if value:
            binaries[agent] = value
    return binaries
