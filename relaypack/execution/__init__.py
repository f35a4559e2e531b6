"""Execution subsystem for RelayKit."""

from relaypack.execution.binary import assert_available, is_available
from relaypack.execution.exceptions import ExecutionError, MissingBinaryError
from relaypack.execution.executor import (
    DEFAULT_READ_CHUNK_SIZE,
    ExecResult,
    OutputCallback,
    SubprocessExecutor,
)

__all__ = [
    "ExecutionError",
    "MissingBinaryError",
    "is_available",
    "assert_available",
    "DEFAULT_READ_CHUNK_SIZE",
    "ExecResult",
    "OutputCallback",
    "SubprocessExecutor",
]
