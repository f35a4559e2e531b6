"""Preflight checks for agent binaries."""

from __future__ import annotations

import os
from pathlib import Path
import shutil

from relaypack.execution.exceptions import MissingBinaryError


def is_available(binary: str) -> bool:
    """Return whether ``binary`` resolves to an executable file."""
    if not binary:
        return False
    if os.sep in binary or (os.altsep is not None and os.altsep in binary):
        path = Path(binary)
        return path.is_file() and os.access(path, os.X_OK)
    return shutil.which(binary) is not None


def assert_available(binary: str, *, label: str | None = None, install_hint: str | None = None) -> None:
    if is_available(binary):
        return
    subject = label or binary
    message = f"{subject} binary '{binary}' was not found in PATH."
    if install_hint:
        message = f"{message} {install_hint}"
    raise MissingBinaryError(binary, message)
