"""Process execution exceptions."""


class ExecutionError(Exception):
    """Base class for process execution failures."""


class MissingBinaryError(ExecutionError):
    """Raised when an agent binary cannot be found before launch."""

    def __init__(self, binary: str, message: str) -> None:
        super().__init__(message)
        self.binary = binary
