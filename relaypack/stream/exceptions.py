"""Stream normalization exceptions."""


class RelayError(Exception):
    """Base class for normalization errors."""


class StreamParseError(RelayError):
    """A line of agent output was not a JSON object or array."""

    def __init__(self, context: str, payload: str) -> None:
        super().__init__(context)
        self.context = context
        self.payload = payload
