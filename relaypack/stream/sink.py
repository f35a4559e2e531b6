"""Live notification sinks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Protocol

from relaypack.core.models import Response, StreamError, ToolCall


class StreamSink(Protocol):
    """Receiver of normalized notifications while an agent runs."""

    def on_text(self, text: str) -> None:
        """Called with each new text fragment."""

    def on_tool_use(self, tool_call: ToolCall) -> None:
        """Called when a tool call settles."""

    def on_error(self, error: StreamError) -> None:
        """Called when the agent reports an error event."""

    def on_complete(self, response: Response) -> None:
        """Called once with the authoritative response."""


@dataclass(slots=True)
class CallbackSink:
    """Sink that delegates to optional callables.

    ``on_complete`` reaches its callback at most once per sink instance.
    """

    text_handler: Callable[[str], None] | None = None
    tool_use_handler: Callable[[ToolCall], None] | None = None
    complete_handler: Callable[[Response], None] | None = None
    error_handler: Callable[[StreamError], None] | None = None
    _completion_delivered: bool = field(default=False, init=False, repr=False)

    def on_text(self, text: str) -> None:
        if self.text_handler is not None:
            self.text_handler(text)

    def on_tool_use(self, tool_call: ToolCall) -> None:
        if self.tool_use_handler is not None:
            self.tool_use_handler(tool_call)

    def on_error(self, error: StreamError) -> None:
        if self.error_handler is not None:
            self.error_handler(error)

    def on_complete(self, response: Response) -> None:
        if self.complete_handler is None or self._completion_delivered:
            return
        self._completion_delivered = True
        self.complete_handler(response)

    def has_any_handler(self) -> bool:
        return any(
            handler is not None
            for handler in (
                self.text_handler,
                self.tool_use_handler,
                self.complete_handler,
                self.error_handler,
            )
        )
