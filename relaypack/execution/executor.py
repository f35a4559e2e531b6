"""Host subprocess executor with tagged, incrementally decoded output chunks."""

from __future__ import annotations

import codecs
from dataclasses import dataclass
import logging
import os
import selectors
import subprocess
import time
from typing import Callable, Mapping, Sequence

from relaypack.core.types import StreamTag
from relaypack.execution.exceptions import ExecutionError, MissingBinaryError

logger = logging.getLogger(__name__)

OutputCallback = Callable[[StreamTag, str], None]

DEFAULT_READ_CHUNK_SIZE = 65536


@dataclass(frozen=True, slots=True)
class ExecResult:
    """Captured output of one finished process."""

    stdout: str
    stderr: str
    exit_code: int
    timed_out: bool = False
    duration_ms: float = 0.0

    @property
    def is_success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class SubprocessExecutor:
    """Runs a command and reports its output as it arrives.

    Both pipes are drained from a single thread with ``selectors``; bytes are
    decoded with one incremental UTF-8 decoder per stream so multi-byte
    characters split across reads come out whole. ``on_output`` is invoked
    synchronously, in read order, with ``("out" | "err", text)``.
    """

    def __init__(
        self,
        *,
        timeout: float | None = None,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
        read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
    ) -> None:
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive.")
        if read_chunk_size < 1:
            raise ValueError("read_chunk_size must be at least 1.")
        self.timeout = timeout
        self.cwd = cwd
        self.env = dict(env) if env is not None else None
        self.read_chunk_size = read_chunk_size

    def execute(
        self,
        command: Sequence[str],
        on_output: OutputCallback | None = None,
    ) -> ExecResult:
        argv = list(command)
        if not argv:
            raise ExecutionError("Command cannot be empty.")

        started = time.monotonic()
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=self.cwd,
                env=self.env,
            )
        except FileNotFoundError as error:
            raise MissingBinaryError(argv[0], f"Command not found: {argv[0]}") from error
        except OSError as error:
            raise ExecutionError(f"Unable to start {argv[0]}: {error}") from error

        logger.debug("spawned pid=%s argv=%s", process.pid, argv)
        captured: dict[str, list[str]] = {"out": [], "err": []}
        timed_out = False
        try:
            timed_out = self._pump(process, captured, on_output, started)
        finally:
            if process.poll() is None:
                process.kill()
            exit_code = process.wait()
            for pipe in (process.stdout, process.stderr):
                if pipe is not None:
                    pipe.close()

        duration_ms = (time.monotonic() - started) * 1000
        logger.debug(
            "pid=%s exited code=%s timed_out=%s duration_ms=%.1f",
            process.pid,
            exit_code,
            timed_out,
            duration_ms,
        )
        return ExecResult(
            stdout="".join(captured["out"]),
            stderr="".join(captured["err"]),
            exit_code=exit_code,
            timed_out=timed_out,
            duration_ms=duration_ms,
        )

    def _pump(
        self,
        process: subprocess.Popen[bytes],
        captured: dict[str, list[str]],
        on_output: OutputCallback | None,
        started: float,
    ) -> bool:
        deadline = started + self.timeout if self.timeout is not None else None
        decoders = {
            "out": codecs.getincrementaldecoder("utf-8")(errors="replace"),
            "err": codecs.getincrementaldecoder("utf-8")(errors="replace"),
        }

        with selectors.DefaultSelector() as selector:
            selector.register(process.stdout, selectors.EVENT_READ, "out")
            selector.register(process.stderr, selectors.EVENT_READ, "err")

            while selector.get_map():
                remaining = None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        logger.warning("pid=%s timed out after %ss; killing", process.pid, self.timeout)
                        process.kill()
                        return True

                for key, _ in selector.select(remaining):
                    tag = key.data
                    data = os.read(key.fd, self.read_chunk_size)
                    if data:
                        text = decoders[tag].decode(data)
                    else:
                        selector.unregister(key.fileobj)
                        text = decoders[tag].decode(b"", final=True)
                    if not text:
                        continue
                    captured[tag].append(text)
                    if on_output is not None:
                        on_output(tag, text)
        return False
