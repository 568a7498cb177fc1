"""
blazer/compiler.py
══════════════════

Runs the compiler and streams its diagnostic output.

The error stream is a pipe.  If nobody reads it while the compiler runs,
the compiler blocks as soon as the OS pipe buffer is full, so a single
reader thread drains it into a queue from the moment the process
starts.  The caller consumes the queue line by line; end of stream is
signalled by a sentinel, after which the process is reaped and a
non-zero exit status becomes :class:`CompilerFailedError`.

Usage::

    with CompilerProcess(["go", "build", "-gcflags", "-S", "./..."], cwd=root) as proc:
        for line in proc.lines():
            builder.feed(line)
        proc.wait()
"""

from __future__ import annotations

import logging
import os
import queue
import re
import subprocess
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, Iterator, List, Optional, Sequence, Tuple

from blazer.errors import (
    CompilerFailedError,
    CompilerTimeoutError,
    DiagnosticStreamError,
)

logger = logging.getLogger(__name__)

# Lines of the error stream kept for the failure message. Assembly listing
# lines are never kept.
TAIL_LINES = 20

_ASSEMBLY_LINE = re.compile(r"^(?:\t|\S+ S[A-Z]+ .*\bsize=\d+)")

_EOF = object()


class CompilerProcess:
    """
    One compiler invocation with a concurrently drained error stream.

    Parameters
    ----------
    command:
        Program and arguments.
    cwd:
        Working directory of the compiler; also exported as ``PWD``.
    timeout:
        Bound in seconds on the whole run (streaming and exit), or
        ``None`` to wait forever.
    """

    def __init__(
        self,
        command: Sequence[str],
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        self.command: Tuple[str, ...] = tuple(command)
        self.cwd = cwd
        self.timeout = timeout
        self._env = env
        self._proc: Optional[subprocess.Popen] = None
        self._reader: Optional[threading.Thread] = None
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._deadline: Optional[float] = None
        self._tail: Deque[str] = deque(maxlen=TAIL_LINES)
        self._reader_error: Optional[BaseException] = None

    # ── context manager ──────────────────────────────────────────────

    def __enter__(self) -> CompilerProcess:
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # ── lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Launch the compiler and start draining its error stream."""
        if self._proc is not None:
            raise RuntimeError("compiler already started")
        env = dict(os.environ if self._env is None else self._env)
        if self.cwd:
            env["PWD"] = self.cwd
        logger.info("Running %s", " ".join(self.command))
        try:
            self._proc = subprocess.Popen(
                self.command,
                cwd=self.cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            raise DiagnosticStreamError(self.command, exc.strerror or str(exc)) from exc
        if self._proc.stderr is None:
            self._proc.kill()
            raise DiagnosticStreamError(self.command, "error stream not available")
        if self.timeout is not None:
            self._deadline = time.monotonic() + self.timeout
        self._reader = threading.Thread(
            target=self._read_stream,
            name="blazer-diagnostics",
            daemon=True,
        )
        self._reader.start()

    def _read_stream(self) -> None:
        assert self._proc is not None and self._proc.stderr is not None
        try:
            for line in self._proc.stderr:
                self._queue.put(line)
        except (OSError, ValueError) as exc:
            self._reader_error = exc
        finally:
            self._queue.put(_EOF)

    def _remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return self._deadline - time.monotonic()

    def _expire(self) -> CompilerTimeoutError:
        self.kill()
        assert self.timeout is not None
        return CompilerTimeoutError(self.timeout)

    def lines(self) -> Iterator[str]:
        """
        Yield error-stream lines in arrival order until end of stream.

        Raises
        ------
        CompilerTimeoutError
            The configured bound expired; the compiler has been killed.
        """
        if self._proc is None:
            raise RuntimeError("compiler not started")
        while True:
            remaining = self._remaining()
            if remaining is not None and remaining <= 0:
                raise self._expire()
            try:
                item = self._queue.get(timeout=remaining)
            except queue.Empty:
                raise self._expire() from None
            if item is _EOF:
                break
            text = item.rstrip("\r\n")
            if not _ASSEMBLY_LINE.match(text):
                self._tail.append(text)
            yield item
        if self._reader_error is not None:
            raise DiagnosticStreamError(self.command, str(self._reader_error))

    def wait(self) -> int:
        """
        Reap the compiler after its stream is exhausted.

        Raises
        ------
        CompilerFailedError
            Non-zero exit status.
        CompilerTimeoutError
            The configured bound expired before the process exited.
        """
        if self._proc is None:
            raise RuntimeError("compiler not started")
        if self._reader is not None:
            self._reader.join(timeout=self._remaining())
        try:
            returncode = self._proc.wait(timeout=self._remaining())
        except subprocess.TimeoutExpired:
            raise self._expire() from None
        logger.info("Compiler exited with status %d", returncode)
        if returncode != 0:
            raise CompilerFailedError(returncode, list(self._tail))
        return returncode

    def kill(self) -> None:
        if self._proc is not None and self._proc.poll() is None:
            logger.warning("Killing compiler (pid %d)", self._proc.pid)
            self._proc.kill()
            self._proc.wait()

    def close(self) -> None:
        """Kill the compiler if still running and release the pipe."""
        if self._proc is None:
            return
        self.kill()
        if self._proc.stderr is not None:
            self._proc.stderr.close()

    @property
    def tail(self) -> List[str]:
        return list(self._tail)

    @property
    def returncode(self) -> Optional[int]:
        return self._proc.returncode if self._proc is not None else None


def stream_diagnostics(
    command: Sequence[str],
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Iterator[str]:
    """Run *command* and yield its error stream; raise if it fails."""
    with CompilerProcess(command, cwd=cwd, timeout=timeout) as proc:
        yield from proc.lines()
        proc.wait()


__all__ = ["CompilerProcess", "stream_diagnostics", "TAIL_LINES"]
