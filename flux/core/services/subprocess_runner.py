"""
Subprocess runner — the single place where child processes are started.

Two flavours:
    - ``run_streaming``  → merged stdout/stderr delivered line by line
    - ``run_interactive`` → inherits the terminal (for password prompts)

Streaming model
───────────────
The child writes stdout and stderr into one pipe, so lines arrive in
exactly the order the child produced them. A single reader thread
turns the pipe into lines and pushes them onto a bounded queue,
finishing with a sentinel. The calling thread consumes the queue,
hands each line to ``on_output``, then waits for the child and joins
the reader. Every line is delivered and the reader thread never
outlives the call, on success and on failure alike.
"""

from __future__ import annotations

import logging
import os
import queue
import subprocess
import threading
from typing import IO, Callable

logger = logging.getLogger(__name__)

OutputFunc = Callable[[str], None]

# Maximum lines buffered between the reader thread and the consumer
DEFAULT_QUEUE_SIZE = 1024

_EOF = object()


class ProcessError(Exception):
    """Base error for child processes."""


class CommandNotFound(ProcessError):
    """The executable does not exist on PATH."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Command not found: {command}")
        self.command = command


class CommandFailed(ProcessError):
    """The child exited with a non-zero status."""

    def __init__(self, cmd: list[str], returncode: int) -> None:
        super().__init__(
            f"Command {' '.join(cmd)!r} failed (exit {returncode})"
        )
        self.cmd = list(cmd)
        self.returncode = returncode


def _pump_lines(stream: IO[str], lines: queue.Queue) -> None:
    """Reader thread body: pipe → queue, then the EOF sentinel."""
    try:
        for line in stream:
            lines.put(line.rstrip("\r\n"))
    except (OSError, ValueError) as e:
        logger.debug("Output reader stopped: %s", e)
    finally:
        lines.put(_EOF)


def run_streaming(
    cmd: list[str],
    on_output: OutputFunc,
    *,
    cwd: str | os.PathLike | None = None,
    env: dict[str, str] | None = None,
    queue_size: int = DEFAULT_QUEUE_SIZE,
) -> int:
    """Run ``cmd`` and deliver its merged output to ``on_output``.

    Blocks until the child has exited and every buffered line has been
    delivered. There is no timeout.

    Args:
        cmd: Command list (no shell).
        on_output: Called once per output line, in order, on this thread.
        cwd: Working directory for the child.
        env: Full environment for the child (default: inherited).
        queue_size: Bound on lines buffered between reader and consumer.

    Returns:
        The child's exit status.

    Raises:
        CommandNotFound: The executable does not exist.
    """
    logger.debug("Streaming: %s (cwd=%s)", cmd, cwd)

    try:
        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except FileNotFoundError as e:
        raise CommandNotFound(cmd[0]) from e

    assert proc.stdout is not None
    lines: queue.Queue = queue.Queue(maxsize=queue_size)
    reader = threading.Thread(
        target=_pump_lines,
        args=(proc.stdout, lines),
        name=f"flux-output-{proc.pid}",
        daemon=True,
    )
    reader.start()

    drained = False
    try:
        while True:
            item = lines.get()
            if item is _EOF:
                drained = True
                break
            on_output(item)
    finally:
        # If on_output raised, keep draining so the reader can finish
        if not drained:
            while lines.get() is not _EOF:
                pass
        returncode = proc.wait()
        reader.join()
        proc.stdout.close()

    logger.debug("Exit %d: %s", returncode, cmd[0])
    return returncode


def run_checked(
    cmd: list[str],
    on_output: OutputFunc,
    *,
    cwd: str | os.PathLike | None = None,
    env: dict[str, str] | None = None,
) -> None:
    """``run_streaming`` that raises ``CommandFailed`` on non-zero exit."""
    returncode = run_streaming(cmd, on_output, cwd=cwd, env=env)
    if returncode != 0:
        raise CommandFailed(cmd, returncode)


def run_interactive(
    cmd: list[str],
    *,
    cwd: str | os.PathLike | None = None,
    env: dict[str, str] | None = None,
) -> int:
    """Run ``cmd`` attached to this terminal (stdin/stdout/stderr inherited).

    Returns:
        The child's exit status.

    Raises:
        CommandNotFound: The executable does not exist.
    """
    logger.debug("Interactive: %s (cwd=%s)", cmd, cwd)
    try:
        result = subprocess.run(cmd, cwd=cwd, env=env, check=False)
    except FileNotFoundError as e:
        raise CommandNotFound(cmd[0]) from e
    return result.returncode
