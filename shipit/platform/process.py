"""Subprocess execution with Result-based error handling.

Two forms are provided:

- ``run``: capture everything and return once the process exits. Used for
  short git and config queries.
- ``ProcessStream`` / ``stream``: deliver stdout and stderr lines to
  listeners while the process runs, then resolve a terminal result. Used
  by the release stages so npm/yarn progress shows up in real time.

Usage:
    result = stream(["npm", "test"], cwd=root, on_line=console_line)
    match result:
        case Ok(stdout):
            ...
        case Err(error):
            print(error.stderr)
"""

from __future__ import annotations

import queue
import subprocess
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from shipit.core.result import Err, Ok, Result

__all__ = ["LineListener", "ProcessError", "ProcessStream", "run", "stream"]

LineListener = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: The exit code of the process (-1 if it never started).
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"

    @property
    def output(self) -> str:
        """stderr followed by stdout, for matching known failure messages."""
        return "\n".join(part for part in (self.stderr, self.stdout) if part)

    @property
    def detail(self) -> str:
        """Best human-readable description of what went wrong."""
        return self.stderr.strip() or self.stdout.strip() or str(self)


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return stdout or error.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory for the command.
        env: Environment variables (uses current env if None).
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(stdout) on success, Err(ProcessError) on failure.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=e.stdout if isinstance(e.stdout, str) else "",
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)


# (source, line); line is None once the source is exhausted.
_Event = tuple[str, str | None]


def _pump(source: str, pipe: IO[str], events: queue.Queue[_Event]) -> None:
    try:
        for line in pipe:
            events.put((source, line))
    finally:
        pipe.close()
        events.put((source, None))


class ProcessStream:
    """One external process exposed as line events plus a completion future.

    Listeners registered with ``subscribe`` receive every non-empty line of
    stdout and stderr, interleaved in arrival order, on the thread that
    calls ``run``. ``completion`` resolves strictly after the last line has
    been delivered, so a consumer that waits on it has seen all output.
    """

    def __init__(
        self,
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
    ) -> None:
        self.command = tuple(cmd)
        self.cwd = cwd
        self.env = env
        self.completion: Future[Result[str, ProcessError]] = Future()
        self._listeners: list[LineListener] = []

    def subscribe(self, listener: LineListener) -> None:
        self._listeners.append(listener)

    def run(self) -> Result[str, ProcessError]:
        """Spawn the process, deliver its lines, and return the outcome."""
        try:
            result = self._execute()
        except BaseException as e:
            self.completion.set_exception(e)
            raise
        self.completion.set_result(result)
        return result

    def _emit(self, line: str) -> None:
        text = line.rstrip("\r\n")
        if not text.strip():
            return
        for listener in self._listeners:
            listener(text)

    def _execute(self) -> Result[str, ProcessError]:
        try:
            proc = subprocess.Popen(
                list(self.command),
                cwd=str(self.cwd),
                env=self.env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            return Err(ProcessError(command=self.command, returncode=-1, stdout="", stderr=str(e)))

        assert proc.stdout is not None and proc.stderr is not None
        events: queue.Queue[_Event] = queue.Queue()
        readers = [
            threading.Thread(target=_pump, args=("stdout", proc.stdout, events), daemon=True),
            threading.Thread(target=_pump, args=("stderr", proc.stderr, events), daemon=True),
        ]
        for reader in readers:
            reader.start()

        captured: dict[str, list[str]] = {"stdout": [], "stderr": []}
        try:
            open_sources = len(readers)
            while open_sources:
                source, line = events.get()
                if line is None:
                    open_sources -= 1
                    continue
                captured[source].append(line)
                self._emit(line)
            returncode = proc.wait()
        finally:
            if proc.poll() is None:
                proc.terminate()
                proc.wait()

        for reader in readers:
            reader.join()

        stdout = "".join(captured["stdout"])
        stderr = "".join(captured["stderr"])
        if returncode != 0:
            return Err(
                ProcessError(
                    command=self.command,
                    returncode=returncode,
                    stdout=stdout,
                    stderr=stderr,
                )
            )
        return Ok(stdout)


def stream(
    cmd: list[str],
    cwd: Path,
    on_line: LineListener,
    env: dict[str, str] | None = None,
) -> Result[str, ProcessError]:
    """Run a command, streaming each output line to ``on_line``."""
    proc = ProcessStream(cmd, cwd=cwd, env=env)
    proc.subscribe(on_line)
    return proc.run()
