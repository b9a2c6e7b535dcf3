"""Shutdown hooks that run before the process is allowed to exit.

ShutdownHooks covers every way a release can end early: normal interpreter
exit, an uncaught exception, and SIGINT/SIGTERM/SIGHUP. A signal is turned
into ``SystemExit(128 + signum)`` so the stack unwinds (stopping any
running npm/yarn child). The CLI then calls ``run_hooks`` from a
``finally`` while the interpreter is still fully alive. The ``atexit``
registration is the fallback for callers that never do; by then Python
has joined non-daemon threads, so an in-flight rollback has settled.
Each hook runs once whichever path gets there first. Signals received
while hooks run are ignored.

Usage:
    hooks = ShutdownHooks(console)
    hooks.add(lambda: rollback() if not published else None)
    hooks.install()
    try:
        ...
    finally:
        hooks.run_hooks()
"""

from __future__ import annotations

import atexit
import signal
import threading
from collections.abc import Callable
from types import FrameType
from typing import Any

from shipit.core.errors import SIGNAL_EXIT_BASE
from shipit.output.console import ConsoleProtocol

__all__ = ["ShutdownHook", "ShutdownHooks"]

ShutdownHook = Callable[[], None]
SignalHandler = Callable[[int, FrameType | None], Any] | int | None


def _termination_signals() -> tuple[signal.Signals, ...]:
    names = ("SIGINT", "SIGTERM", "SIGHUP")
    return tuple(getattr(signal, n) for n in names if hasattr(signal, n))


class ShutdownHooks:
    """Registry of hooks run once when the process terminates."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self._console = console
        self._hooks: list[ShutdownHook] = []
        self._lock = threading.Lock()
        self._running = False
        self._installed = False
        self._original: dict[signal.Signals, SignalHandler] = {}

    @property
    def installed(self) -> bool:
        return self._installed

    def add(self, hook: ShutdownHook) -> None:
        with self._lock:
            self._hooks.append(hook)

    def install(self) -> None:
        """Install signal handlers and the atexit callback. Idempotent.

        Must be called from the main thread (a ``signal`` restriction).
        """
        with self._lock:
            if self._installed:
                return
            for sig in _termination_signals():
                self._original[sig] = signal.signal(sig, self._handle_signal)
            atexit.register(self.run_hooks)
            self._installed = True

    def uninstall(self) -> None:
        with self._lock:
            if not self._installed:
                return
            for sig, handler in self._original.items():
                signal.signal(sig, handler)
            self._original.clear()
            atexit.unregister(self.run_hooks)
            self._installed = False

    def run_hooks(self) -> None:
        """Run every pending hook once, in registration order.

        Hook errors are reported on the console; they never stop the
        remaining hooks or the exit itself.
        """
        with self._lock:
            hooks = list(self._hooks)
            self._hooks.clear()
            self._running = True
        try:
            for hook in hooks:
                try:
                    hook()
                except Exception as e:
                    self._console.error(f"shutdown hook failed: {e}")
        finally:
            with self._lock:
                self._running = False

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        del frame
        name = signal.Signals(signum).name
        if self._running:
            self._console.warning(f"{name} received while rolling back; waiting for it to finish")
            return
        self._console.warning(f"{name} received, stopping release")
        raise SystemExit(SIGNAL_EXIT_BASE + signum)
