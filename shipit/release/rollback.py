"""Undo a version bump whose publish did not succeed.

Two call sites may ask for a rollback in the same run: the publish
stage's failure path and the shutdown hook. ``RunOnce`` makes sure the
git side effects happen at most once and that every caller sees the same
outcome. The work runs on its own non-daemon thread, so an interrupt that
unwinds the caller cannot cut a rollback short; a later caller (or
interpreter shutdown) simply waits for it.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Generic, TypeVar

from shipit.core.result import Err
from shipit.git.repository import Repository
from shipit.output.console import ConsoleProtocol
from shipit.release.package import read_package

__all__ = ["RollbackOutcome", "RollbackState", "RunOnce", "make_rollback"]

T = TypeVar("T")

_ROLLED_BACK = "Successfully rolled back the project to its previous state."


def _start_worker(target: Callable[[], None], name: str) -> None:
    threading.Thread(target=target, name=name, daemon=False).start()


class RunOnce(Generic[T]):
    """Call ``fn`` on the first invocation only; later calls share its result.

    ``fn`` normally runs on a non-daemon worker thread. When no thread can be
    started (at interpreter shutdown, e.g. from an ``atexit`` hook) it runs
    inline on the calling thread instead.
    """

    def __init__(self, fn: Callable[[], T], *, name: str = "run-once") -> None:
        self._fn = fn
        self._name = name
        self._lock = threading.Lock()
        self._future: Future[T] | None = None

    @property
    def started(self) -> bool:
        return self._future is not None

    def __call__(self) -> T:
        inline = False
        with self._lock:
            if self._future is None:
                future: Future[T] = Future()
                self._future = future
                try:
                    _start_worker(partial(self._work, future), self._name)
                except RuntimeError:
                    inline = True
            future = self._future
        if inline:
            self._work(future)
        return future.result()

    def _work(self, future: Future[T]) -> None:
        try:
            value = self._fn()
        except BaseException as e:
            future.set_exception(e)
            return
        future.set_result(value)


@dataclass(frozen=True, slots=True)
class RollbackState:
    tag_version_prefix: str
    latest_tag: str
    latest_tag_version: str
    on_disk_version: str
    run_start_version: str

    @property
    def bumped_this_run(self) -> bool:
        """The latest tag matches package.json, and both moved during this run."""
        return (
            self.latest_tag_version == self.on_disk_version
            and self.on_disk_version != self.run_start_version
        )


@dataclass(frozen=True, slots=True)
class RollbackOutcome:
    ok: bool
    performed: bool
    message: str


def make_rollback(
    *,
    project_root: Path,
    run_start_version: str,
    tag_version_prefix: Callable[[], str],
    console: ConsoleProtocol,
    repo: Repository | None = None,
) -> RunOnce[RollbackOutcome]:
    """Build the one-shot rollback for a run that started at ``run_start_version``."""
    git = repo or Repository(project_root)

    def rollback() -> RollbackOutcome:
        _report(console.warning, "Publish failed. Rolling back to the previous state...")
        outcome = _rollback(git, project_root, run_start_version, tag_version_prefix)
        _report(console.success if outcome.ok else console.error, outcome.message)
        return outcome

    return RunOnce(rollback, name="shipit-rollback")


def _report(emit: Callable[[str], None], message: str) -> None:
    # A dead terminal (EIO after SIGHUP) must not stop or fail the undo.
    try:
        emit(message)
    except Exception:
        pass


def _rollback(
    git: Repository,
    project_root: Path,
    run_start_version: str,
    tag_version_prefix: Callable[[], str],
) -> RollbackOutcome:
    try:
        state = _read_state(git, project_root, run_start_version, tag_version_prefix())
        if isinstance(state, str):
            return _failed(state)

        if not state.bumped_this_run:
            return RollbackOutcome(ok=True, performed=False, message=_ROLLED_BACK)

        deleted = git.delete_tag(state.latest_tag)
        if isinstance(deleted, Err):
            return _failed(deleted.error.message)
        removed = git.remove_last_commit()
        if isinstance(removed, Err):
            return _failed(removed.error.message)
    except Exception as e:  # reported, never raised
        return _failed(str(e))

    return RollbackOutcome(ok=True, performed=True, message=_ROLLED_BACK)


def _failed(reason: str) -> RollbackOutcome:
    return RollbackOutcome(
        ok=False,
        performed=False,
        message=f"Couldn't roll back because of the following error:\n{reason}",
    )


def _read_state(
    git: Repository,
    project_root: Path,
    run_start_version: str,
    prefix: str,
) -> RollbackState | str:
    tag = git.latest_tag()
    if isinstance(tag, Err):
        return tag.error.message
    pkg = read_package(project_root)
    if isinstance(pkg, Err):
        return pkg.error.message

    latest = tag.value
    tag_version = latest[len(prefix) :] if latest.startswith(prefix) else latest
    return RollbackState(
        tag_version_prefix=prefix,
        latest_tag=latest,
        latest_tag_version=tag_version,
        on_disk_version=pkg.value.version,
        run_start_version=run_start_version,
    )
