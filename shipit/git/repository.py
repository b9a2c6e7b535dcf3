"""Git repository abstraction.

Repository wraps the git queries and mutations a release needs: status
for the pre-flight checks, tag lookup and deletion plus commit removal
for rollback, and push for the final stage. Every operation returns a
Result.

Usage:
    repo = Repository(Path("/path/to/package"))

    match repo.latest_tag():
        case Ok(tag):
            print(f"Latest tag: {tag}")
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from shipit.core.result import Err, Ok, Result
from shipit.platform.process import ProcessError
from shipit.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry in git status (``xy`` code plus path)."""

    xy: str
    path: str

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed ``git status --porcelain=v1 -b``.

    Attributes:
        branch: Current branch name
        upstream: Upstream branch (e.g., "origin/main"), None if not set
        ahead: Number of commits ahead of upstream
        behind: Number of commits behind upstream
        entries: All status entries (staged, unstaged, untracked)
    """

    branch: str
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return len(self.entries) == 0


class Repository:
    """Git operations on the repository holding the package.

    Attributes:
        path: Path to the repository (or a directory inside it)
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def status(self) -> Result[GitStatus, GitError]:
        """Get repository status."""
        result = self._run(["status", "--porcelain=v1", "-b"])
        match result:
            case Err(e):
                return Err(self._error("status", e, "git status failed"))
            case Ok(stdout):
                return Ok(self._parse_status(stdout))

    def has_upstream(self) -> bool:
        """Check if current branch has an upstream configured."""
        result = self._run(["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"])
        return isinstance(result, Ok)

    def current_branch(self) -> str | None:
        """Get current branch name, or None on detached HEAD / error."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def fetch(self) -> Result[str, GitError]:
        result = self._run(["fetch"])
        match result:
            case Err(e):
                return Err(self._error("fetch", e, "fetch failed"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def latest_tag(self) -> Result[str, GitError]:
        """Most recent tag reachable from HEAD."""
        result = self._run(["describe", "--abbrev=0", "--tags"])
        match result:
            case Err(e):
                return Err(self._error("describe", e, "no tags found"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def tag_exists(self, name: str) -> bool:
        result = self._run(["rev-parse", "--quiet", "--verify", f"refs/tags/{name}"])
        return isinstance(result, Ok)

    def delete_tag(self, name: str) -> Result[None, GitError]:
        result = self._run(["tag", "--delete", name])
        match result:
            case Err(e):
                return Err(self._error(f"tag --delete {name}", e, "tag deletion failed"))
            case Ok(_):
                return Ok(None)

    def remove_last_commit(self) -> Result[None, GitError]:
        """Drop HEAD and restore the working tree to its parent."""
        result = self._run(["reset", "--hard", "HEAD~1"])
        match result:
            case Err(e):
                return Err(self._error("reset --hard HEAD~1", e, "reset failed"))
            case Ok(_):
                return Ok(None)

    def push(self) -> Result[str, GitError]:
        """Push the current branch together with its annotated tags."""
        result = self._run(["push", "--follow-tags"])
        match result:
            case Err(e):
                return Err(self._error("push --follow-tags", e, "push failed"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def _error(self, command: str, e: ProcessError, fallback: str) -> GitError:
        return GitError(
            command=command,
            message=e.stderr.strip() or e.stdout.strip() or fallback,
            returncode=e.returncode,
        )

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "push"}
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    def _parse_status(self, output: str) -> GitStatus:
        lines = [ln for ln in output.splitlines() if ln.strip()]
        if not lines:
            return GitStatus(branch="")

        # ## branch...upstream [ahead N, behind M]
        branch_line = lines[0]
        branch, upstream = self._parse_branch_line(branch_line)
        ahead, behind = self._parse_ahead_behind(branch_line)

        entries: list[StatusEntry] = []
        for line in lines[1:]:
            if len(line) < 4:
                continue
            entries.append(StatusEntry(xy=line[:2], path=line[3:]))

        return GitStatus(
            branch=branch,
            upstream=upstream,
            ahead=ahead,
            behind=behind,
            entries=tuple(entries),
        )

    def _parse_branch_line(self, line: str) -> tuple[str, str | None]:
        s = line.strip()
        if s.startswith("##"):
            s = s[2:].lstrip()
        s = s.split(" [", 1)[0].strip()
        if "..." in s:
            left, right = s.split("...", 1)
            return (left.strip(), right.strip())
        return (s, None)

    def _parse_ahead_behind(self, line: str) -> tuple[int, int]:
        match = re.search(r"\[([^\]]+)\]", line)
        if not match:
            return (0, 0)
        inside = match.group(1)
        ahead_match = re.search(r"ahead\s+(\d+)", inside)
        behind_match = re.search(r"behind\s+(\d+)", inside)
        ahead = int(ahead_match.group(1)) if ahead_match else 0
        behind = int(behind_match.group(1)) if behind_match else 0
        return (ahead, behind)
