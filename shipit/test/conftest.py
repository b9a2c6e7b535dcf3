from __future__ import annotations

import json
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from shipit.core.result import Err, Ok, Result
from shipit.git.repository import GitError, GitStatus, StatusEntry


@dataclass
class FakeRepo:
    """In-memory stand-in for shipit.git.Repository."""

    tags: list[str] = field(default_factory=list)
    upstream: bool = True
    branch: str = "main"
    clean: bool = True
    deleted_tags: list[str] = field(default_factory=list)
    removed_commits: int = 0
    pushes: int = 0

    def latest_tag(self) -> Result[str, GitError]:
        if not self.tags:
            return Err(GitError(command="describe", message="No names found"))
        return Ok(self.tags[-1])

    def tag_exists(self, name: str) -> bool:
        return name in self.tags

    def delete_tag(self, name: str) -> Result[None, GitError]:
        self.tags.remove(name)
        self.deleted_tags.append(name)
        return Ok(None)

    def remove_last_commit(self) -> Result[None, GitError]:
        self.removed_commits += 1
        return Ok(None)

    def has_upstream(self) -> bool:
        return self.upstream

    def push(self) -> Result[str, GitError]:
        self.pushes += 1
        return Ok("")

    def current_branch(self) -> str | None:
        return self.branch

    def fetch(self) -> Result[str, GitError]:
        return Ok("")

    def status(self) -> Result[GitStatus, GitError]:
        if self.clean:
            return Ok(GitStatus(branch=self.branch))
        return Ok(GitStatus(branch=self.branch, entries=(StatusEntry(" M", "index.js"),)))


def write_package(root: Path, version: str, **extra: object) -> Path:
    data: dict[str, object] = {"name": "demo-pkg", "version": version, **extra}
    path = root / "package.json"
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def fake_repo() -> FakeRepo:
    return FakeRepo(tags=["v1.2.0"])


@pytest.fixture
def package_factory():
    return write_package


def _git(cwd: Path, *args: str) -> str:
    env = {
        **os.environ,
        "GIT_AUTHOR_NAME": "Test",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test",
        "GIT_COMMITTER_EMAIL": "test@example.com",
    }
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        env=env,
        capture_output=True,
        text=True,
        check=True,
    )
    return proc.stdout


@pytest.fixture
def git():
    """Run git in a directory with a fixed identity (skips if git is missing)."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")
    return _git


@pytest.fixture
def git_package(tmp_path: Path, git) -> Path:
    """A git repo with package.json at 1.2.0, committed and tagged v1.2.0."""
    git(tmp_path, "init", "-q", "-b", "main")
    write_package(tmp_path, "1.2.0")
    git(tmp_path, "add", "package.json")
    git(tmp_path, "commit", "-q", "-m", "1.2.0")
    git(tmp_path, "tag", "v1.2.0")
    return tmp_path
