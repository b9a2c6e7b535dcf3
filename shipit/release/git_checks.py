"""Pre-flight checks on the git working copy."""

from __future__ import annotations

from shipit.core.result import Err, Ok, Result
from shipit.git.repository import Repository
from shipit.release.errors import ReleaseError
from shipit.release.pipeline import RunContext, StageAction

DEFAULT_RELEASE_BRANCHES = ("main", "master")


def check_git(repo: Repository, *, any_branch: bool, branch: str | None) -> StageAction:
    allowed = (branch,) if branch else DEFAULT_RELEASE_BRANCHES

    def action(ctx: RunContext) -> Result[None, ReleaseError]:
        if not any_branch:
            current = repo.current_branch()
            if current not in allowed:
                return Err(
                    ReleaseError(
                        kind="git_check_failed",
                        message=f"not on a release branch (current: {current or 'detached HEAD'})",
                        hint=f"Switch to {' or '.join(allowed)}, or pass --any-branch.",
                    )
                )

        if repo.has_upstream():
            fetched = repo.fetch()
            if isinstance(fetched, Err):
                return Err(ReleaseError(kind="git_check_failed", message=fetched.error.message))

        status = repo.status()
        if isinstance(status, Err):
            return Err(ReleaseError(kind="git_check_failed", message=status.error.message))

        if not status.value.is_clean:
            return Err(
                ReleaseError(
                    kind="git_check_failed",
                    message="unclean working tree",
                    hint="Commit or stash changes first.",
                )
            )

        if status.value.behind:
            return Err(
                ReleaseError(
                    kind="git_check_failed",
                    message=f"remote history differs ({status.value.behind} commit(s) behind)",
                    hint="Pull changes first.",
                )
            )

        return Ok(None)

    return action
