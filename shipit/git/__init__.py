"""Git operations used by the release pipeline.

Usage:
    from shipit.git import Repository

    repo = Repository(Path("/path/to/package"))
    if not repo.has_upstream():
        print("nothing to push to")
"""

from shipit.git.repository import (
    GitError,
    GitStatus,
    Repository,
    StatusEntry,
)

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
]
