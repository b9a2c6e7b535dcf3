"""Exit codes for the shipit CLI.

The values are used as process exit codes and should remain stable:
- 0: Release completed
- 1: User error (bad version input, invalid config)
- 2: Environment error (prerequisites or git checks failed)
- 3: Release error (install, tests, version bump, push, draft)
- 4: Publish error (publish failed, project rolled back)

Interrupted runs exit with 128 + signal number, like a shell would.
"""

from enum import IntEnum

__all__ = ["ErrorCode", "SIGNAL_EXIT_BASE"]

SIGNAL_EXIT_BASE = 128


class ErrorCode(IntEnum):
    """Exit codes for the release command."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    RELEASE_ERROR = 3
    PUBLISH_ERROR = 4

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
