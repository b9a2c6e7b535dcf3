"""Error types for the release pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "invalid_input",
    "config_error",
    "prerequisite_failed",
    "git_check_failed",
    "install_failed",
    "test_failed",
    "version_failed",
    "publish_failed",
    "two_factor_failed",
    "push_failed",
    "release_draft_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    Stages return it inside Err; the CLI renders ``pretty()`` and maps
    ``kind`` to an exit code.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
