"""Release pipeline.

- pipeline: stage model, task executor, publish state
- tasks: ordered pipeline construction from options
- npm / prerequisites / git_checks / draft: stage actions
- rollback: one-shot undo of an unpublished version bump
- shutdown: hooks that run the rollback on interrupted exits
- flow: the top-level ``release`` operation
"""

from __future__ import annotations
