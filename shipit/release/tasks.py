"""Assemble the release pipeline.

Sections always appear in this order, and some are left out depending
on the options:

    prerequisites -> git -> cleanup/install -> tests -> version bump
    -> publish -> 2FA -> push tags -> release draft

Whether a section is present is decided here, once. Each stage's own
``enabled``/``skip`` predicates are evaluated later by the executor.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from dataclasses import dataclass

from shipit.core.config import Options
from shipit.core.result import Err, Ok, Result
from shipit.git.repository import Repository
from shipit.release import npm
from shipit.release.draft import open_release_draft
from shipit.release.errors import ReleaseError
from shipit.release.git_checks import check_git
from shipit.release.npm import PackageManager
from shipit.release.package import PackageDescriptor
from shipit.release.pipeline import PublishState, RunContext, Stage, StageAction
from shipit.release.prerequisites import check_prerequisites
from shipit.release.rollback import RollbackOutcome

NO_UPSTREAM_REASON = "Upstream branch not found; not pushing."
NOT_PUBLISHED_REASON = "Couldn't publish package to npm; not pushing."


@dataclass(frozen=True, slots=True)
class ReleaseEnv:
    """Facts about this run derived once from Options and the project."""

    run_tests: bool
    run_cleanup: bool
    run_publish: bool
    manager: PackageManager
    has_lockfile: bool
    github_slug: str | None
    tag_prefix: str


def release_env(
    options: Options,
    pkg: PackageDescriptor,
    *,
    has_lockfile: bool,
    github_slug: str | None,
    tag_prefix: str,
) -> ReleaseEnv:
    return ReleaseEnv(
        run_tests=options.run_tests,
        run_cleanup=options.run_cleanup,
        run_publish=options.publish and not pkg.private,
        manager="yarn" if options.yarn is True else "npm",
        has_lockfile=has_lockfile,
        github_slug=github_slug,
        tag_prefix=tag_prefix,
    )


def _remove_node_modules(ctx: RunContext) -> Result[None, ReleaseError]:
    try:
        shutil.rmtree(ctx.project_root / "node_modules")
    except FileNotFoundError:
        pass
    except OSError as e:
        return Err(ReleaseError(kind="install_failed", message=f"failed to remove node_modules: {e}"))
    return Ok(None)


def publish_with_rollback(
    *,
    manager: PackageManager,
    options: Options,
    state: PublishState,
    rollback: Callable[[], RollbackOutcome],
) -> StageAction:
    """Publish; on failure roll back synchronously and wrap the error."""

    def action(ctx: RunContext) -> Result[None, ReleaseError]:
        result = npm.publish(ctx, manager, contents=options.contents, tag=options.tag)
        if isinstance(result, Err):
            rollback()
            error = result.error
            return Err(
                ReleaseError(
                    kind="publish_failed",
                    message=(
                        f"Error publishing package:\n{error.message}\n\n"
                        "The project was rolled back to its previous state."
                    ),
                    hint=error.hint,
                )
            )
        state.mark_published()
        return Ok(None)

    return action


def push_tags_skip(
    *,
    repo: Repository,
    run_publish: bool,
    state: PublishState,
) -> Callable[[], str | None]:
    def skip() -> str | None:
        if not repo.has_upstream():
            return NO_UPSTREAM_REASON
        if run_publish and not state.published:
            return NOT_PUBLISHED_REASON
        return None

    return skip


def _push_tags(repo: Repository) -> StageAction:
    def action(ctx: RunContext) -> Result[None, ReleaseError]:
        pushed = repo.push()
        if isinstance(pushed, Err):
            return Err(ReleaseError(kind="push_failed", message=pushed.error.message))
        if pushed.value:
            ctx.emit(pushed.value)
        return Ok(None)

    return action


def build_pipeline(
    *,
    version_input: str,
    options: Options,
    pkg: PackageDescriptor,
    env: ReleaseEnv,
    state: PublishState,
    rollback: Callable[[], RollbackOutcome],
    repo: Repository,
) -> tuple[Stage, ...]:
    def yarn_only() -> bool:
        return options.yarn is True

    def npm_only() -> bool:
        return options.yarn is False

    stages: list[Stage] = [
        Stage(
            title="Prerequisite check",
            enabled=lambda: env.run_publish,
            action=check_prerequisites(
                repo,
                version_input=version_input,
                pkg=pkg,
                manager=env.manager,
                tag_prefix=env.tag_prefix,
            ),
        ),
        Stage(
            title="Git",
            action=check_git(repo, any_branch=options.any_branch, branch=options.branch),
        ),
    ]

    if env.run_cleanup:
        stages += [
            Stage(
                title="Cleanup",
                skip=lambda: "lockfile present; keeping node_modules" if env.has_lockfile else None,
                action=_remove_node_modules,
            ),
            Stage(
                title="Installing dependencies using Yarn",
                enabled=yarn_only,
                action=npm.install_yarn,
            ),
            Stage(
                title="Installing dependencies using npm",
                enabled=npm_only,
                action=npm.install_npm(has_lockfile=env.has_lockfile),
            ),
        ]

    if env.run_tests:
        stages += [
            Stage(title="Running tests using npm", enabled=npm_only, action=npm.run_tests_npm),
            Stage(title="Running tests using Yarn", enabled=yarn_only, action=npm.run_tests_yarn),
        ]

    stages += [
        Stage(
            title="Bumping version using Yarn",
            enabled=yarn_only,
            action=npm.bump_version("yarn", version_input),
        ),
        Stage(
            title="Bumping version using npm",
            enabled=npm_only,
            action=npm.bump_version("npm", version_input),
        ),
    ]

    if env.run_publish:
        stages.append(
            Stage(
                title=f"Publishing package using {npm.manager_name(env.manager)}",
                action=publish_with_rollback(
                    manager=env.manager,
                    options=options,
                    state=state,
                    rollback=rollback,
                ),
            )
        )
        wants_2fa = options.two_factor and not options.exists
        if wants_2fa and not pkg.private and not pkg.is_external_registry:
            stages.append(
                Stage(
                    title="Enabling two-factor authentication",
                    action=npm.enable_two_factor(pkg.name),
                )
            )

    stages.append(
        Stage(
            title="Pushing tags",
            skip=push_tags_skip(repo=repo, run_publish=env.run_publish, state=state),
            action=_push_tags(repo),
        )
    )

    slug = env.github_slug
    stages.append(
        Stage(
            title="Creating release draft on GitHub",
            enabled=lambda: slug is not None,
            skip=lambda: None if options.release_draft else "release draft disabled",
            action=open_release_draft(slug=slug or "", tag_prefix=env.tag_prefix),
        )
    )

    return tuple(stages)
