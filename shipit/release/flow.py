"""Top-level release operation.

``release`` wires everything for one run: it reads the package, derives
the run environment, builds the one-shot rollback, registers the
shutdown safety net, and runs the pipeline. It returns the package as it
is on disk after the run.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from shipit.core.config import Options
from shipit.core.result import Err, Ok, Result
from shipit.git.repository import Repository
from shipit.output.console import ConsoleProtocol
from shipit.release.draft import github_slug
from shipit.release.errors import ReleaseError
from shipit.release.npm import PackageManager, tag_version_prefix
from shipit.release.package import PackageDescriptor, has_lockfile, read_package
from shipit.release.pipeline import PublishState, RunContext, run_pipeline
from shipit.release.rollback import RollbackOutcome, RunOnce, make_rollback
from shipit.release.semver import is_bump_kind, parse_version
from shipit.release.shutdown import ShutdownHook, ShutdownHooks
from shipit.release.tasks import build_pipeline, release_env

__all__ = ["release", "resolve_options", "safety_net"]


def resolve_options(options: Options, *, project_root: Path, pkg: PackageDescriptor) -> Options:
    """Fill in values that default from the project itself.

    ``yarn`` follows the presence of yarn.lock; ``repo_url`` falls back to
    package.json's repository field.
    """
    yarn = options.yarn
    if yarn is None:
        yarn = (project_root / "yarn.lock").exists()
    return replace(options, yarn=yarn, repo_url=options.repo_url or pkg.repository_url)


def safety_net(
    *,
    run_publish: bool,
    state: PublishState,
    rollback: RunOnce[RollbackOutcome],
) -> ShutdownHook:
    """Shutdown hook that rolls back a bump that never got published."""

    def hook() -> None:
        if run_publish and not state.published:
            rollback()

    return hook


def _validate_input(version_input: str) -> Result[None, ReleaseError]:
    if is_bump_kind(version_input) or parse_version(version_input) is not None:
        return Ok(None)
    return Err(
        ReleaseError(
            kind="invalid_input",
            message=f"invalid version: {version_input}",
            hint="Use a semver bump keyword (patch, minor, major, ...) or a version like 1.2.3",
        )
    )


def release(
    version_input: str = "patch",
    options: Options | None = None,
    *,
    project_root: Path,
    console: ConsoleProtocol,
    hooks: ShutdownHooks | None = None,
    repo: Repository | None = None,
    tag_prefix: str | None = None,
) -> Result[PackageDescriptor, ReleaseError]:
    """Run one release of the package at ``project_root``."""
    options = options or Options()

    if options.yarn is True and not (project_root / "yarn.lock").exists():
        return Err(
            ReleaseError(kind="invalid_input", message="Could not use Yarn without yarn.lock file")
        )

    valid = _validate_input(version_input)
    if isinstance(valid, Err):
        return valid

    pkg_result = read_package(project_root)
    if isinstance(pkg_result, Err):
        return pkg_result
    pkg = pkg_result.value
    options = resolve_options(options, project_root=project_root, pkg=pkg)

    manager: PackageManager = "yarn" if options.yarn is True else "npm"
    prefix = tag_prefix if tag_prefix is not None else tag_version_prefix(project_root, manager)
    env = release_env(
        options,
        pkg,
        has_lockfile=has_lockfile(project_root, yarn=options.yarn),
        github_slug=github_slug(options.repo_url),
        tag_prefix=prefix,
    )

    git = repo or Repository(project_root)
    state = PublishState()
    rollback = make_rollback(
        project_root=project_root,
        run_start_version=pkg.version,
        tag_version_prefix=lambda: prefix,
        console=console,
        repo=git,
    )
    if hooks is not None:
        hooks.add(safety_net(run_publish=env.run_publish, state=state, rollback=rollback))

    stages = build_pipeline(
        version_input=version_input,
        options=options,
        pkg=pkg,
        env=env,
        state=state,
        rollback=rollback,
        repo=git,
    )
    ctx = RunContext(project_root=project_root, console=console, otp=options.otp)
    result = run_pipeline(stages, ctx)
    if isinstance(result, Err):
        return Err(result.error.error)

    return read_package(project_root)
