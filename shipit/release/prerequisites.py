from __future__ import annotations

from shipit.core.result import Err, Ok, Result
from shipit.git.repository import Repository
from shipit.platform.process import run as run_process
from shipit.release.errors import ReleaseError
from shipit.release.npm import PackageManager
from shipit.release.package import PackageDescriptor
from shipit.release.pipeline import RunContext, StageAction
from shipit.release.semver import next_version, parse_version


def check_prerequisites(
    repo: Repository,
    *,
    version_input: str,
    pkg: PackageDescriptor,
    manager: PackageManager,
    tag_prefix: str,
) -> StageAction:
    """Verify the release can happen before anything is changed."""

    def action(ctx: RunContext) -> Result[None, ReleaseError]:
        tool = run_process([manager, "--version"], cwd=ctx.project_root, timeout=30.0)
        if isinstance(tool, Err):
            return Err(
                ReleaseError(
                    kind="prerequisite_failed",
                    message=f"{manager} is not available",
                    hint=tool.error.detail,
                )
            )

        new = next_version(pkg.version, version_input)
        if new is None:
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"invalid version: {version_input}",
                    hint="Use patch, minor, major, prepatch, preminor, premajor, "
                    "prerelease or a semver like 1.2.3",
                )
            )

        current = parse_version(pkg.version)
        if current is not None and not new > current:
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"new version {new} must be greater than {pkg.version}",
                )
            )

        tag = f"{tag_prefix}{new}"
        if repo.tag_exists(tag):
            return Err(
                ReleaseError(
                    kind="prerequisite_failed",
                    message=f"git tag {tag} already exists",
                    hint="Delete the tag or pick another version.",
                )
            )

        ctx.console.info(f"{pkg.name}: {pkg.version} -> {new}")
        return Ok(None)

    return action
