"""Package-manager stage actions (npm and Yarn).

Each action streams the command's output through ``RunContext.emit`` and
maps a ProcessError to a ReleaseError. A few known failures are
rewritten into clearer messages, and Yarn's missing test script counts as
success.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from shipit.core.result import Err, Ok, Result
from shipit.platform.process import ProcessError
from shipit.platform.process import run as run_process
from shipit.platform.process import stream as stream_process
from shipit.release.errors import ReleaseError, ReleaseErrorKind
from shipit.release.package import read_package
from shipit.release.pipeline import RunContext, StageAction

PackageManager = Literal["npm", "yarn"]

DEFAULT_TAG_VERSION_PREFIX = "v"
YARN_LOCKFILE_OUTDATED = "error Your lockfile needs to be updated"
YARN_LOCKFILE_OUTDATED_MESSAGE = (
    "yarn.lock file is outdated. Run yarn, commit the updated lockfile and try again."
)
YARN_NO_TEST_SCRIPT = 'Command "test" not found'
_OTP_MARKERS = ("one-time pass", "EOTP")


def manager_name(manager: PackageManager) -> str:
    return "Yarn" if manager == "yarn" else "npm"


def tag_version_prefix(project_root: Path, manager: PackageManager) -> str:
    """Prefix the package manager puts in front of version tags (usually ``v``)."""
    if manager == "yarn":
        cmd = ["yarn", "config", "get", "version-tag-prefix"]
    else:
        cmd = ["npm", "config", "get", "tag-version-prefix"]
    result = run_process(cmd, cwd=project_root, timeout=30.0)
    if isinstance(result, Err):
        return DEFAULT_TAG_VERSION_PREFIX
    value = result.value.strip()
    if not value or value == "undefined":
        return DEFAULT_TAG_VERSION_PREFIX
    return value


def _exec(ctx: RunContext, cmd: list[str]) -> Result[str, ProcessError]:
    return stream_process(cmd, cwd=ctx.project_root, on_line=ctx.emit)


def _fail(kind: ReleaseErrorKind, e: ProcessError) -> Err[ReleaseError]:
    return Err(ReleaseError(kind=kind, message=e.detail, hint=str(e)))


def install_yarn(ctx: RunContext) -> Result[None, ReleaseError]:
    result = _exec(ctx, ["yarn", "install", "--frozen-lockfile", "--production=false"])
    if isinstance(result, Err):
        if result.error.stderr.startswith(YARN_LOCKFILE_OUTDATED):
            return Err(ReleaseError(kind="install_failed", message=YARN_LOCKFILE_OUTDATED_MESSAGE))
        return _fail("install_failed", result.error)
    return Ok(None)


def install_npm(*, has_lockfile: bool) -> StageAction:
    args = ["ci"] if has_lockfile else ["install", "--no-package-lock", "--no-production"]

    def action(ctx: RunContext) -> Result[None, ReleaseError]:
        result = _exec(ctx, ["npm", *args])
        if isinstance(result, Err):
            return _fail("install_failed", result.error)
        return Ok(None)

    return action


def run_tests_npm(ctx: RunContext) -> Result[None, ReleaseError]:
    result = _exec(ctx, ["npm", "test"])
    if isinstance(result, Err):
        return _fail("test_failed", result.error)
    return Ok(None)


def run_tests_yarn(ctx: RunContext) -> Result[None, ReleaseError]:
    result = _exec(ctx, ["yarn", "test"])
    if isinstance(result, Err):
        if YARN_NO_TEST_SCRIPT in result.error.output:
            ctx.console.info("no test script defined; continuing")
            return Ok(None)
        return _fail("test_failed", result.error)
    return Ok(None)


def bump_version(manager: PackageManager, version_input: str) -> StageAction:
    if manager == "yarn":
        cmd = ["yarn", "version", "--new-version", version_input]
    else:
        cmd = ["npm", "version", version_input]

    def action(ctx: RunContext) -> Result[None, ReleaseError]:
        result = _exec(ctx, cmd)
        if isinstance(result, Err):
            return _fail("version_failed", result.error)
        return Ok(None)

    return action


def publish_args(
    manager: PackageManager,
    *,
    new_version: str,
    contents: str | None,
    tag: str | None,
    otp: str | None,
) -> list[str]:
    args = [manager, "publish"]
    if contents:
        args.append(contents)
    if manager == "yarn":
        args.extend(["--new-version", new_version])
    if tag:
        args.extend(["--tag", tag])
    if otp:
        args.extend(["--otp", otp])
    return args


def publish(
    ctx: RunContext,
    manager: PackageManager,
    *,
    contents: str | None,
    tag: str | None,
) -> Result[None, ReleaseError]:
    """Publish the package at the version currently on disk."""
    pkg = read_package(ctx.project_root)
    if isinstance(pkg, Err):
        return Err(ReleaseError(kind="publish_failed", message=pkg.error.message))

    cmd = publish_args(
        manager,
        new_version=pkg.value.version,
        contents=contents,
        tag=tag,
        otp=ctx.otp,
    )
    result = _exec(ctx, cmd)
    if isinstance(result, Err):
        e = result.error
        hint = None
        if ctx.otp is None and any(m in e.output for m in _OTP_MARKERS):
            hint = "the registry requires a one-time password; rerun with --otp"
        return Err(ReleaseError(kind="publish_failed", message=e.detail, hint=hint))
    return Ok(None)


def enable_two_factor(package_name: str) -> StageAction:
    def action(ctx: RunContext) -> Result[None, ReleaseError]:
        cmd = ["npm", "access", "2fa-required", package_name]
        if ctx.otp:
            cmd.extend(["--otp", ctx.otp])
        result = _exec(ctx, cmd)
        if isinstance(result, Err):
            return _fail("two_factor_failed", result.error)
        return Ok(None)

    return action
