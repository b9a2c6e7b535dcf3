from __future__ import annotations

from pathlib import Path

import typer

from shipit import __version__
from shipit.cli.context import build_context
from shipit.core.errors import ErrorCode
from shipit.core.result import Err
from shipit.output.console import Style
from shipit.release.errors import ReleaseError
from shipit.release.flow import release

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    rich_markup_mode="rich",
)

_EXIT_CODES: dict[str, ErrorCode] = {
    "invalid_input": ErrorCode.USER_ERROR,
    "config_error": ErrorCode.USER_ERROR,
    "prerequisite_failed": ErrorCode.ENV_ERROR,
    "git_check_failed": ErrorCode.ENV_ERROR,
    "publish_failed": ErrorCode.PUBLISH_ERROR,
}


def exit_code_for(error: ReleaseError) -> ErrorCode:
    return _EXIT_CODES.get(error.kind, ErrorCode.RELEASE_ERROR)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.command()
def main(
    version_input: str = typer.Argument(
        "patch",
        metavar="VERSION",
        help="patch | minor | major | prepatch | preminor | premajor | prerelease | 1.2.3",
    ),
    cleanup: bool | None = typer.Option(None, "--cleanup/--no-cleanup", help="Reinstall node_modules."),
    tests: bool | None = typer.Option(None, "--tests/--no-tests", help="Run the test script."),
    publish: bool | None = typer.Option(None, "--publish/--no-publish", help="Publish to the registry."),
    yolo: bool = typer.Option(False, "--yolo", help="Skip cleanup and tests."),
    yarn: bool | None = typer.Option(None, "--yarn/--no-yarn", help="Use Yarn instead of npm."),
    tag: str | None = typer.Option(None, "--tag", help="Publish under a dist-tag."),
    contents: str | None = typer.Option(None, "--contents", help="Subdirectory to publish."),
    any_branch: bool = typer.Option(False, "--any-branch", help="Allow any branch."),
    branch: str | None = typer.Option(None, "--branch", help="Release branch name."),
    release_draft: bool | None = typer.Option(
        None, "--release-draft/--no-release-draft", help="Open a GitHub release draft."
    ),
    exists: bool = typer.Option(False, "--exists", help="Package already exists on the registry."),
    two_factor: bool | None = typer.Option(None, "--2fa/--no-2fa", help="Require 2FA for the package."),
    otp: str | None = typer.Option(None, "--otp", help="One-time password for the registry."),
    project: Path | None = typer.Option(None, "--project", help="Package directory."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Release an npm package: test, bump, publish, tag, push."""
    del version
    ctx = build_context(project)

    options = ctx.options.merged(
        {
            "cleanup": cleanup,
            "tests": tests,
            "publish": publish,
            "yolo": yolo or None,
            "yarn": yarn,
            "tag": tag,
            "contents": contents,
            "any_branch": any_branch or None,
            "branch": branch,
            "release_draft": release_draft,
            "exists": exists or None,
            "two_factor": two_factor,
            "otp": otp,
        }
    )

    # Hooks run before interpreter shutdown; a signal arrives here as SystemExit.
    try:
        result = release(
            version_input,
            options,
            project_root=ctx.project_root,
            console=ctx.console,
            hooks=ctx.hooks,
        )
    finally:
        ctx.hooks.run_hooks()

    if isinstance(result, Err):
        ctx.console.error(result.error.message)
        if result.error.hint:
            ctx.console.print(f"hint: {result.error.hint}", Style.DIM)
        raise typer.Exit(code=int(exit_code_for(result.error)))

    new_pkg = result.value
    ctx.console.success(f"{new_pkg.name} {new_pkg.version} released")


def run() -> None:
    app()
