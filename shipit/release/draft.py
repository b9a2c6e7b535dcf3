"""GitHub release draft.

After a successful release the browser is opened on GitHub's "new
release" form, pre-filled with the tag that was just pushed.
"""

from __future__ import annotations

import re
from urllib.parse import urlencode

import typer

from shipit.core.result import Err, Ok, Result
from shipit.release.errors import ReleaseError
from shipit.release.package import read_package
from shipit.release.pipeline import RunContext, StageAction
from shipit.release.semver import parse_version

_GITHUB_PATTERNS = (
    re.compile(r"^github:(?P<slug>[\w.-]+/[\w.-]+?)(?:\.git)?$"),
    re.compile(r"^(?P<slug>[\w.-]+/[\w.-]+?)(?:\.git)?$"),
    re.compile(
        r"^(?:git\+)?(?:https?|git|ssh)://(?:[^@/]+@)?github\.com[/:]"
        r"(?P<slug>[\w.-]+/[\w.-]+?)(?:\.git)?/?$"
    ),
    re.compile(r"^git@github\.com:(?P<slug>[\w.-]+/[\w.-]+?)(?:\.git)?$"),
)


def github_slug(repo_url: str | None) -> str | None:
    """Return ``owner/name`` when the URL points at GitHub, else None."""
    if not repo_url:
        return None
    url = repo_url.strip()
    for pattern in _GITHUB_PATTERNS:
        m = pattern.match(url)
        if m is not None:
            return m.group("slug")
    return None


def release_draft_url(*, slug: str, tag: str, prerelease: bool) -> str:
    query = {"tag": tag, "title": tag}
    if prerelease:
        query["prerelease"] = "1"
    return f"https://github.com/{slug}/releases/new?{urlencode(query)}"


def open_release_draft(*, slug: str, tag_prefix: str) -> StageAction:
    def action(ctx: RunContext) -> Result[None, ReleaseError]:
        pkg = read_package(ctx.project_root)
        if isinstance(pkg, Err):
            return Err(ReleaseError(kind="release_draft_failed", message=pkg.error.message))

        version = parse_version(pkg.value.version)
        url = release_draft_url(
            slug=slug,
            tag=f"{tag_prefix}{pkg.value.version}",
            prerelease=bool(version and version.prerelease),
        )
        ctx.console.info(url)
        if typer.launch(url) != 0:
            return Err(
                ReleaseError(
                    kind="release_draft_failed",
                    message="could not open the browser",
                    hint=url,
                )
            )
        return Ok(None)

    return action
