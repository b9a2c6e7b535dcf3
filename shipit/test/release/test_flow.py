"""End-to-end release runs against faked npm and git."""

from __future__ import annotations

from pathlib import Path

import pytest

from shipit.core.config import Options
from shipit.core.result import Err, Ok
from shipit.output.console import MockConsole
from shipit.platform.process import ProcessError
from shipit.release import npm, prerequisites
from shipit.release.flow import release, resolve_options
from shipit.release.package import PackageDescriptor
from shipit.release.shutdown import ShutdownHooks


class FakeNpm:
    """Simulates npm: ``version`` rewrites package.json and tags the repo."""

    def __init__(self, root: Path, repo, write_package, *, publish_ok: bool = True) -> None:
        self.root = root
        self.repo = repo
        self.write_package = write_package
        self.publish_ok = publish_ok
        self.test_ok = True
        self.commands: list[list[str]] = []

    def __call__(self, cmd, *, cwd, on_line, env=None):
        cmd = list(cmd)
        self.commands.append(cmd)
        if cmd[1] == "version":
            self.write_package(self.root, "1.2.1")
            self.repo.tags.append("v1.2.1")
            on_line("v1.2.1")
        elif cmd[1] == "publish" and not self.publish_ok:
            return Err(ProcessError(tuple(cmd), 1, "", "npm ERR! 403 Forbidden\n"))
        elif cmd[1] == "test" and not self.test_ok:
            return Err(ProcessError(tuple(cmd), 1, "", "1 failing\n"))
        return Ok("")


@pytest.fixture
def project(tmp_path: Path, package_factory) -> Path:
    package_factory(tmp_path, "1.2.0")
    return tmp_path


@pytest.fixture
def fake_npm(monkeypatch, project: Path, fake_repo, package_factory) -> FakeNpm:
    fake = FakeNpm(project, fake_repo, package_factory)
    monkeypatch.setattr(npm, "stream_process", fake)
    monkeypatch.setattr(prerequisites, "run_process", lambda *a, **k: Ok("10.8.0"))
    return fake


def _release(project: Path, fake_repo, console: MockConsole, hooks: ShutdownHooks, **options):
    return release(
        "patch",
        Options(yarn=False, **options),
        project_root=project,
        console=console,
        hooks=hooks,
        repo=fake_repo,
        tag_prefix="v",
    )


class TestRelease:
    def test_successful_release(self, project: Path, fake_repo, fake_npm) -> None:
        console = MockConsole()
        hooks = ShutdownHooks(console)

        result = _release(project, fake_repo, console, hooks)
        hooks.run_hooks()

        assert isinstance(result, Ok)
        assert result.value.version == "1.2.1"
        assert ["npm", "publish"] in fake_npm.commands
        assert ["npm", "access", "2fa-required", "demo-pkg"] in fake_npm.commands
        assert fake_repo.pushes == 1
        assert fake_repo.removed_commits == 0
        assert console.find("demo-pkg: 1.2.0 -> 1.2.1")

    def test_publish_failure_rolls_back_once(self, project: Path, fake_repo, fake_npm) -> None:
        fake_npm.publish_ok = False
        console = MockConsole()
        hooks = ShutdownHooks(console)

        result = _release(project, fake_repo, console, hooks)
        hooks.run_hooks()

        assert isinstance(result, Err)
        assert result.error.kind == "publish_failed"
        assert result.error.message.startswith("Error publishing package:\nnpm ERR! 403 Forbidden")
        assert result.error.message.endswith("The project was rolled back to its previous state.")
        assert fake_repo.deleted_tags == ["v1.2.1"]
        assert fake_repo.removed_commits == 1
        assert fake_repo.pushes == 0
        assert len(console.find("Rolling back to the previous state")) == 1

    def test_no_publish_never_rolls_back(self, project: Path, fake_repo, fake_npm) -> None:
        console = MockConsole()
        hooks = ShutdownHooks(console)

        result = _release(project, fake_repo, console, hooks, publish=False)
        hooks.run_hooks()

        assert isinstance(result, Ok)
        assert not [c for c in fake_npm.commands if c[1] == "publish"]
        assert fake_repo.deleted_tags == []
        assert fake_repo.removed_commits == 0
        assert fake_repo.pushes == 1
        assert not console.find("Rolling back")

    def test_early_failure_leaves_repo_alone(self, project: Path, fake_repo, fake_npm) -> None:
        fake_npm.test_ok = False
        console = MockConsole()
        hooks = ShutdownHooks(console)

        result = _release(project, fake_repo, console, hooks)
        hooks.run_hooks()

        assert isinstance(result, Err)
        assert result.error.kind == "test_failed"
        assert not [c for c in fake_npm.commands if c[1] == "version"]
        assert fake_repo.deleted_tags == []
        assert fake_repo.removed_commits == 0

    def test_no_upstream_skips_push(self, project: Path, fake_repo, fake_npm) -> None:
        fake_repo.upstream = False
        console = MockConsole()

        result = _release(project, fake_repo, console, ShutdownHooks(console))

        assert isinstance(result, Ok)
        assert fake_repo.pushes == 0
        assert console.find("Upstream branch not found; not pushing.")

    def test_existing_tag_fails_prerequisites(self, project: Path, fake_repo, fake_npm) -> None:
        fake_repo.tags.append("v1.2.1")
        console = MockConsole()

        result = _release(project, fake_repo, console, ShutdownHooks(console))

        assert isinstance(result, Err)
        assert result.error.kind == "prerequisite_failed"
        assert fake_npm.commands == []

    def test_dirty_tree_fails_git_check(self, project: Path, fake_repo, fake_npm) -> None:
        fake_repo.clean = False
        console = MockConsole()

        result = _release(project, fake_repo, console, ShutdownHooks(console))

        assert isinstance(result, Err)
        assert result.error.kind == "git_check_failed"

    def test_wrong_branch(self, project: Path, fake_repo, fake_npm) -> None:
        fake_repo.branch = "feature"
        console = MockConsole()

        result = _release(project, fake_repo, console, ShutdownHooks(console))
        assert isinstance(result, Err)
        assert result.error.kind == "git_check_failed"

        fake_npm.commands.clear()
        result = _release(project, fake_repo, console, ShutdownHooks(console), any_branch=True)
        assert isinstance(result, Ok)


class TestInputValidation:
    def test_yarn_without_lockfile(self, project: Path) -> None:
        result = release(
            "patch",
            Options(yarn=True),
            project_root=project,
            console=MockConsole(),
            tag_prefix="v",
        )
        assert isinstance(result, Err)
        assert result.error.message == "Could not use Yarn without yarn.lock file"

    def test_invalid_version_input(self, project: Path) -> None:
        result = release("banana", project_root=project, console=MockConsole(), tag_prefix="v")
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_input"

    def test_missing_package_json(self, tmp_path: Path) -> None:
        result = release("patch", project_root=tmp_path, console=MockConsole(), tag_prefix="v")
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_input"


class TestResolveOptions:
    def test_yarn_inferred_from_lockfile(self, tmp_path: Path) -> None:
        pkg = PackageDescriptor(name="demo-pkg", version="1.0.0")
        assert resolve_options(Options(), project_root=tmp_path, pkg=pkg).yarn is False

        (tmp_path / "yarn.lock").write_text("", encoding="utf-8")
        assert resolve_options(Options(), project_root=tmp_path, pkg=pkg).yarn is True

    def test_explicit_yarn_wins(self, tmp_path: Path) -> None:
        (tmp_path / "yarn.lock").write_text("", encoding="utf-8")
        pkg = PackageDescriptor(name="demo-pkg", version="1.0.0")
        assert resolve_options(Options(yarn=False), project_root=tmp_path, pkg=pkg).yarn is False

    def test_repo_url_from_package(self, tmp_path: Path) -> None:
        pkg = PackageDescriptor(
            name="demo-pkg", version="1.0.0", repository_url="https://github.com/acme/demo"
        )
        resolved = resolve_options(Options(), project_root=tmp_path, pkg=pkg)
        assert resolved.repo_url == "https://github.com/acme/demo"
