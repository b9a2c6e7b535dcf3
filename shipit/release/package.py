"""package.json access.

The descriptor is always read fresh from disk: the version-bump stage
rewrites package.json mid-run, so rollback and the final result must not
reuse a copy captured at start.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from shipit.core.result import Err, Ok, Result
from shipit.core.structured import as_str_dict, get_bool, get_str, get_table
from shipit.release.errors import ReleaseError

PACKAGE_FILE = "package.json"
NPM_REGISTRY_HOSTS = ("registry.npmjs.org", "registry.npmjs.com")


@dataclass(frozen=True, slots=True)
class PackageDescriptor:
    name: str
    version: str
    private: bool = False
    publish_registry: str | None = None
    repository_url: str | None = None

    @property
    def is_external_registry(self) -> bool:
        """True when publishConfig points somewhere other than npmjs."""
        if self.publish_registry is None:
            return False
        return not any(host in self.publish_registry for host in NPM_REGISTRY_HOSTS)


def find_package_root(start: Path | None = None) -> Path | None:
    """Walk upward from start (or cwd) to the nearest package.json."""
    base = (start or Path.cwd()).resolve()
    for parent in (base, *base.parents):
        if (parent / PACKAGE_FILE).is_file():
            return parent
    return None


def has_lockfile(root: Path, *, yarn: bool | None) -> bool:
    name = "yarn.lock" if yarn else "package-lock.json"
    return (root / name).exists() or (root / "npm-shrinkwrap.json").exists()


def read_package(root: Path) -> Result[PackageDescriptor, ReleaseError]:
    path = root / PACKAGE_FILE
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"failed to read {PACKAGE_FILE}: {e}",
                hint=str(path),
            )
        )

    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"invalid JSON in {PACKAGE_FILE}: {e}",
                hint=str(path),
            )
        )

    data = as_str_dict(obj)
    if data is None:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"invalid JSON root in {PACKAGE_FILE}",
                hint=str(path),
            )
        )

    name = get_str(data, "name")
    version = get_str(data, "version")
    if name is None or version is None:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"{PACKAGE_FILE} must define name and version",
                hint=str(path),
            )
        )

    publish_config = get_table(data, "publishConfig") or {}
    repository = get_str(data, "repository")
    if repository is None:
        repository = get_str(get_table(data, "repository") or {}, "url")

    return Ok(
        PackageDescriptor(
            name=name,
            version=version,
            private=get_bool(data, "private") is True,
            publish_registry=get_str(publish_config, "registry"),
            repository_url=repository,
        )
    )
