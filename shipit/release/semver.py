from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, get_args

BumpKind = Literal["patch", "minor", "major", "prepatch", "preminor", "premajor", "prerelease"]

BUMP_KINDS: tuple[str, ...] = get_args(BumpKind)

_VERSION_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)


@dataclass(frozen=True, slots=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            return f"{core}-{'.'.join(self.prerelease)}"
        return core

    def bump(self, kind: BumpKind) -> SemVer:
        match kind:
            case "major":
                if self.prerelease and self.minor == 0 and self.patch == 0:
                    return SemVer(self.major, 0, 0)
                return SemVer(self.major + 1, 0, 0)
            case "minor":
                if self.prerelease and self.patch == 0:
                    return SemVer(self.major, self.minor, 0)
                return SemVer(self.major, self.minor + 1, 0)
            case "patch":
                if self.prerelease:
                    return SemVer(self.major, self.minor, self.patch)
                return SemVer(self.major, self.minor, self.patch + 1)
            case "premajor":
                return SemVer(self.major + 1, 0, 0, ("0",))
            case "preminor":
                return SemVer(self.major, self.minor + 1, 0, ("0",))
            case "prepatch":
                return SemVer(self.major, self.minor, self.patch + 1, ("0",))
            case "prerelease":
                if not self.prerelease:
                    return SemVer(self.major, self.minor, self.patch + 1, ("0",))
                return SemVer(self.major, self.minor, self.patch, _increment(self.prerelease))
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")

    def _key(self) -> tuple[int, int, int, int, tuple[tuple[int, int, str], ...]]:
        # A version without prerelease sorts after any of its prereleases.
        pre = tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in self.prerelease)
        return (self.major, self.minor, self.patch, 0 if self.prerelease else 1, pre)

    def __lt__(self, other: SemVer) -> bool:
        return self._key() < other._key()

    def __gt__(self, other: SemVer) -> bool:
        return self._key() > other._key()


def _increment(prerelease: tuple[str, ...]) -> tuple[str, ...]:
    parts = list(prerelease)
    for i in range(len(parts) - 1, -1, -1):
        if parts[i].isdigit():
            parts[i] = str(int(parts[i]) + 1)
            return tuple(parts)
    return (*parts, "0")


def parse_version(text: str) -> SemVer | None:
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    pre = tuple(m.group(4).split(".")) if m.group(4) else ()
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)), pre)


def is_bump_kind(text: str) -> bool:
    return text in BUMP_KINDS


def next_version(current: str, version_input: str) -> SemVer | None:
    """Resolve a bump keyword or explicit version against ``current``."""
    if is_bump_kind(version_input):
        base = parse_version(current)
        if base is None:
            return None
        return base.bump(version_input)  # type: ignore[arg-type]
    return parse_version(version_input)
