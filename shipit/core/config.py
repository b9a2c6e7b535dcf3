"""Release options and the optional .shipit.toml config file.

Options are resolved once at startup (file values first, CLI flags on
top) and are read-only for the rest of the run.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_str, get_table

__all__ = [
    "CONFIG_FILE_NAME",
    "ConfigError",
    "Options",
    "load_options",
    "load_options_or_default",
]

CONFIG_FILE_NAME = ".shipit.toml"

_BOOL_KEYS = (
    "cleanup",
    "tests",
    "publish",
    "yolo",
    "release_draft",
    "exists",
    "any_branch",
    "two_factor",
)
_STR_KEYS = ("repo_url", "branch", "tag", "contents", "otp")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when the config file cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class Options:
    """Run configuration.

    ``yarn`` is tri-state: True selects the Yarn stage variants, False
    the npm variants, None leaves both out.
    """

    cleanup: bool = True
    tests: bool = True
    publish: bool = True
    yolo: bool = False
    yarn: bool | None = None
    repo_url: str | None = None
    release_draft: bool = True
    exists: bool = False
    any_branch: bool = False
    branch: str | None = None
    tag: str | None = None
    contents: str | None = None
    otp: str | None = None
    two_factor: bool = True

    @property
    def run_tests(self) -> bool:
        return self.tests and not self.yolo

    @property
    def run_cleanup(self) -> bool:
        return self.cleanup and not self.yolo

    def merged(self, overrides: Mapping[str, object]) -> Options:
        """Return a copy with every non-None override applied.

        ``skip_cleanup`` is accepted as a legacy alias that forces
        ``cleanup`` off.
        """
        known = {f.name for f in fields(self)}
        changes: dict[str, object] = {
            k: v for k, v in overrides.items() if k in known and v is not None
        }
        if overrides.get("skip_cleanup") is True:
            changes["cleanup"] = False
        return replace(self, **changes)  # type: ignore[arg-type]

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Options:
        """Create Options from a parsed TOML mapping.

        Keys may live at the root or under a ``[release]`` table; dashes
        are accepted in place of underscores.
        """
        table: StrDict = get_table(data, "release") or dict(data)
        table = {k.replace("-", "_"): v for k, v in table.items()}

        values: dict[str, object] = {}
        for key in _BOOL_KEYS:
            b = get_bool(table, key)
            if b is not None:
                values[key] = b
        for key in _STR_KEYS:
            s = get_str(table, key)
            if s is not None:
                values[key] = s
        yarn = get_bool(table, "yarn")
        if yarn is not None:
            values["yarn"] = yarn
        if get_bool(table, "skip_cleanup") is True:
            values["skip_cleanup"] = True

        return cls().merged(values)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_options(path: Path) -> Result[Options, ConfigError]:
    """Load release options from a TOML file.

    Args:
        path: Path to .shipit.toml

    Returns:
        Ok(Options) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Options.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_options_or_default(project_root: Path) -> Result[Options, ConfigError]:
    """Load ``.shipit.toml`` from the project root, or defaults if absent.

    A file that exists but is malformed is still an error.
    """
    path = project_root / CONFIG_FILE_NAME
    if not path.exists():
        return Ok(Options())
    return load_options(path)
