from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from shipit.core.config import Options, load_options_or_default
from shipit.core.errors import ErrorCode
from shipit.core.result import Err
from shipit.output.console import ConsoleProtocol, RichConsole
from shipit.release.package import find_package_root
from shipit.release.shutdown import ShutdownHooks


@dataclass(frozen=True, slots=True)
class CLIContext:
    project_root: Path
    options: Options
    console: ConsoleProtocol
    hooks: ShutdownHooks


def build_context(project: Path | None = None) -> CLIContext:
    """Locate the package, load .shipit.toml, and install shutdown hooks."""
    root = find_package_root(project)
    if root is None:
        typer.echo("error: package.json not found (run from a package directory)", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    options = load_options_or_default(root)
    if isinstance(options, Err):
        typer.echo(f"error: {options.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    console = RichConsole()
    hooks = ShutdownHooks(console)
    hooks.install()

    return CLIContext(
        project_root=root,
        options=options.value,
        console=console,
        hooks=hooks,
    )
