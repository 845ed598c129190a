"""Shared CLI helpers."""

from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from ..config import TrackerConfig, load_config
from ..exceptions import ApiTrackerError, exit_code_for
from ..profile import Profile, load_profile

console = Console()

# Colors of the timeline severities
SEVERITY_STYLES = {
    "ok": "green",
    "warning": "yellow",
    "incompatible": "red",
}


def resolve_config(
    config: Optional[Path] = None,
    rebuild: bool = False,
    disable_cache: bool = False,
    target_version: Optional[str] = None,
    target_element: Optional[str] = None,
    debug: bool = False,
    quiet: bool = False,
) -> TrackerConfig:
    """Build the run configuration from CLI options."""
    overrides = {}
    if rebuild:
        overrides["rebuild"] = True
    if disable_cache:
        overrides["disable_cache"] = True
    if target_version is not None:
        overrides["target_version"] = target_version
    if target_element is not None:
        overrides["target_element"] = target_element.lower()
    return load_config(config_file=config, debug=debug, quiet=quiet, **overrides)


def fail(error: ApiTrackerError) -> NoReturn:
    """Report a fatal error and exit with the code of its category."""
    console.print(f"[red]Error:[/red] {escape(error.message)}")
    for key, value in error.details.items():
        console.print(f"  [dim]{key}:[/dim] {escape(str(value))}")
    raise typer.Exit(int(exit_code_for(error)))


def open_profile(path: Path) -> Profile:
    try:
        return load_profile(path)
    except ApiTrackerError as e:
        fail(e)
