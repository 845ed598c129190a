"""Add-version command: declare a new release in the profile."""

from pathlib import Path
from typing import Optional

import typer

from ..exceptions import ApiTrackerError, ExitCode
from ..profile import add_version as declare_version
from ..profile import save_profile
from . import app
from ._common import console, fail, open_profile


@app.command()
def add_version(
    profile_path: Path = typer.Argument(..., metavar="PROFILE", help="Profile of the library (JSON)"),
    number: str = typer.Argument(..., help="Version number of the new release"),
    installed: Optional[str] = typer.Option(None, "--installed", help="Directory of the installed release"),
    source: Optional[str] = typer.Option(None, "--source", help="Source package of the release"),
):
    """
    Declare a new release as the newest version of the profile.

    [bold cyan]Examples:[/bold cyan]

      api-tracker add-version profiles/commons-io.json 2.6 --installed installed/commons-io/2.6
    """
    profile = open_profile(profile_path)
    try:
        declare_version(profile, number, installed=installed, source=source)
        save_profile(profile, profile_path)
    except ApiTrackerError as e:
        fail(e)
    except OSError as e:
        console.print(f"[red]Can't write {profile_path}:[/red] {e}")
        raise typer.Exit(int(ExitCode.ACCESS_ERROR))

    console.print(f"Added version [bold]{number}[/bold] to {profile_path}")
