"""Build command: dump, compare and summarize the profile's versions."""

from pathlib import Path
from typing import Optional

import click
import typer

from ..config import TARGET_ELEMENTS
from ..exceptions import ApiTrackerError
from ..logging_config import setup_logging
from . import app
from ._common import console, fail, open_profile, resolve_config


@app.command()
def build(
    profile_path: Path = typer.Argument(
        ...,
        metavar="PROFILE",
        help="Profile of the library (JSON)",
    ),
    rebuild: bool = typer.Option(
        False,
        "--rebuild",
        help="Recompute selected artifacts even if they are cached",
    ),
    version: Optional[str] = typer.Option(
        None,
        "--version",
        "-v",
        help="Only build this version and its comparison with the previous one",
    ),
    target: Optional[str] = typer.Option(
        None,
        "--target",
        "-t",
        help="Only build one kind of artifact",
        click_type=click.Choice(TARGET_ELEMENTS, case_sensitive=False),
    ),
    disable_cache: bool = typer.Option(
        False,
        "--disable-cache",
        help="Recount filtered symbols (after changing the profile's filters)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Log analyzer command lines",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log errors",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
):
    """
    Build or update the compatibility data of a library.

    Only what changed since the previous run is recomputed: new versions,
    the "current" checkout after new commits and rebuilt snapshots.

    [bold cyan]Examples:[/bold cyan]

      api-tracker build profiles/commons-io.json

      api-tracker build profiles/commons-io.json -v 2.5 --rebuild

      api-tracker build profiles/commons-io.json -t archivesreport
    """
    from ..pipeline import open_run, run_build

    logger = setup_logging(verbose=debug, quiet=quiet)

    try:
        settings = resolve_config(
            config=config,
            rebuild=rebuild,
            disable_cache=disable_cache,
            target_version=version,
            target_element=target,
            debug=debug,
            quiet=quiet,
        )
    except ApiTrackerError as e:
        fail(e)

    profile = open_profile(profile_path)

    try:
        ctx = open_run(profile, settings)
        stats = run_build(ctx)
    except ApiTrackerError as e:
        fail(e)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(1)

    logger.debug("Build of %s finished: %s", profile.name, stats)

    if not quiet:
        console.print(
            f"[bold]{profile.display_title}[/bold]: "
            f"[cyan]{stats.dumps}[/cyan] dumps, "
            f"[cyan]{stats.comparisons}[/cyan] comparisons, "
            f"[cyan]{stats.summaries}[/cyan] summaries, "
            f"[cyan]{stats.package_diffs}[/cyan] package diffs"
        )
        if stats.discarded:
            console.print(f"[yellow]{stats.discarded} comparisons checked zero symbols and were discarded[/yellow]")
        if stats.failures:
            console.print(f"[yellow]{len(stats.failures)} items failed, see the log above[/yellow]")
