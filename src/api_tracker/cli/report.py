"""Report command -- archives of one version pair."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from ..exceptions import ApiTrackerError
from . import app
from ._common import console, fail, open_profile, resolve_config

_STATUS_STYLES = {
    "changed": "yellow",
    "unchanged": "dim",
    "added": "green",
    "removed": "red",
}


@app.command()
def report(
    profile_path: Path = typer.Argument(..., metavar="PROFILE", help="Profile of the library (JSON)"),
    old: str = typer.Argument(..., metavar="V1", help="Older version"),
    new: str = typer.Argument(..., metavar="V2", help="Newer version"),
    json_output: bool = typer.Option(False, "--json", help="Output in machine-readable JSON format"),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
):
    """
    Show the archives of two versions and how each of them changed.

    [bold cyan]Examples:[/bold cyan]

      api-tracker report profiles/commons-io.json 2.4 2.5
    """
    from ..store import TrackerStore
    from ..timeline import archives_report

    profile = open_profile(profile_path)
    try:
        settings = resolve_config(config=config)
    except ApiTrackerError as e:
        fail(e)

    store = TrackerStore(settings.output_root, profile.name, key_length=settings.key_length)
    store.load()
    rows = archives_report(profile, store, old, new)
    if rows is None:
        console.print(f"[yellow]No report for {escape(old)} and {escape(new)}.[/yellow]")
        raise typer.Exit(1)

    if json_output:
        print(json.dumps([row.to_dict() for row in rows], indent=2))
        return

    table = Table(title=f"{escape(profile.display_title)}: {escape(old)} → {escape(new)}")
    table.add_column(escape(old))
    table.add_column(escape(new))
    table.add_column("Binary\ncompat.", justify="right")
    table.add_column("Source\ncompat.", justify="right")
    table.add_column("Added", justify="right")
    table.add_column("Removed", justify="right")
    table.add_column("Status")

    for row in rows:
        style = _STATUS_STYLES[row.status]
        new_name = escape(row.new or "")
        if row.renamed:
            new_name += " [dim](renamed)[/dim]"
        table.add_row(
            escape(row.old or ""),
            new_name,
            f"{row.bc}%" if row.bc is not None else "",
            f"{row.source_bc}%" if row.source_bc is not None else "",
            str(row.added) if row.bc is not None else "",
            str(row.removed) if row.bc is not None else "",
            f"[{style}]{row.status}[/{style}]",
        )

    console.print(table)
