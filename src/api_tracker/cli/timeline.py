"""Timeline command -- show the stored compatibility timeline."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from ..aggregate import format_percent
from ..exceptions import ApiTrackerError
from . import app
from ._common import SEVERITY_STYLES, console, fail, open_profile, resolve_config


@app.command()
def timeline(
    profile_path: Path = typer.Argument(
        ...,
        metavar="PROFILE",
        help="Profile of the library (JSON)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in machine-readable JSON format",
    ),
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
    Show the compatibility of every version with the previous one.

    Reads what [bold]api-tracker build[/bold] stored; nothing is analyzed.

    [bold cyan]Examples:[/bold cyan]

      api-tracker timeline profiles/commons-io.json

      api-tracker timeline profiles/commons-io.json --json
    """
    from ..store import TrackerStore
    from ..timeline import build_timeline

    profile = open_profile(profile_path)
    try:
        settings = resolve_config(config=config)
    except ApiTrackerError as e:
        fail(e)

    store = TrackerStore(settings.output_root, profile.name, key_length=settings.key_length)
    if not store.db_path.exists():
        console.print(
            "[yellow]No data found.[/yellow] "
            f"Run [bold]api-tracker build {escape(str(profile_path))}[/bold] first."
        )
        raise typer.Exit(0)

    store.load()
    result = build_timeline(profile, store)

    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _output_rich(result)


def _output_rich(result):
    """Rich terminal table, newest version first."""
    table = Table(title=escape(result.title), show_lines=False)
    table.add_column("Version", style="bold")
    if result.compat_rate:
        table.add_column("Binary\ncompat.", justify="right")
        table.add_column("Source\ncompat.", justify="right")
    table.add_column("Added\nmethods", justify="right")
    table.add_column("Removed\nmethods", justify="right")
    if result.show_total_problems:
        table.add_column("Total\nproblems", justify="right")
    if result.show_package_diff:
        table.add_column("Changed\nfiles", justify="right")
    table.add_column("Notes")

    for row in result.rows:
        cells = [escape(row.version)]
        summary = row.summary
        if summary is None:
            blank = "[dim]N/A[/dim]" if row.has_predecessor else ""
            if result.compat_rate:
                cells += [blank, blank]
            cells += [blank, blank]
            if result.show_total_problems:
                cells.append(blank)
        else:
            if result.compat_rate:
                style = SEVERITY_STYLES.get(row.severity, "")
                cells += [f"[{style}]{row.bc}%[/{style}]", f"{row.source_bc}%"]
            cells += [
                f"[green]{summary.added}[/green]" if summary.added else "0",
                f"[red]{summary.removed}[/red]" if summary.removed else "0",
            ]
            if result.show_total_problems:
                cells.append(str(summary.total_problems))
        if result.show_package_diff:
            cells.append(f"{format_percent(row.package_changed)}%" if row.package_changed is not None else "")
        cells.append(escape(", ".join(row.notes)))
        table.add_row(*cells)

    console.print(table)

    footer = []
    if result.maintainer:
        maintainer = escape(result.maintainer)
        if result.maintainer_url:
            maintainer += f" ({escape(result.maintainer_url)})"
        footer.append(f"Maintained by {maintainer}")
    if result.updated:
        footer.append(f"Last updated {result.updated}")
    if footer:
        console.print(f"[dim]{'. '.join(footer)}[/dim]")
