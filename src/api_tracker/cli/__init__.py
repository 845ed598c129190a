"""CLI entry point; registers all subcommands."""

from typing import Optional

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="api-tracker",
    help="API Tracker - API compatibility timeline of a Java library",
    add_completion=False,
    rich_markup_mode="rich",
)


def _show_version(value: bool) -> None:
    if value:
        console.print(f"api-tracker [cyan]{__version__}[/cyan]")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show the version and exit",
        callback=_show_version,
        is_eager=True,
    ),
):
    """
    Track the backward compatibility of a library across its releases.

    [bold cyan]Examples:[/bold cyan]

      api-tracker build profiles/commons-io.json

      api-tracker timeline profiles/commons-io.json
    """


# Import subcommands to register them
from .build import build as _build  # noqa: F401, E402
from .timeline import timeline as _timeline  # noqa: F401, E402
from .report import report as _report  # noqa: F401, E402
from .clear import clear as _clear  # noqa: F401, E402
from .add_version import add_version as _add_version  # noqa: F401, E402
