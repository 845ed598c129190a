"""Clear command: forget everything built for a library."""

from pathlib import Path
from typing import Optional

import typer

from ..exceptions import ApiTrackerError
from . import app
from ._common import console, fail, open_profile, resolve_config


@app.command()
def clear(
    profile_path: Path = typer.Argument(..., metavar="PROFILE", help="Profile of the library (JSON)"),
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
    """Remove the database, the artifact trees and the symbol count memo."""
    from ..cache import SymbolCountCache
    from ..logging_config import setup_logging
    from ..store import TrackerStore

    setup_logging()
    profile = open_profile(profile_path)
    try:
        settings = resolve_config(config=config)
    except ApiTrackerError as e:
        fail(e)

    TrackerStore(settings.output_root, profile.name, key_length=settings.key_length).clear()

    counts = 0
    memo_dir = Path(settings.output_root) / settings.symbol_cache_dir
    if memo_dir.is_dir():
        with SymbolCountCache(str(memo_dir)) as memo:
            counts = memo.clear()

    console.print(f"[green]Cleared {profile.name}[/green] ({counts} cached symbol counts)")
