"""``meta.json`` files stored next to every artifact.

A sidecar is a JSON object holding the fields of one record. It must stay
readable without the main database, so nothing here depends on the store.
"""

import json
from pathlib import Path
from typing import Any, Dict

SIDECAR_NAME = "meta.json"


def read_sidecar(path: Path) -> Dict[str, Any]:
    """Read a sidecar.

    Raises:
        OSError: If the file can't be read
        ValueError: If it isn't a JSON object
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return data


def write_sidecar(path: Path, data: Dict[str, Any]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
