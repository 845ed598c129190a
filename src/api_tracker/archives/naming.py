"""Archive name normalization.

Release archives embed version numbers and qualifiers in their file names
(``commons-io-2.4.jar``, ``httpcore5-5.0-alpha1.jar``). Matching archives
across releases compares these names with the noise removed.
"""

from __future__ import annotations

import posixpath
import re
from typing import Iterable, Optional

ARCHIVE_EXTENSION = ".jar"

# NAME-X.Y.Z, NAME_X.Y, NAME-X.Y.Z-RELEASE, NAME-1.0-rc2 ...
_VERSION_TAIL = re.compile(
    r"\A(.+?)[-_][v\d.\-_]+(|[-_.](final|release|snapshot|RC\d*|beta\d*|alpha\d*))\Z",
    re.IGNORECASE,
)
# NAME-X.Y.Z-SUBJ -> NAME-SUBJ
_INNER_VERSION = re.compile(r"\A(.+?)-[\d.]+-(.+?)", re.IGNORECASE)
# httpcore5-5.0 -> httpcore-5.0
_GLUED_DIGITS = re.compile(r"\A([a-z]{3,})\d+(-)", re.IGNORECASE)


def archive_name(
    path: str,
    short: bool = False,
    shortest: bool = False,
    with_dir: bool = False,
    suffix: Optional[str] = None,
) -> str:
    """Canonical name of an archive.

    Args:
        path: Archive path relative to the install root
        short: Strip the trailing version/qualifier token
        shortest: Like ``short``, also strip digits glued to the name
        with_dir: Keep the directory prefix
        suffix: Profile ``ArchiveSuffix`` stripped before anything else
    """
    directory, name = posixpath.split(path)

    if name.lower().endswith(ARCHIVE_EXTENSION):
        name = name[: -len(ARCHIVE_EXTENSION)]

    if suffix and name.endswith(suffix):
        name = name[: -len(suffix)]

    if shortest:
        name = _GLUED_DIGITS.sub(r"\1\2", name, count=1)

    if short or shortest:
        name, count = _VERSION_TAIL.subn(r"\1", name, count=1)
        if not count:
            name = _INNER_VERSION.sub(r"\1-\2", name, count=1)

    if with_dir and directory:
        name = f"{directory}/{name}"

    return name


def sort_key(path: str) -> tuple[str, str]:
    """Case-insensitive ordering with a stable tie-break."""
    return (path.lower(), path)


def common_prefix(paths: Iterable[str]) -> Optional[str]:
    """Deepest directory shared by every path, or None."""
    paths = list(paths)
    if not paths:
        return None

    counts: dict[str, int] = {}
    for path in paths:
        directory = posixpath.dirname(path)
        while directory:
            counts[directory] = counts.get(directory, 0) + 1
            directory = posixpath.dirname(directory)

    shared = [d for d, n in counts.items() if n == len(paths)]
    if not shared:
        return None
    return max(shared, key=len)


_LAYOUT_DIRS = re.compile(r"\A(share|dist|jars)/")
_LIB_DIRS = re.compile(r"\Alib(64|32|)/")


def display_name(path: str, prefix: Optional[str] = None, short: bool = False, suffix: Optional[str] = None) -> str:
    """Name shown in reports: shared prefix and layout directories removed."""
    name = path
    if prefix and name.startswith(prefix + "/"):
        name = name[len(prefix) + 1 :]
    name = _LAYOUT_DIRS.sub("", name, count=1)
    name = _LIB_DIRS.sub("", name, count=1)
    if short:
        name = archive_name(name, short=True, suffix=suffix)
    return name
