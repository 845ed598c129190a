"""Enumerate the archives of an installed version."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..exceptions import MissingInstallError
from ..logging_config import get_logger
from ..profile.loader import PATTERN_CHARS
from .naming import ARCHIVE_EXTENSION, archive_name, sort_key

logger = get_logger(__name__)


def rule_matches(path: str, rule: str, suffix: Optional[str] = None) -> bool:
    """Whether a single filter rule selects the archive.

    A rule is one of: the exact file name; a directory (ends with ``/``),
    matched anywhere in the path; a regex (contains ``*+(|\\``) fully
    matched against the file name; or the archive's short name.
    """
    name = path.rsplit("/", 1)[-1]
    if rule == name:
        return True
    if rule.endswith("/"):
        return rule in path
    if PATTERN_CHARS.search(rule):
        try:
            return re.fullmatch(rule, name) is not None
        except re.error:
            logger.warning("Invalid archive pattern %r in the profile", rule)
            return False
    return rule == archive_name(name, short=True, suffix=suffix)


@dataclass(frozen=True)
class ArchiveFilter:
    """Deny list / allow list over archive paths.

    ``check`` is None when no allow list is configured; an empty allow list
    denies everything.
    """

    skip: Sequence[str] = field(default_factory=tuple)
    check: Optional[Sequence[str]] = None
    suffix: Optional[str] = None

    @classmethod
    def from_profile(cls, profile) -> "ArchiveFilter":
        return cls(
            skip=tuple(profile.skip_archives),
            check=None if profile.check_archives is None else tuple(profile.check_archives),
            suffix=profile.archive_suffix,
        )

    def skips(self, path: str) -> bool:
        if any(rule_matches(path, rule, self.suffix) for rule in self.skip):
            return True
        if self.check is not None:
            return not any(rule_matches(path, rule, self.suffix) for rule in self.check)
        return False


def find_archives(
    installed: Path | str,
    archive_filter: Optional[ArchiveFilter] = None,
    extensions: Sequence[str] = (ARCHIVE_EXTENSION,),
    version: str = "",
) -> List[str]:
    """List archives under an install root.

    Returns:
        Paths relative to ``installed`` (``/``-separated), filtered and
        sorted case-insensitively.

    Raises:
        MissingInstallError: If the install root is not a directory.
    """
    root = Path(installed)
    if not root.is_dir():
        raise MissingInstallError(version, root)

    archive_filter = archive_filter or ArchiveFilter()
    suffixes = tuple(ext.lower() for ext in extensions)

    found: List[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in filenames:
            if not filename.lower().endswith(suffixes):
                continue
            relative = Path(dirpath, filename).relative_to(root).as_posix()
            if archive_filter.skips(relative):
                logger.debug("Skipping archive %s", relative)
                continue
            found.append(relative)

    return sorted(found, key=sort_key)
