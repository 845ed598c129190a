"""When a cached entry of a version must be recomputed.

Released versions are immutable: once an artifact exists it is reused.
Only live versions (the VCS checkout tracked as ``current`` and the rolling
snapshot named by ``SnapshotVer``) are compared against the modification
time of their source.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..logging_config import get_logger
from ..profile.models import CURRENT, Profile
from .models import StoreData

logger = get_logger(__name__)


def _mtime(path: Path) -> Optional[int]:
    try:
        return int(path.stat().st_mtime)
    except OSError:
        return None


def scm_update_time(profile: Profile) -> Optional[int]:
    """Last pull/update time of the ``current`` checkout, if observable."""
    entry = profile.get_version(CURRENT)
    if entry is None or not entry.source:
        return None
    source = Path(entry.source)
    if not source.is_dir():
        return None

    if profile.git is not None:
        head = source / ".git" / "refs" / "heads" / "master"
        if not head.is_file():
            # not updated yet
            head = source / ".git" / "FETCH_HEAD"
    elif profile.svn is not None:
        head = source / ".svn" / "wc.db"
    else:
        return None

    if not head.is_file():
        return None
    return _mtime(head)


def snapshot_update_time(profile: Profile) -> Optional[int]:
    """Modification time of the snapshot version's source package."""
    if not profile.snapshot_ver:
        return None
    entry = profile.get_version(profile.snapshot_ver)
    if entry is None or not entry.source:
        return None
    return _mtime(Path(entry.source))


class FreshnessPolicy:
    """Decides whether cached entries of a version can be reused."""

    def __init__(self, profile: Profile, data: StoreData, rebuild: bool = False) -> None:
        self.profile = profile
        self.data = data
        self.rebuild = rebuild

    def needs_update(self, version: str) -> bool:
        if self.rebuild:
            return True

        if version == CURRENT:
            if self.data.scm_update_time:
                observed = scm_update_time(self.profile)
                if observed and observed != self.data.scm_update_time:
                    logger.debug("%s checkout changed since the last build", version)
                    return True
        elif self.profile.snapshot_ver is not None and version == self.profile.snapshot_ver:
            if self.data.snapshot_update_time is None:
                return True
            observed = snapshot_update_time(self.profile)
            if observed and observed != self.data.snapshot_update_time:
                logger.debug("Snapshot %s changed since the last build", version)
                return True

        return False

    def record_times(self) -> None:
        """Store the observed source times once a build is done."""
        current = self.profile.get_version(CURRENT)
        if current is not None and current.installed and Path(current.installed).is_dir():
            observed = scm_update_time(self.profile)
            if observed:
                self.data.scm_update_time = observed

        observed = snapshot_update_time(self.profile)
        if observed:
            self.data.snapshot_update_time = observed
