"""Persistent cache of analysis results."""

from .database import TrackerStore
from .freshness import FreshnessPolicy, scm_update_time, snapshot_update_time
from .keys import archive_key
from .models import (
    ApiDumpRecord,
    PackageDiffRecord,
    PairComparisonRecord,
    StoreData,
    VersionPairSummary,
)
from .sidecar import read_sidecar, write_sidecar

__all__ = [
    "ApiDumpRecord",
    "FreshnessPolicy",
    "PackageDiffRecord",
    "PairComparisonRecord",
    "StoreData",
    "TrackerStore",
    "VersionPairSummary",
    "archive_key",
    "read_sidecar",
    "scm_update_time",
    "snapshot_update_time",
    "write_sidecar",
]
