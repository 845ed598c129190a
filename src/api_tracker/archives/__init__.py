"""Archive discovery, naming and cross-release matching."""

from .discovery import ArchiveFilter, find_archives, rule_matches
from .matcher import ArchiveMatch, demote_annotation_losses, match_archives
from .naming import archive_name, common_prefix, display_name, sort_key

__all__ = [
    "ArchiveFilter",
    "ArchiveMatch",
    "archive_name",
    "common_prefix",
    "demote_annotation_losses",
    "display_name",
    "find_archives",
    "match_archives",
    "rule_matches",
    "sort_key",
]
