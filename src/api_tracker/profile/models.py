"""Typed profile model: the library, its declared versions and global options."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Version number of the VCS checkout tracked as a moving target.
CURRENT = "current"


@dataclass
class VersionEntry:
    """One declared release of the library.

    ``position`` is the declaration index in the profile: 0 is the newest
    version, larger values are older. Ordering is never inferred from the
    version string.
    """

    number: str
    position: int
    installed: Optional[str] = None
    source: Optional[str] = None
    changelog: Optional[str] = None
    pkgdiff: bool = False
    added_annotations: bool = False
    deleted: bool = False

    # Derived once per build: versions older than the oldest version with
    # AddedAnnotations were published without the annotations, so the
    # annotation filters don't apply to them.
    without_annotations: bool = False

    # Keys this model doesn't know about, kept for round-trip saving.
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Profile:
    """Parsed profile document.

    Only the loader touches the raw JSON; everything else reads these typed
    fields. ``raw`` holds the original document for :func:`save_profile`.
    """

    name: str
    title: Optional[str] = None
    source_url: Optional[str] = None
    maintainer: Optional[str] = None
    maintainer_url: Optional[str] = None

    # Source repository of the "current" version
    git: Optional[str] = None
    svn: Optional[str] = None
    snapshot_ver: Optional[str] = None

    # Version selection
    minimal_version: Optional[str] = None
    skip_versions: List[str] = field(default_factory=list)
    skip_odd: bool = False

    # Archive selection
    skip_archives: List[str] = field(default_factory=list)
    check_archives: Optional[List[str]] = None
    archive_suffix: Optional[str] = None

    # Analyzer symbol filters
    skip_packages: Optional[str] = None
    skip_classes: Optional[str] = None
    skip_internal_packages: Optional[str] = None
    skip_internal_types: Optional[str] = None
    annotation_list: Optional[str] = None
    skip_annotation_list: Optional[str] = None
    private_api: bool = False
    dep: Optional[str] = None

    # Display toggles
    compat_rate: bool = True
    show_total_problems: bool = False
    hide_unchecked: bool = False
    hide_empty: bool = False
    report_style: Optional[str] = None
    graph_x_tics: int = 5
    graph_short_x_tics: bool = False
    external_css: bool = False
    external_js: bool = False
    compact_report: bool = False

    versions: List[VersionEntry] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def display_title(self) -> str:
        return self.title or self.name

    def version_numbers(self) -> List[str]:
        """Version numbers in declaration order, newest first."""
        return [v.number for v in sorted(self.versions, key=lambda v: v.position)]

    def get_version(self, number: str) -> Optional[VersionEntry]:
        for entry in self.versions:
            if entry.number == number:
                return entry
        return None

    def is_live(self, number: str) -> bool:
        """Whether the version tracks a moving source (VCS head or rolling snapshot)."""
        if number == CURRENT:
            return True
        return self.snapshot_ver is not None and number == self.snapshot_ver

    def consecutive_pairs(self) -> List[tuple[str, str]]:
        """(older, newer) pairs of adjacent versions, newest pair first."""
        numbers = self.version_numbers()
        return [(numbers[i + 1], numbers[i]) for i in range(len(numbers) - 1)]
