"""Read side of the tracker: timeline rows and per-pair archive rows.

Nothing here runs the analyzer. Rows are built from what a previous
``build`` left in the store, with the profile's display toggles applied
(``CompatRate``, ``ShowTotalProblems``, ``HideEmpty``, ``ReportStyle``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .aggregate import format_percent
from .archives import common_prefix, display_name, sort_key
from .profile.models import Profile
from .store import TrackerStore, VersionPairSummary

NOT_AVAILABLE = "N/A"

# Severity of a version pair, used for table colors
SEVERITY_OK = "ok"
SEVERITY_WARNING = "warning"
SEVERITY_INCOMPATIBLE = "incompatible"

WARNING_THRESHOLD = 90


def severity(summary: VersionPairSummary) -> str:
    """Classify a pair by its truncated binary compatibility rate."""
    bc = format_percent(summary.bc)
    if bc != "100":
        return SEVERITY_WARNING if int(float(bc)) >= WARNING_THRESHOLD else SEVERITY_INCOMPATIBLE
    if summary.total_problems > 0:
        return SEVERITY_WARNING
    return SEVERITY_OK


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


@dataclass
class TimelineRow:
    """One version and how it relates to the version before it."""

    version: str
    previous: Optional[str] = None
    summary: Optional[VersionPairSummary] = None
    package_changed: Optional[float] = None
    changelog: Optional[str] = None

    @property
    def has_predecessor(self) -> bool:
        return self.previous is not None

    @property
    def bc(self) -> Optional[str]:
        return format_percent(self.summary.bc) if self.summary else None

    @property
    def source_bc(self) -> Optional[str]:
        return format_percent(self.summary.source_bc) if self.summary else None

    @property
    def severity(self) -> Optional[str]:
        return severity(self.summary) if self.summary else None

    @property
    def notes(self) -> List[str]:
        if self.summary is None:
            return []
        notes = []
        if self.summary.archives_added:
            notes.append(f"added {_plural(self.summary.archives_added, 'archive')}")
        if self.summary.archives_removed:
            notes.append(f"removed {_plural(self.summary.archives_removed, 'archive')}")
        return notes

    def to_dict(self, compat_rate: bool = True, total_problems: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {"Version": self.version, "Previous": self.previous}
        if self.summary is not None:
            if compat_rate:
                data["BC"] = self.bc
                data["Source_BC"] = self.source_bc
            data["Added"] = self.summary.added
            data["Removed"] = self.summary.removed
            if total_problems:
                data["TotalProblems"] = self.summary.total_problems
            data["ArchivesAdded"] = self.summary.archives_added
            data["ArchivesRemoved"] = self.summary.archives_removed
            data["Severity"] = self.severity
            data["Notes"] = self.notes
        elif self.has_predecessor:
            data["BC"] = NOT_AVAILABLE
        if self.package_changed is not None:
            data["PkgDiffChanged"] = format_percent(self.package_changed)
        if self.changelog:
            data["Changelog"] = self.changelog
        return data


@dataclass
class Timeline:
    """All versions of a library, newest first."""

    title: str
    rows: List[TimelineRow] = field(default_factory=list)
    compat_rate: bool = True
    show_total_problems: bool = False
    show_package_diff: bool = False
    maintainer: Optional[str] = None
    maintainer_url: Optional[str] = None
    updated: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Title": self.title,
            "Maintainer": self.maintainer,
            "MaintainerUrl": self.maintainer_url,
            "Updated": self.updated,
            "Versions": [
                row.to_dict(compat_rate=self.compat_rate, total_problems=self.show_total_problems)
                for row in self.rows
            ],
        }


def build_timeline(profile: Profile, store: TrackerStore) -> Timeline:
    """Timeline of the profile's versions from the stored summaries."""
    numbers = profile.version_numbers()
    rows = []
    for position, number in enumerate(numbers):
        previous = numbers[position + 1] if position + 1 < len(numbers) else None
        entry = profile.get_version(number)
        row = TimelineRow(version=number, previous=previous, changelog=entry.changelog if entry else None)
        if previous is not None:
            row.summary = store.get_summary(previous, number)
            diff = store.get_package_diff(previous, number)
            if diff is not None:
                row.package_changed = diff.changed
        rows.append(row)

    data = store.data
    return Timeline(
        title=profile.display_title,
        rows=rows,
        compat_rate=profile.compat_rate,
        show_total_problems=profile.show_total_problems,
        show_package_diff=any(v.pkgdiff for v in profile.versions),
        maintainer=profile.maintainer or data.maintainer,
        maintainer_url=profile.maintainer_url or data.maintainer_url,
        updated=data.updated,
    )


# ── archives of one version pair ──────────────────────────────────


@dataclass
class ArchiveRow:
    """One archive of a version pair: matched, added or removed."""

    old: Optional[str]
    new: Optional[str]
    status: str  # "changed", "unchanged", "added" or "removed"
    renamed: bool = False
    bc: Optional[str] = None
    source_bc: Optional[str] = None
    added: int = 0
    removed: int = 0
    total_problems: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Old": self.old,
            "New": self.new,
            "Status": self.status,
            "Renamed": self.renamed,
            "BC": self.bc,
            "Source_BC": self.source_bc,
            "Added": self.added,
            "Removed": self.removed,
            "TotalProblems": self.total_problems,
        }


def archives_report(profile: Profile, store: TrackerStore, v1: str, v2: str) -> Optional[List[ArchiveRow]]:
    """Per-archive rows of a version pair, or None when it has no summary.

    With ``HideEmpty`` matched archives without any change are left out.
    ``ReportStyle: ShortArchive`` shows names without their version tail.
    """
    summary = store.get_summary(v1, v2)
    if summary is None:
        return None

    comparisons = sorted(store.comparisons_for(v1, v2).values(), key=lambda c: sort_key(c.archive1))
    every = [c.archive1 for c in comparisons] + [c.archive2 for c in comparisons]
    every += summary.added_archives + summary.removed_archives
    prefix = common_prefix(every)
    short = profile.report_style == "ShortArchive"

    def name(path: str) -> str:
        return display_name(path, prefix=prefix, short=short, suffix=profile.archive_suffix)

    rows = []
    for comparison in comparisons:
        if profile.hide_empty and not comparison.changed:
            continue
        rows.append(
            ArchiveRow(
                old=name(comparison.archive1),
                new=name(comparison.archive2),
                status="changed" if comparison.changed else "unchanged",
                renamed=comparison.archive1 in summary.renamed,
                bc=format_percent(100 - comparison.affected),
                source_bc=format_percent(100 - comparison.source_affected),
                added=comparison.added,
                removed=comparison.removed,
                total_problems=comparison.total_problems,
            )
        )
    for archive in summary.added_archives:
        rows.append(ArchiveRow(old=None, new=name(archive), status="added"))
    for archive in summary.removed_archives:
        rows.append(ArchiveRow(old=name(archive), new=None, status="removed"))
    return rows
