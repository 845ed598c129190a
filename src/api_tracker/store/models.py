"""Records kept in the tracker database.

Each record serializes to the JSON object written next to its artifact
(``meta.json``) and to its entry in ``Tracker.json``; both use the same
key names, so a record can be rebuilt from its sidecar alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _int(value: Any) -> int:
    if value in (None, ""):
        return 0
    return int(float(value))


def _float(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    return float(value)


def _opt_int(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    return _int(value)


def _opt_float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    return _float(value)


def _opt_str(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    return str(value)


@dataclass
class ApiDumpRecord:
    """API dump of one archive of one version."""

    path: str
    archive: str
    total_symbols: int = 0
    total_symbols_filtered: Optional[int] = None
    lang: Optional[str] = None
    public_api: bool = True

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "Path": self.path,
            "Archive": self.archive,
            "TotalSymbols": self.total_symbols,
            "PublicAPI": 1 if self.public_api else 0,
        }
        if self.lang is not None:
            data["Lang"] = self.lang
        if self.total_symbols_filtered is not None:
            data["TotalSymbolsFiltered"] = self.total_symbols_filtered
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiDumpRecord":
        return cls(
            path=str(data["Path"]),
            archive=str(data["Archive"]),
            total_symbols=_int(data.get("TotalSymbols")),
            total_symbols_filtered=_opt_int(data.get("TotalSymbolsFiltered")),
            lang=_opt_str(data.get("Lang")),
            public_api=_int(data.get("PublicAPI", 1)) != 0,
        )


@dataclass
class PairComparisonRecord:
    """Analyzer result for one matched archive pair.

    ``affected`` and ``source_affected`` are percentages of affected symbols
    in the old archive, for binary and source compatibility.
    """

    affected: float
    added: int
    removed: int
    total_problems: int
    path: str
    archive1: str
    archive2: str
    source_affected: float = 0.0
    source_total_problems: int = 0
    source_report_path: Optional[str] = None

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed or self.total_problems or self.source_total_problems)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Affected": self.affected,
            "Added": self.added,
            "Removed": self.removed,
            "TotalProblems": self.total_problems,
            "Path": self.path,
            "Source_Affected": self.source_affected,
            "Source_TotalProblems": self.source_total_problems,
            "Source_ReportPath": self.source_report_path,
            "Archive1": self.archive1,
            "Archive2": self.archive2,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PairComparisonRecord":
        return cls(
            affected=_float(data.get("Affected")),
            added=_int(data.get("Added")),
            removed=_int(data.get("Removed")),
            total_problems=_int(data.get("TotalProblems")),
            path=str(data["Path"]),
            archive1=str(data["Archive1"]),
            archive2=str(data["Archive2"]),
            source_affected=_float(data.get("Source_Affected")),
            source_total_problems=_int(data.get("Source_TotalProblems")),
            source_report_path=_opt_str(data.get("Source_ReportPath")),
        )


@dataclass
class VersionPairSummary:
    """Aggregated compatibility of two consecutive versions.

    ``bc`` and ``source_bc`` keep full precision; truncate for display only.
    """

    bc: float
    source_bc: float
    added: int = 0
    removed: int = 0
    total_problems: int = 0
    source_total_problems: int = 0
    archives_added: int = 0
    archives_removed: int = 0
    archives_added_symbols: int = 0
    archives_removed_symbols: int = 0
    total_archives: int = 0
    renamed: Dict[str, str] = field(default_factory=dict)
    added_archives: List[str] = field(default_factory=list)
    removed_archives: List[str] = field(default_factory=list)
    path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "BC": self.bc,
            "Source_BC": self.source_bc,
            "Added": self.added,
            "Removed": self.removed,
            "TotalProblems": self.total_problems,
            "Source_TotalProblems": self.source_total_problems,
            "ArchivesAdded": self.archives_added,
            "ArchivesRemoved": self.archives_removed,
            "ArchivesAddedSymbols": self.archives_added_symbols,
            "ArchivesRemovedSymbols": self.archives_removed_symbols,
            "TotalArchives": self.total_archives,
            "Renamed": dict(self.renamed),
            "AddedArchives": list(self.added_archives),
            "RemovedArchives": list(self.removed_archives),
            "Path": self.path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionPairSummary":
        renamed = data.get("Renamed") or {}
        if not isinstance(renamed, dict):
            raise ValueError("'Renamed' should be an object")
        return cls(
            bc=_float(data.get("BC", 100)),
            source_bc=_float(data.get("Source_BC", 100)),
            added=_int(data.get("Added")),
            removed=_int(data.get("Removed")),
            total_problems=_int(data.get("TotalProblems")),
            source_total_problems=_int(data.get("Source_TotalProblems")),
            archives_added=_int(data.get("ArchivesAdded")),
            archives_removed=_int(data.get("ArchivesRemoved")),
            archives_added_symbols=_int(data.get("ArchivesAddedSymbols")),
            archives_removed_symbols=_int(data.get("ArchivesRemovedSymbols")),
            total_archives=_int(data.get("TotalArchives")),
            renamed={str(k): str(v) for k, v in renamed.items()},
            added_archives=[str(a) for a in data.get("AddedArchives") or []],
            removed_archives=[str(a) for a in data.get("RemovedArchives") or []],
            path=_opt_str(data.get("Path")),
        )


@dataclass
class PackageDiffRecord:
    """Package differ result; ``changed`` is the percentage of changed files."""

    path: str
    changed: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"Path": self.path, "Changed": self.changed}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageDiffRecord":
        return cls(path=str(data["Path"]), changed=_opt_float(data.get("Changed")))


# ── Whole database ────────────────────────────────────────────────

FORMAT_VERSION = 1


@dataclass
class StoreData:
    """Everything persisted in ``Tracker.json``."""

    # version -> key -> dump
    dumps: Dict[str, Dict[str, ApiDumpRecord]] = field(default_factory=dict)
    # old version -> new version -> key -> comparison
    comparisons: Dict[str, Dict[str, Dict[str, PairComparisonRecord]]] = field(default_factory=dict)
    # old version -> new version -> summary
    summaries: Dict[str, Dict[str, VersionPairSummary]] = field(default_factory=dict)
    package_diffs: Dict[str, Dict[str, PackageDiffRecord]] = field(default_factory=dict)

    scm_update_time: Optional[int] = None
    snapshot_update_time: Optional[int] = None
    updated: Optional[str] = None

    title: Optional[str] = None
    maintainer: Optional[str] = None
    maintainer_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Format": FORMAT_VERSION,
            "APIDump": {v: {k: r.to_dict() for k, r in recs.items()} for v, recs in self.dumps.items()},
            "APIReport_D": {
                v1: {v2: {k: r.to_dict() for k, r in recs.items()} for v2, recs in by_v2.items()}
                for v1, by_v2 in self.comparisons.items()
            },
            "APIReport": {
                v1: {v2: s.to_dict() for v2, s in by_v2.items()} for v1, by_v2 in self.summaries.items()
            },
            "PackageDiff": {
                v1: {v2: d.to_dict() for v2, d in by_v2.items()} for v1, by_v2 in self.package_diffs.items()
            },
            "ScmUpdateTime": self.scm_update_time,
            "SnapshotUpdateTime": self.snapshot_update_time,
            "Updated": self.updated,
            "Title": self.title,
            "Maintainer": self.maintainer,
            "MaintainerUrl": self.maintainer_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreData":
        return cls(
            dumps={
                v: {k: ApiDumpRecord.from_dict(r) for k, r in recs.items()}
                for v, recs in (data.get("APIDump") or {}).items()
            },
            comparisons={
                v1: {
                    v2: {k: PairComparisonRecord.from_dict(r) for k, r in recs.items()}
                    for v2, recs in by_v2.items()
                }
                for v1, by_v2 in (data.get("APIReport_D") or {}).items()
            },
            summaries={
                v1: {v2: VersionPairSummary.from_dict(s) for v2, s in by_v2.items()}
                for v1, by_v2 in (data.get("APIReport") or {}).items()
            },
            package_diffs={
                v1: {v2: PackageDiffRecord.from_dict(d) for v2, d in by_v2.items()}
                for v1, by_v2 in (data.get("PackageDiff") or {}).items()
            },
            scm_update_time=_opt_int(data.get("ScmUpdateTime")),
            snapshot_update_time=_opt_int(data.get("SnapshotUpdateTime")),
            updated=_opt_str(data.get("Updated")),
            title=_opt_str(data.get("Title")),
            maintainer=_opt_str(data.get("Maintainer")),
            maintainer_url=_opt_str(data.get("MaintainerUrl")),
        )
