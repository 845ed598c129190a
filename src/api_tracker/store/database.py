"""Tracker database: ``db/<Name>/Tracker.json`` plus the artifact trees.

Artifacts live under the output root::

    api_dump/<Name>/<V>/<key>/API.dump
    compat_report/<Name>/<V1>/<V2>/<key>/{bin,src}_compat_report.html
    archives_report/<Name>/<V1>/<V2>/meta.json
    package_diff/<Name>/<V1>/<V2>/report.html

and every artifact directory carries a ``meta.json`` sidecar. Paths stored
in records are relative to the output root.
"""

from __future__ import annotations

import json
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from ..logging_config import get_logger
from .keys import DEFAULT_KEY_LENGTH, archive_key
from .models import (
    ApiDumpRecord,
    PackageDiffRecord,
    PairComparisonRecord,
    StoreData,
    VersionPairSummary,
)
from .sidecar import SIDECAR_NAME, read_sidecar, write_sidecar

logger = get_logger(__name__)

DB_NAME = "Tracker.json"
DUMP_NAME = "API.dump"
BIN_REPORT_NAME = "bin_compat_report.html"
SRC_REPORT_NAME = "src_compat_report.html"
PKGDIFF_REPORT_NAME = "report.html"

ARTIFACT_DIRS = ("api_dump", "compat_report", "archives_report", "package_diff")

_PKGDIFF_CHANGED = re.compile(r"changed:(.+?);")

# Errors meaning "this sidecar can't be turned into a record"
_CORRUPT = (OSError, ValueError, KeyError, TypeError)


def _subdirs(path: Path) -> Iterator[Path]:
    if not path.is_dir():
        return
    for child in sorted(path.iterdir()):
        if child.is_dir():
            yield child


def _slot(base: str, records: Dict[str, Any], owns: Callable[[Any], bool]) -> str:
    """Key of the record that ``owns`` accepts, else the first free key.

    Archives whose hashes collide take ``<key>-1``, ``<key>-2``, ... so that
    no record is ever overwritten by another archive's.
    """
    for key, record in records.items():
        if (key == base or key.startswith(base + "-")) and owns(record):
            return key
    key, n = base, 0
    while key in records:
        n += 1
        key = f"{base}-{n}"
    return key


class TrackerStore:
    """Persistent cache of dumps, comparisons and summaries for one library.

    Usage::

        with TrackerStore(".", "commons-io") as store:
            record = store.get_dump("2.4", key, archive="commons-io-2.4.jar")

    Leaving the ``with`` block saves the database, whatever the exit path.
    """

    def __init__(self, root: Path | str, library: str, key_length: int = DEFAULT_KEY_LENGTH) -> None:
        self.root = Path(root)
        self.library = library
        self.key_length = key_length
        self.db_path = self.root / "db" / library / DB_NAME
        self.data = StoreData()

    # ── paths ─────────────────────────────────────────────────────

    def key(self, *archives: str) -> str:
        return archive_key(*archives, length=self.key_length)

    def dump_key(self, version: str, archive: str) -> str:
        """Slot of an archive's dump in a version, see :func:`_slot`."""
        records = self.data.dumps.get(version, {})
        return _slot(self.key(archive), records, lambda r: r.archive == archive)

    def comparison_key(self, v1: str, v2: str, archive1: str, archive2: str) -> str:
        records = self.data.comparisons.get(v1, {}).get(v2, {})
        return _slot(
            self.key(archive1, archive2),
            records,
            lambda r: r.archive1 == archive1 and r.archive2 == archive2,
        )

    def resolve(self, stored: str) -> Path:
        return self.root / stored

    def relative(self, path: Path) -> str:
        return Path(os.path.relpath(path, self.root)).as_posix()

    def dump_dir(self, version: str, key: str) -> Path:
        return self.root / "api_dump" / self.library / version / key

    def comparison_dir(self, v1: str, v2: str, key: str) -> Path:
        return self.root / "compat_report" / self.library / v1 / v2 / key

    def summary_dir(self, v1: str, v2: str) -> Path:
        return self.root / "archives_report" / self.library / v1 / v2

    def package_diff_dir(self, v1: str, v2: str) -> Path:
        return self.root / "package_diff" / self.library / v1 / v2

    def _exists(self, stored: Optional[str]) -> bool:
        return stored is not None and self.resolve(stored).exists()

    # ── API dumps ─────────────────────────────────────────────────

    def get_dump(self, version: str, key: str, archive: Optional[str] = None) -> Optional[ApiDumpRecord]:
        """Cached dump, or None when absent, colliding or gone from disk."""
        record = self.data.dumps.get(version, {}).get(key)
        if record is None:
            return None
        if archive is not None and record.archive != archive:
            logger.debug("Key %s of %s holds %s, not %s", key, version, record.archive, archive)
            return None
        if not self._exists(record.path):
            logger.debug("Dump %s is gone, dropping it", record.path)
            self._forget_dump(version, key)
            return None
        return record

    def find_dump(self, version: str, archive: str) -> Optional[ApiDumpRecord]:
        return self.get_dump(version, self.dump_key(version, archive), archive=archive)

    def put_dump(self, version: str, key: str, record: ApiDumpRecord) -> None:
        """Store a dump under a key from :meth:`dump_key`.

        Raises:
            ValueError: If the key holds the dump of another archive
        """
        records = self.data.dumps.setdefault(version, {})
        held = records.get(key)
        if held is not None and held.archive != record.archive:
            raise ValueError(f"key {key} of {version} holds {held.archive}, not {record.archive}")
        records[key] = record
        write_sidecar(self.dump_dir(version, key) / SIDECAR_NAME, record.to_dict())

    def invalidate_dump(self, version: str, key: str) -> None:
        self._forget_dump(version, key)
        shutil.rmtree(self.dump_dir(version, key), ignore_errors=True)

    def dumps_for(self, version: str) -> Dict[str, ApiDumpRecord]:
        return dict(self.data.dumps.get(version, {}))

    def drop_version_dumps(self, version: str) -> None:
        """Forget every dump of a version and delete its dump tree."""
        self.data.dumps.pop(version, None)
        shutil.rmtree(self.root / "api_dump" / self.library / version, ignore_errors=True)

    def _forget_dump(self, version: str, key: str) -> None:
        records = self.data.dumps.get(version)
        if records is not None:
            records.pop(key, None)
            if not records:
                del self.data.dumps[version]

    # ── pair comparisons ──────────────────────────────────────────

    def get_comparison(
        self,
        v1: str,
        v2: str,
        key: str,
        archive1: Optional[str] = None,
        archive2: Optional[str] = None,
    ) -> Optional[PairComparisonRecord]:
        record = self.data.comparisons.get(v1, {}).get(v2, {}).get(key)
        if record is None:
            return None
        if (archive1 is not None and record.archive1 != archive1) or (
            archive2 is not None and record.archive2 != archive2
        ):
            logger.debug("Key %s of %s/%s holds another archive pair", key, v1, v2)
            return None
        if not self._exists(record.path):
            logger.debug("Report %s is gone, dropping it", record.path)
            self._forget_comparison(v1, v2, key)
            return None
        return record

    def put_comparison(self, v1: str, v2: str, key: str, record: PairComparisonRecord) -> None:
        records = self.data.comparisons.setdefault(v1, {}).setdefault(v2, {})
        held = records.get(key)
        if held is not None and (held.archive1, held.archive2) != (record.archive1, record.archive2):
            raise ValueError(f"key {key} of {v1}/{v2} holds {held.archive1} and {held.archive2}")
        records[key] = record
        write_sidecar(self.comparison_dir(v1, v2, key) / SIDECAR_NAME, record.to_dict())

    def invalidate_comparison(self, v1: str, v2: str, key: str) -> None:
        self._forget_comparison(v1, v2, key)
        shutil.rmtree(self.comparison_dir(v1, v2, key), ignore_errors=True)

    def comparisons_for(self, v1: str, v2: str) -> Dict[str, PairComparisonRecord]:
        return dict(self.data.comparisons.get(v1, {}).get(v2, {}))

    def drop_pair_comparisons(self, v1: str, v2: str) -> None:
        by_v2 = self.data.comparisons.get(v1)
        if by_v2 is not None:
            by_v2.pop(v2, None)
            if not by_v2:
                del self.data.comparisons[v1]
        shutil.rmtree(self.root / "compat_report" / self.library / v1 / v2, ignore_errors=True)

    def _forget_comparison(self, v1: str, v2: str, key: str) -> None:
        by_v2 = self.data.comparisons.get(v1)
        if by_v2 is None:
            return
        records = by_v2.get(v2)
        if records is not None:
            records.pop(key, None)
            if not records:
                del by_v2[v2]
        if not by_v2:
            del self.data.comparisons[v1]

    # ── version pair summaries ────────────────────────────────────

    def get_summary(self, v1: str, v2: str) -> Optional[VersionPairSummary]:
        summary = self.data.summaries.get(v1, {}).get(v2)
        if summary is None:
            return None
        if not self._exists(summary.path):
            self._forget_summary(v1, v2)
            return None
        return summary

    def put_summary(self, v1: str, v2: str, summary: VersionPairSummary) -> None:
        sidecar = self.summary_dir(v1, v2) / SIDECAR_NAME
        summary.path = self.relative(sidecar)
        self.data.summaries.setdefault(v1, {})[v2] = summary
        write_sidecar(sidecar, summary.to_dict())

    def invalidate_summary(self, v1: str, v2: str) -> None:
        self._forget_summary(v1, v2)
        shutil.rmtree(self.summary_dir(v1, v2), ignore_errors=True)

    def summaries(self) -> Iterator[Tuple[str, str, VersionPairSummary]]:
        for v1, by_v2 in self.data.summaries.items():
            for v2, summary in by_v2.items():
                yield v1, v2, summary

    def _forget_summary(self, v1: str, v2: str) -> None:
        by_v2 = self.data.summaries.get(v1)
        if by_v2 is not None:
            by_v2.pop(v2, None)
            if not by_v2:
                del self.data.summaries[v1]

    # ── package diffs ─────────────────────────────────────────────

    def get_package_diff(self, v1: str, v2: str) -> Optional[PackageDiffRecord]:
        record = self.data.package_diffs.get(v1, {}).get(v2)
        if record is not None and not self._exists(record.path):
            self._forget_package_diff(v1, v2)
            return None
        return record

    def put_package_diff(self, v1: str, v2: str, record: PackageDiffRecord) -> None:
        self.data.package_diffs.setdefault(v1, {})[v2] = record
        write_sidecar(self.package_diff_dir(v1, v2) / SIDECAR_NAME, record.to_dict())

    def invalidate_package_diff(self, v1: str, v2: str) -> None:
        self._forget_package_diff(v1, v2)
        shutil.rmtree(self.package_diff_dir(v1, v2), ignore_errors=True)

    def _forget_package_diff(self, v1: str, v2: str) -> None:
        by_v2 = self.data.package_diffs.get(v1)
        if by_v2 is not None:
            by_v2.pop(v2, None)
            if not by_v2:
                del self.data.package_diffs[v1]

    # ── reconciliation ────────────────────────────────────────────

    def reconcile_with_disk(self) -> Tuple[int, int]:
        """Bring the database in line with the artifact trees.

        Entries whose artifact is gone are dropped; artifact directories
        with a sidecar but no entry are adopted. Returns
        ``(dropped, adopted)``.
        """
        dropped = self._drop_missing()
        adopted = self._adopt_dumps() + self._adopt_comparisons()
        adopted += self._adopt_summaries() + self._adopt_package_diffs()
        if dropped or adopted:
            logger.debug("Reconciled %s: %d dropped, %d adopted", self.library, dropped, adopted)
        return dropped, adopted

    def _drop_missing(self) -> int:
        dropped = 0
        for version, records in list(self.data.dumps.items()):
            for key, record in list(records.items()):
                if not self._exists(record.path):
                    self._forget_dump(version, key)
                    dropped += 1
        for v1, by_v2 in list(self.data.comparisons.items()):
            for v2, records in list(by_v2.items()):
                for key, record in list(records.items()):
                    if not self._exists(record.path):
                        self._forget_comparison(v1, v2, key)
                        dropped += 1
        for v1, v2, summary in list(self.summaries()):
            if not self._exists(summary.path):
                self._forget_summary(v1, v2)
                dropped += 1
        for v1, by_v2 in list(self.data.package_diffs.items()):
            for v2, record in list(by_v2.items()):
                if not self._exists(record.path):
                    self._forget_package_diff(v1, v2)
                    dropped += 1
        return dropped

    def _read_meta(self, directory: Path) -> Optional[dict]:
        sidecar = directory / SIDECAR_NAME
        if not sidecar.is_file():
            return None
        try:
            return read_sidecar(sidecar)
        except _CORRUPT as e:
            logger.warning("Ignoring corrupt sidecar %s: %s", sidecar, e)
            return None

    def _adopt_dumps(self) -> int:
        adopted = 0
        for version_dir in _subdirs(self.root / "api_dump" / self.library):
            version = version_dir.name
            for key_dir in _subdirs(version_dir):
                key = key_dir.name
                artifact = key_dir / DUMP_NAME
                if key in self.data.dumps.get(version, {}) or not artifact.is_file():
                    continue
                meta = self._read_meta(key_dir)
                if meta is None:
                    continue
                try:
                    record = ApiDumpRecord.from_dict({**meta, "Path": self.relative(artifact)})
                except _CORRUPT as e:
                    logger.warning("Ignoring corrupt sidecar in %s: %s", key_dir, e)
                    continue
                self.data.dumps.setdefault(version, {})[key] = record
                adopted += 1
        return adopted

    def _adopt_comparisons(self) -> int:
        adopted = 0
        for v1_dir in _subdirs(self.root / "compat_report" / self.library):
            for v2_dir in _subdirs(v1_dir):
                v1, v2 = v1_dir.name, v2_dir.name
                for key_dir in _subdirs(v2_dir):
                    key = key_dir.name
                    artifact = key_dir / BIN_REPORT_NAME
                    if key in self.data.comparisons.get(v1, {}).get(v2, {}) or not artifact.is_file():
                        continue
                    meta = self._read_meta(key_dir)
                    if meta is None:
                        continue
                    meta = {
                        **meta,
                        "Path": self.relative(artifact),
                        "Source_ReportPath": self.relative(key_dir / SRC_REPORT_NAME),
                    }
                    try:
                        record = PairComparisonRecord.from_dict(meta)
                    except _CORRUPT as e:
                        logger.warning("Ignoring corrupt sidecar in %s: %s", key_dir, e)
                        continue
                    self.data.comparisons.setdefault(v1, {}).setdefault(v2, {})[key] = record
                    adopted += 1
        return adopted

    def _adopt_summaries(self) -> int:
        adopted = 0
        for v1_dir in _subdirs(self.root / "archives_report" / self.library):
            for v2_dir in _subdirs(v1_dir):
                v1, v2 = v1_dir.name, v2_dir.name
                if v2 in self.data.summaries.get(v1, {}):
                    continue
                meta = self._read_meta(v2_dir)
                if meta is None:
                    continue
                try:
                    summary = VersionPairSummary.from_dict(meta)
                except _CORRUPT as e:
                    logger.warning("Ignoring corrupt sidecar in %s: %s", v2_dir, e)
                    continue
                summary.path = self.relative(v2_dir / SIDECAR_NAME)
                self.data.summaries.setdefault(v1, {})[v2] = summary
                adopted += 1
        return adopted

    def _adopt_package_diffs(self) -> int:
        adopted = 0
        for v1_dir in _subdirs(self.root / "package_diff" / self.library):
            for v2_dir in _subdirs(v1_dir):
                v1, v2 = v1_dir.name, v2_dir.name
                report = v2_dir / PKGDIFF_REPORT_NAME
                if v2 in self.data.package_diffs.get(v1, {}) or not report.is_file():
                    continue
                meta = self._read_meta(v2_dir) or {}
                changed = meta.get("Changed")
                if changed is None:
                    changed = _read_pkgdiff_changed(report)
                try:
                    record = PackageDiffRecord.from_dict({"Path": self.relative(report), "Changed": changed})
                except _CORRUPT as e:
                    logger.warning("Ignoring package diff in %s: %s", v2_dir, e)
                    continue
                self.data.package_diffs.setdefault(v1, {})[v2] = record
                adopted += 1
        return adopted

    # ── lifecycle ─────────────────────────────────────────────────

    def load(self) -> StoreData:
        """Read the database; a missing file means an empty database.

        An unreadable database is replaced by an empty one, which
        :meth:`reconcile_with_disk` then refills from the sidecars.
        """
        if not self.db_path.is_file():
            self.data = StoreData()
            return self.data
        try:
            raw = json.loads(self.db_path.read_text(encoding="utf-8"))
            self.data = StoreData.from_dict(raw)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Can't read %s (%s), rebuilding it from the artifact trees", self.db_path, e)
            self.data = StoreData()
        return self.data

    def save(self) -> None:
        """Write the database atomically (temp file, then rename)."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self.data.to_dict(), indent=2, sort_keys=True) + "\n"
        fd, tmp_name = tempfile.mkstemp(prefix=".Tracker.", suffix=".tmp", dir=self.db_path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.db_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved %s", self.db_path)

    def clear(self) -> None:
        """Delete the database and every artifact tree of the library."""
        logger.info("Remove %s", self.db_path)
        self.db_path.unlink(missing_ok=True)
        for name in ARTIFACT_DIRS:
            target = self.root / name / self.library
            logger.info("Remove %s", target)
            shutil.rmtree(target, ignore_errors=True)
        self.data = StoreData()

    def __enter__(self) -> "TrackerStore":
        self.load()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.save()


def _read_pkgdiff_changed(report: Path) -> Optional[str]:
    try:
        with open(report, encoding="utf-8", errors="replace") as f:
            first = f.readline()
    except OSError:
        return None
    match = _PKGDIFF_CHANGED.search(first)
    return match.group(1) if match else None
