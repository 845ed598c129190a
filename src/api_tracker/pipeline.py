"""Incremental build of the compatibility timeline.

Versions come newest first, in the order the profile declares them. For
every selected version the archives are dumped (once, cached); for every
consecutive pair the two archive sets are matched, each matched pair is
compared (cached) and the results are folded into a
:class:`VersionPairSummary`.

All state of a run travels in a :class:`RunContext`.
"""

from __future__ import annotations

import dataclasses
import signal
import subprocess
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .aggregate import aggregate
from .analyzer import AnalyzerAdapter, PkgDiffAdapter, options_for
from .analyzer.adapter import Runner
from .archives import (
    ArchiveFilter,
    ArchiveMatch,
    archive_name,
    demote_annotation_losses,
    find_archives,
    match_archives,
    sort_key,
)
from .cache import SymbolCountCache
from .config import TrackerConfig
from .exceptions import (
    AnalyzerFailedError,
    AnalyzerMissingError,
    MissingArchiveError,
    MissingInstallError,
    ZeroSymbolsCheckedError,
)
from .logging_config import get_logger
from .profile.models import CURRENT, Profile
from .store import ApiDumpRecord, FreshnessPolicy, TrackerStore
from .store.database import BIN_REPORT_NAME, DUMP_NAME, PKGDIFF_REPORT_NAME, SRC_REPORT_NAME

logger = get_logger(__name__)


@dataclass
class BuildStats:
    """What a build run did."""

    dumps: int = 0
    comparisons: int = 0
    discarded: int = 0
    summaries: int = 0
    package_diffs: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def analyzer_runs(self) -> int:
        return self.dumps + self.comparisons + self.discarded


@dataclass
class RunContext:
    """Everything a build step needs; nothing lives in module globals."""

    profile: Profile
    config: TrackerConfig
    store: TrackerStore
    adapter: AnalyzerAdapter
    freshness: FreshnessPolicy
    pkgdiff: Optional[PkgDiffAdapter] = None
    symbol_cache: Optional[SymbolCountCache] = None
    stats: BuildStats = field(default_factory=BuildStats)


def open_run(profile: Profile, config: TrackerConfig, runner: Runner = subprocess.run) -> RunContext:
    """Check the analyzer, load and reconcile the store, set up the context.

    Raises:
        AnalyzerMissingError: The analyzer is not installed
        AnalyzerVersionError: The analyzer is too old
    """
    adapter = AnalyzerAdapter(config.analyzer_command, timeout=config.analyzer_timeout, runner=runner)
    adapter.check_version(config.analyzer_min_version)

    store = TrackerStore(config.output_root, profile.name, key_length=config.key_length)
    store.load()
    store.data.title = profile.title
    store.data.maintainer = profile.maintainer
    store.data.maintainer_url = profile.maintainer_url
    store.reconcile_with_disk()

    symbol_cache = None
    if config.symbol_cache_enabled:
        symbol_cache = SymbolCountCache(str(Path(config.output_root) / config.symbol_cache_dir))

    return RunContext(
        profile=profile,
        config=config,
        store=store,
        adapter=adapter,
        freshness=FreshnessPolicy(profile, store.data, rebuild=config.rebuild),
        pkgdiff=PkgDiffAdapter(config.pkgdiff_command, timeout=config.analyzer_timeout, runner=runner),
        symbol_cache=symbol_cache,
    )


def run_build(ctx: RunContext) -> BuildStats:
    """Build with a guaranteed flush of the store.

    The store is saved before the build, after it, and when SIGINT or
    SIGTERM arrives; an interrupted run exits with status 1.
    """

    def _interrupted(signum, frame):
        logger.info("Got signal %d, exiting", signum)
        raise SystemExit(1)

    previous = {}
    if threading.current_thread() is threading.main_thread():
        for sig in (signal.SIGINT, signal.SIGTERM):
            previous[sig] = signal.signal(sig, _interrupted)

    try:
        ctx.store.save()
        return build_data(ctx)
    finally:
        ctx.store.save()
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        if ctx.symbol_cache is not None:
            ctx.symbol_cache.close()


def build_data(ctx: RunContext) -> BuildStats:
    """Run every selected build step once."""
    profile, config = ctx.profile, ctx.config
    versions = profile.version_numbers()

    if config.target_version is not None and config.target_version not in versions:
        logger.error("unknown version number '%s'", config.target_version)

    for number in versions:
        if config.skips_version(number):
            continue
        entry = profile.get_version(number)
        if entry is not None and entry.installed and not Path(entry.installed).is_dir():
            logger.error("%s is not installed", number)

    if config.wants("apidump"):
        for number in versions:
            if not config.skips_version(number):
                create_api_dump(ctx, number)

    if config.rebuild and config.target_element is None and config.target_version in versions:
        # the predecessor's dump is compared against the rebuilt one
        position = versions.index(config.target_version)
        if position + 1 < len(versions):
            create_api_dump(ctx, versions[position + 1])

    for position, number in enumerate(versions):
        if position + 1 >= len(versions) or config.skips_version(number):
            continue
        older = versions[position + 1]
        if config.wants("apireport"):
            create_api_report(ctx, older, number)
        if config.wants("pkgdiff") and number != CURRENT:
            create_package_diff(ctx, older, number)

    ctx.freshness.record_times()
    ctx.store.data.updated = datetime.now(timezone.utc).isoformat(timespec="seconds")
    return ctx.stats


# ── API dumps ─────────────────────────────────────────────────────


def _module_name(archive: str) -> str:
    filename = archive.rsplit("/", 1)[-1]
    return archive_name(filename, short=True) or filename


def create_api_dump(ctx: RunContext, version: str) -> bool:
    """Dump every archive of a version, unless its dumps are reusable.

    Returns True when dumps were (re)created.
    """
    store = ctx.store
    if store.dumps_for(version) and not ctx.freshness.needs_update(version):
        return False

    store.drop_version_dumps(version)
    logger.info("Creating API dump for %s", version)

    entry = ctx.profile.get_version(version)
    installed = entry.installed if entry is not None else None
    try:
        if not installed:
            raise MissingInstallError(version, None)
        archives = find_archives(installed, ArchiveFilter.from_profile(ctx.profile), version=version)
        if not archives:
            raise MissingArchiveError(version, Path(installed))
    except (MissingInstallError, MissingArchiveError) as e:
        logger.warning(e.message)
        ctx.stats.failures.append(e.message)
        return False

    for archive in archives:
        key = store.dump_key(version, archive)
        output = store.dump_dir(version, key) / DUMP_NAME
        logger.info("Creating API dump for %s", archive)
        try:
            record = ctx.adapter.dump(version, Path(installed) / archive, output, _module_name(archive))
        except AnalyzerFailedError as e:
            logger.error("can't create API dump for %s: %s", archive, e.reason)
            ctx.stats.failures.append(e.message)
            store.invalidate_dump(version, key)
            continue

        record = dataclasses.replace(
            record,
            path=store.relative(output),
            archive=archive,
            public_api=not ctx.profile.private_api,
        )
        store.put_dump(version, key, record)
        ctx.stats.dumps += 1
    return True


def count_filtered_symbols(ctx: RunContext, version: str, record: ApiDumpRecord) -> int:
    """Symbols of a dump left after the profile's filters.

    The count is kept on the record; ``disable_cache`` recomputes it.
    """
    if record.total_symbols_filtered is not None and not ctx.config.disable_cache:
        return record.total_symbols_filtered

    entry = ctx.profile.get_version(version)
    if entry is None:
        return record.total_symbols
    options = options_for(ctx.profile, entry)

    if not options.has_symbol_filters or entry.without_annotations:
        record.total_symbols_filtered = record.total_symbols
        return record.total_symbols

    dump_path = ctx.store.resolve(record.path)

    def compute() -> int:
        logger.info("Counting symbols in the API dump for '%s'", record.archive.rsplit("/", 1)[-1])
        return ctx.adapter.count_symbols(dump_path, options)

    try:
        if ctx.symbol_cache is not None and not ctx.config.disable_cache:
            count = ctx.symbol_cache.count(dump_path, options.filter_args(), compute)
        else:
            count = compute()
    except AnalyzerFailedError as e:
        logger.warning("%s, using the total count", e.reason)
        return record.total_symbols

    record.total_symbols_filtered = count
    return count


# ── comparisons ───────────────────────────────────────────────────


def _dump_archives(ctx: RunContext, version: str) -> Dict[str, ApiDumpRecord]:
    """Dumped archives of a version that pass the archive filter."""
    archive_filter = ArchiveFilter.from_profile(ctx.profile)
    return {
        record.archive: record
        for record in ctx.store.dumps_for(version).values()
        if not archive_filter.skips(record.archive)
    }


def match_versions(
    ctx: RunContext, v1: str, v2: str
) -> Tuple[ArchiveMatch, Dict[str, ApiDumpRecord], Dict[str, ApiDumpRecord]]:
    """Match the dumped archives of two versions, annotation boundary applied."""
    dumps1 = _dump_archives(ctx, v1)
    dumps2 = _dump_archives(ctx, v2)
    match = match_archives(dumps1, dumps2, suffix=ctx.profile.archive_suffix)

    entry2 = ctx.profile.get_version(v2)
    if entry2 is not None and entry2.added_annotations:
        demote_annotation_losses(
            match,
            lambda a: count_filtered_symbols(ctx, v1, dumps1[a]),
            lambda a: count_filtered_symbols(ctx, v2, dumps2[a]),
        )
    return match, dumps1, dumps2


def _dependency_dumps(ctx: RunContext, v1: str, v2: str, module: str) -> Tuple[Optional[str], Optional[str]]:
    dep = ctx.profile.dep
    if not dep or dep == module:
        return None, None

    def find(version: str) -> Optional[str]:
        for record in sorted(ctx.store.dumps_for(version).values(), key=lambda r: sort_key(r.archive)):
            if archive_name(record.archive, short=True) == dep:
                return str(ctx.store.resolve(record.path))
        return None

    return find(v1), find(v2)


def compare_apis(ctx: RunContext, v1: str, v2: str, archive1: str, archive2: str) -> bool:
    """Compare one matched pair, unless a reusable result is stored.

    Returns True when the stored result changed (recomputed or discarded).
    """
    store = ctx.store
    key = store.comparison_key(v1, v2, archive1, archive2)

    fresh = not ctx.freshness.needs_update(v1) and not ctx.freshness.needs_update(v2)
    if fresh and store.get_comparison(v1, v2, key, archive1, archive2) is not None:
        return False

    store.invalidate_comparison(v1, v2, key)

    dump1 = store.find_dump(v1, archive1)
    dump2 = store.find_dump(v2, archive2)
    if dump1 is None or dump2 is None:
        logger.warning("No API dumps to compare %s (%s) and %s (%s)", archive1, v1, archive2, v2)
        return True

    logger.info("Creating compatibility report for %s (%s) and %s (%s)", archive1, v1, archive2, v2)

    module = _module_name(archive1)
    entry2 = ctx.profile.get_version(v2)
    options = options_for(ctx.profile, entry2, _dependency_dumps(ctx, v1, v2, module))
    directory = store.comparison_dir(v1, v2, key)

    try:
        record = ctx.adapter.compare(
            store.resolve(dump1.path),
            store.resolve(dump2.path),
            directory / BIN_REPORT_NAME,
            directory / SRC_REPORT_NAME,
            module,
            options,
        )
    except ZeroSymbolsCheckedError:
        logger.warning("zero methods or types checked in %s and %s, discarding the report", archive1, archive2)
        store.invalidate_comparison(v1, v2, key)
        ctx.stats.discarded += 1
        return True
    except AnalyzerFailedError as e:
        logger.error("can't compare %s and %s: %s", archive1, archive2, e.reason)
        ctx.stats.failures.append(e.message)
        store.invalidate_comparison(v1, v2, key)
        return True

    record = dataclasses.replace(
        record,
        path=store.relative(directory / BIN_REPORT_NAME),
        source_report_path=store.relative(directory / SRC_REPORT_NAME),
        archive1=archive1,
        archive2=archive2,
    )
    store.put_comparison(v1, v2, key, record)
    ctx.stats.comparisons += 1
    return True


# ── version pair summaries ────────────────────────────────────────


def _check_current_dumps(ctx: RunContext) -> None:
    """Recreate the dumps of ``current`` when a dumped archive left the checkout."""
    entry = ctx.profile.get_version(CURRENT)
    if entry is None or not entry.installed:
        return
    for record in ctx.store.dumps_for(CURRENT).values():
        if not (Path(entry.installed) / record.archive).exists():
            logger.warning("It's necessary to regenerate API dump for %s", CURRENT)
            ctx.store.drop_version_dumps(CURRENT)
            create_api_dump(ctx, CURRENT)
            return


def create_api_report(ctx: RunContext, v1: str, v2: str) -> bool:
    """Compare the matched archives of two versions and summarize them.

    Missing dumps are created first; without dumps on both sides there is
    no report. The summary is recomputed when one of its comparisons
    changed, on rebuild, after ``disable_cache`` or with the
    ``archivesreport`` target.
    Returns True when a summary was written or dropped.
    """
    store, config = ctx.store, ctx.config

    if not config.summaries_only:
        if v2 == CURRENT:
            _check_current_dumps(ctx)
        for version in (v1, v2):
            if not store.dumps_for(version):
                create_api_dump(ctx, version)
    if not store.dumps_for(v1) or not store.dumps_for(v2):
        logger.warning("No API dumps for %s or %s, skipping their report", v1, v2)
        return False

    match, dumps1, dumps2 = match_versions(ctx, v1, v2)

    changed = False
    if not config.summaries_only:
        if config.rebuild:
            store.drop_pair_comparisons(v1, v2)
        for archive1, archive2 in match.pairs():
            changed = compare_apis(ctx, v1, v2, archive1, archive2) or changed

    existing = store.get_summary(v1, v2)
    stale = changed or config.rebuild or config.disable_cache or config.summaries_only
    if existing is not None and not stale and not ctx.freshness.needs_update(v2):
        return False

    weighted = []
    for archive1, archive2 in match.pairs():
        key = store.comparison_key(v1, v2, archive1, archive2)
        comparison = store.get_comparison(v1, v2, key, archive1, archive2)
        if comparison is not None:
            weighted.append((comparison, dumps1[archive1].total_symbols))

    added = list(match.added)
    removed = list(match.removed)
    if ctx.profile.hide_unchecked:
        added = [a for a in added if count_filtered_symbols(ctx, v2, dumps2[a])]
        removed = [a for a in removed if count_filtered_symbols(ctx, v1, dumps1[a])]

    if not weighted and not added and not removed:
        if existing is not None:
            store.invalidate_summary(v1, v2)
        return existing is not None

    logger.info("Summarizing %s and %s", v1, v2)
    summary = aggregate(
        weighted,
        removed_symbols=[count_filtered_symbols(ctx, v1, dumps1[a]) for a in removed],
        added_symbols=[count_filtered_symbols(ctx, v2, dumps2[a]) for a in added],
        total_archives=len(dumps1),
        renamed=match.renamed,
    )
    summary.added_archives = added
    summary.removed_archives = removed
    store.put_summary(v1, v2, summary)
    ctx.stats.summaries += 1
    return True


# ── package diffs ─────────────────────────────────────────────────


def create_package_diff(ctx: RunContext, v1: str, v2: str) -> bool:
    """Diff the source packages of two versions when the profile asks for it."""
    config, store = ctx.config, ctx.store
    entry1 = ctx.profile.get_version(v1)
    entry2 = ctx.profile.get_version(v2)
    if entry1 is None or entry2 is None or ctx.pkgdiff is None:
        return False

    requested = config.target_version is not None and config.target_element is not None
    if not entry2.pkgdiff and not requested:
        return False
    if not config.rebuild and store.get_package_diff(v1, v2) is not None:
        return False

    store.invalidate_package_diff(v1, v2)
    logger.info("Creating package diff for %s and %s", v1, v2)

    sources = [entry1.source, entry2.source]
    if not all(s and Path(s).exists() for s in sources):
        logger.warning("Source packages of %s and %s are not available", v1, v2)
        return False

    directory = store.package_diff_dir(v1, v2)
    try:
        record = ctx.pkgdiff.diff(Path(entry1.source), Path(entry2.source), directory / PKGDIFF_REPORT_NAME)
    except (AnalyzerMissingError, AnalyzerFailedError) as e:
        logger.warning(e.message)
        ctx.stats.failures.append(e.message)
        return False

    record = dataclasses.replace(record, path=store.relative(directory / PKGDIFF_REPORT_NAME))
    store.put_package_diff(v1, v2, record)
    ctx.stats.package_diffs += 1
    return True
