"""Pair the archives of an older release with those of a newer one.

Archive names drift between releases: versions get embedded in file names,
suffixes change, a single archive gets split in two. The matcher tries
increasingly loose name keys for every OLD archive and only accepts a key
when it designates exactly one NEW archive that nothing claimed yet.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..logging_config import get_logger
from .naming import archive_name, sort_key

logger = get_logger(__name__)


@dataclass
class ArchiveMatch:
    """Result of matching two archive sets.

    Attributes:
        mapped: OLD archive -> NEW archive, injective
        removed: OLD archives without a counterpart
        added: NEW archives without a counterpart
        renamed: Mapped pairs whose short names differ
    """

    mapped: Dict[str, str] = field(default_factory=dict)
    removed: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    renamed: Dict[str, str] = field(default_factory=dict)

    def pairs(self) -> List[Tuple[str, str]]:
        """Mapped pairs ordered by the OLD archive."""
        return [(old, self.mapped[old]) for old in sorted(self.mapped, key=sort_key)]


def _normalize(archives: Iterable[str]) -> List[str]:
    return sorted(set(archives), key=sort_key)


def _index(archives: List[str], key_fn: Callable[[str], str]) -> Dict[str, List[str]]:
    index: Dict[str, List[str]] = {}
    for archive in archives:
        index.setdefault(key_fn(archive), []).append(archive)
    return index


def match_archives(old: Iterable[str], new: Iterable[str], *, suffix: Optional[str] = None) -> ArchiveMatch:
    """Match OLD archives to NEW archives.

    Rules, first hit wins for each OLD archive (lexicographic order):

    1. exact relative path (resolved for all OLD archives first, so an
       unchanged archive is never taken by a looser rule);
    2. short name with directory;
    3. short name;
    4. shortest name (digits glued to the name dropped);
    5. split archive: the OLD short name is the stem of NEW short names
       (``core`` -> ``core-api``, ``core-impl``); the first such NEW
       archive is taken when no other OLD archive has its short name.

    Rules 2-4 fire only when the key designates exactly one unclaimed NEW
    archive; a key is consumed once used. When nothing matched and each
    side holds a single archive, the two are paired anyway.
    """
    olds = _normalize(old)
    news = _normalize(new)

    def short_dir(path: str) -> str:
        return archive_name(path, short=True, with_dir=True, suffix=suffix)

    def short(path: str) -> str:
        return archive_name(path, short=True, suffix=suffix)

    def shortest(path: str) -> str:
        return archive_name(path, shortest=True, suffix=suffix)

    keyed_rules = [
        ("short name + dir", short_dir),
        ("short name", short),
        ("shortest name", shortest),
    ]
    indexes = {label: _index(news, key_fn) for label, key_fn in keyed_rules}

    mapped: Dict[str, str] = {}
    claimed: set[str] = set()

    new_set = set(news)
    for archive in olds:
        if archive in new_set:
            mapped[archive] = archive
            claimed.add(archive)

    old_shorts = {short(a) for a in olds}

    for archive in olds:
        if archive in mapped:
            continue

        candidate = None
        ambiguous = False
        for label, key_fn in keyed_rules:
            key = key_fn(archive)
            candidates = [c for c in indexes[label].get(key, []) if c not in claimed]
            ambiguous = ambiguous or len(candidates) > 1
            if len(candidates) == 1:
                candidate = candidates[0]
                del indexes[label][key]
                logger.debug("Matched %s -> %s by %s", archive, candidate, label)
                break

        if candidate is None and not ambiguous:
            candidate = _split_candidate(short(archive), news, claimed, old_shorts, short)
            if candidate is not None:
                logger.debug("Matched %s -> %s as a split archive", archive, candidate)

        if candidate is not None:
            mapped[archive] = candidate
            claimed.add(candidate)

    if not mapped and len(olds) == 1 and len(news) == 1:
        logger.debug("Single archive renamed: %s -> %s", olds[0], news[0])
        mapped[olds[0]] = news[0]

    targets = set(mapped.values())
    match = ArchiveMatch(
        mapped=mapped,
        removed=[a for a in olds if a not in mapped],
        added=[a for a in news if a not in targets],
    )
    match.renamed = {o: n for o, n in mapped.items() if short(o) != short(n)}
    return match


def _split_candidate(
    stem: str,
    news: List[str],
    claimed: set[str],
    old_shorts: set[str],
    short: Callable[[str], str],
) -> Optional[str]:
    for candidate in news:
        if candidate in claimed:
            continue
        name = short(candidate)
        if name in old_shorts:
            continue
        if len(name) > len(stem) and name.startswith(stem) and name[len(stem)] in "-_":
            return candidate
    return None


def demote_annotation_losses(
    match: ArchiveMatch,
    count_old: Callable[[str], int],
    count_new: Callable[[str], int],
) -> List[str]:
    """Move to ``removed`` the pairs whose visible API vanished at an annotation boundary.

    Call only for a NEW version flagged ``AddedAnnotations``. A pair is
    demoted when the OLD archive had filtered symbols and the NEW one has
    none. Returns the demoted OLD archives.
    """
    demoted = []
    for old, new in match.pairs():
        if count_old(old) and not count_new(new):
            demoted.append(old)

    for old in demoted:
        new = match.mapped.pop(old)
        match.renamed.pop(old, None)
        match.removed.append(old)
        logger.debug("Annotation boundary: %s no longer exposes symbols in %s", old, new)

    match.removed.sort(key=sort_key)
    return demoted
