"""Profile document parsing and round-trip saving.

The profile is a JSON object. Boolean flags are written by hand as
``"On"``/``"Off"`` strings, but JSON booleans and ``1``/``0`` are accepted
too. Keys unknown to :class:`Profile` are preserved verbatim when the
document is saved back.
"""

from __future__ import annotations

import copy
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..exceptions import InvalidProfileError, ProfileAccessError
from ..logging_config import get_logger
from .models import Profile, VersionEntry

logger = get_logger(__name__)

# Characters that turn a SkipVersions / SkipArchives entry into a regex.
PATTERN_CHARS = re.compile(r"[*+(|\\]")

_STR, _BOOL, _LIST, _INT = "str", "bool", "list", "int"

# Profile key -> (attribute, kind)
PROFILE_FIELDS: Dict[str, tuple[str, str]] = {
    "Name": ("name", _STR),
    "Title": ("title", _STR),
    "SourceUrl": ("source_url", _STR),
    "Maintainer": ("maintainer", _STR),
    "MaintainerUrl": ("maintainer_url", _STR),
    "Git": ("git", _STR),
    "Svn": ("svn", _STR),
    "SnapshotVer": ("snapshot_ver", _STR),
    "MinimalVersion": ("minimal_version", _STR),
    "SkipVersions": ("skip_versions", _LIST),
    "SkipOdd": ("skip_odd", _BOOL),
    "SkipArchives": ("skip_archives", _LIST),
    "CheckArchives": ("check_archives", _LIST),
    "ArchiveSuffix": ("archive_suffix", _STR),
    "SkipPackages": ("skip_packages", _STR),
    "SkipClasses": ("skip_classes", _STR),
    "SkipInternalPackages": ("skip_internal_packages", _STR),
    "SkipInternalTypes": ("skip_internal_types", _STR),
    "AnnotationList": ("annotation_list", _STR),
    "SkipAnnotationList": ("skip_annotation_list", _STR),
    "PrivateAPI": ("private_api", _BOOL),
    "Dep": ("dep", _STR),
    "CompatRate": ("compat_rate", _BOOL),
    "ShowTotalProblems": ("show_total_problems", _BOOL),
    "HideUnchecked": ("hide_unchecked", _BOOL),
    "HideEmpty": ("hide_empty", _BOOL),
    "ReportStyle": ("report_style", _STR),
    "GraphXTics": ("graph_x_tics", _INT),
    "GraphShortXTics": ("graph_short_x_tics", _BOOL),
    "ExternalCss": ("external_css", _BOOL),
    "ExternalJs": ("external_js", _BOOL),
    "CompactReport": ("compact_report", _BOOL),
}

# Older spellings still found in hand-written profiles.
PROFILE_ALIASES = {
    "ShowTotalChanges": "ShowTotalProblems",
    "HideUncheked": "HideUnchecked",
}

VERSION_FIELDS: Dict[str, tuple[str, str]] = {
    "Number": ("number", _STR),
    "Installed": ("installed", _STR),
    "Source": ("source", _STR),
    "Changelog": ("changelog", _STR),
    "PkgDiff": ("pkgdiff", _BOOL),
    "AddedAnnotations": ("added_annotations", _BOOL),
    "Deleted": ("deleted", _BOOL),
}


def parse_flag(value: Any) -> bool:
    """Interpret an "On"/"Off" style flag."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in ("", "off", "0", "false", "no"):
        return False
    return True


def _convert(key: str, value: Any, kind: str) -> Any:
    if kind == _BOOL:
        return parse_flag(value)
    if kind == _LIST:
        if isinstance(value, str):
            return [value]
        if not isinstance(value, list):
            raise InvalidProfileError(f"'{key}' should be an array", field=key)
        return [str(v) for v in value]
    if kind == _INT:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise InvalidProfileError(f"'{key}' should be a number, got {value!r}", field=key)
    return None if value is None else str(value)


def read_profile(path: Path) -> Dict[str, Any]:
    """Read the raw profile document."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ProfileAccessError(Path(path), str(exc)) from exc
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidProfileError(f"malformed JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise InvalidProfileError("the profile should be a JSON object")
    return document


def parse_profile(document: Dict[str, Any]) -> Profile:
    """Build a :class:`Profile` from a raw document.

    Deleted and skipped versions are dropped, ``MinimalVersion`` is applied
    and the annotation boundary is derived.

    Raises:
        InvalidProfileError: missing library name or version number,
            duplicated version numbers.
    """
    values: Dict[str, Any] = {}
    for key, value in document.items():
        key = PROFILE_ALIASES.get(key, key)
        if key in PROFILE_FIELDS and key not in values:
            attr, kind = PROFILE_FIELDS[key]
            values[attr] = _convert(key, value, kind)

    if not values.get("name"):
        raise InvalidProfileError("name of the library is not specified", field="Name")

    raw_versions = document.get("Versions", [])
    if not isinstance(raw_versions, list):
        raise InvalidProfileError("'Versions' should be an array", field="Versions")

    profile = Profile(raw=document, **values)

    versions: List[VersionEntry] = []
    seen: set[str] = set()
    for position, raw_version in enumerate(raw_versions):
        entry = _parse_version(raw_version, position)
        if entry.number in seen:
            raise InvalidProfileError(f"version '{entry.number}' is declared twice", field="Number")
        seen.add(entry.number)

        if entry.deleted:
            logger.debug("Version %s is marked as deleted", entry.number)
            continue
        if skip_version(profile, entry.number):
            logger.debug("Version %s is skipped by the profile", entry.number)
            continue
        versions.append(entry)

    profile.versions = _apply_minimal_version(versions, profile.minimal_version)
    mark_annotation_boundary(profile)
    return profile


def load_profile(path: Path) -> Profile:
    """Read and parse a profile file."""
    return parse_profile(read_profile(path))


def _parse_version(raw: Any, position: int) -> VersionEntry:
    if not isinstance(raw, dict):
        raise InvalidProfileError(f"version entry #{position} should be an object", field="Versions")

    values: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}
    for key, value in raw.items():
        if key in VERSION_FIELDS:
            attr, kind = VERSION_FIELDS[key]
            values[attr] = _convert(key, value, kind)
        else:
            extra[key] = value

    if not values.get("number"):
        raise InvalidProfileError("version number is missed in the profile", field="Number")

    return VersionEntry(position=position, extra=extra, **values)


def skip_version(profile: Profile, number: str) -> bool:
    """Whether the profile excludes this version.

    ``SkipVersions`` entries are exact numbers or, when they contain regex
    metacharacters, full-match patterns. Without a skip list, ``SkipOdd``
    drops versions with an odd minor number.

    Raises:
        InvalidProfileError: If a ``SkipVersions`` pattern is not a valid regex
    """
    if profile.skip_versions:
        for entry in profile.skip_versions:
            if PATTERN_CHARS.search(entry):
                try:
                    if re.fullmatch(entry, number):
                        return True
                except re.error as e:
                    raise InvalidProfileError(f"bad pattern {entry!r}: {e}", field="SkipVersions") from e
            elif entry == number:
                return True
    elif profile.skip_odd:
        match = re.match(r"\d+\.(\d+)", number)
        if match and int(match.group(1)) % 2 == 1:
            return True
    return False


def _apply_minimal_version(versions: List[VersionEntry], minimal: Optional[str]) -> List[VersionEntry]:
    if not minimal:
        return versions
    floor = next((v for v in versions if v.number == minimal), None)
    if floor is None:
        logger.warning("MinimalVersion %s is not declared, ignoring it", minimal)
        return versions
    return [v for v in versions if v.position <= floor.position]


def mark_annotation_boundary(profile: Profile) -> Optional[str]:
    """Flag versions published before the annotations were introduced.

    Walking from the oldest version, the first version with
    ``AddedAnnotations`` is the boundary; every older version gets
    ``without_annotations``. Returns the boundary version, if any.
    """
    ordered = sorted(profile.versions, key=lambda v: v.position, reverse=True)
    boundary = next((v for v in ordered if v.added_annotations), None)
    for entry in ordered:
        entry.without_annotations = False
    if boundary is None:
        return None
    for entry in ordered:
        if entry is boundary:
            break
        entry.without_annotations = True
    return boundary.number


def _encode(value: Any, kind: str) -> Any:
    if kind == _BOOL:
        return "On" if value else "Off"
    return value


def _update_section(section: Dict[str, Any], obj: Any, fields: Dict[str, tuple[str, str]], defaults: Any) -> None:
    """Write typed values back into a raw section.

    Keys already present keep their original spelling and value when the
    typed value is unchanged; absent keys are only added for non-default
    values.
    """
    for key, (attr, kind) in fields.items():
        value = getattr(obj, attr)
        present = next((k for k in section if PROFILE_ALIASES.get(k, k) == key), None)
        if present is not None:
            if _convert(present, section[present], kind) != value:
                section[present] = _encode(value, kind)
        elif value != getattr(defaults, attr):
            section[key] = _encode(value, kind)


def profile_to_document(profile: Profile) -> Dict[str, Any]:
    """Serialize a profile back to its document form.

    Versions removed at load time (deleted, skipped, below MinimalVersion)
    stay in the document untouched.
    """
    document = copy.deepcopy(profile.raw)
    _update_section(document, profile, PROFILE_FIELDS, Profile(name=""))

    raw_versions = document.setdefault("Versions", [])
    known = {v.number: v for v in profile.versions}
    listed = set()
    for raw_version in raw_versions:
        number = str(raw_version.get("Number", ""))
        listed.add(number)
        entry = known.get(number)
        if entry is not None:
            _update_section(raw_version, entry, VERSION_FIELDS, VersionEntry(number="", position=0))
            for key, value in entry.extra.items():
                raw_version.setdefault(key, value)

    for entry in sorted(profile.versions, key=lambda v: v.position):
        if entry.number not in listed:
            raw_version = {"Number": entry.number}
            _update_section(raw_version, entry, VERSION_FIELDS, VersionEntry(number="", position=0))
            raw_version.update(entry.extra)
            raw_versions.insert(min(entry.position, len(raw_versions)), raw_version)

    return document


def add_version(
    profile: Profile,
    number: str,
    installed: Optional[str] = None,
    source: Optional[str] = None,
) -> VersionEntry:
    """Declare a new release as the newest version of the profile."""
    if not number:
        raise InvalidProfileError("version number is empty", field="Number")
    if profile.get_version(number) is not None or any(
        str(v.get("Number")) == number for v in profile.raw.get("Versions", []) if isinstance(v, dict)
    ):
        raise InvalidProfileError(f"version '{number}' is declared twice", field="Number")

    for entry in profile.versions:
        entry.position += 1
    entry = VersionEntry(number=number, position=0, installed=installed, source=source)
    profile.versions.insert(0, entry)
    mark_annotation_boundary(profile)
    return entry


def save_profile(profile: Profile, path: Path) -> None:
    """Write the profile document, preserving unrecognized fields."""
    document = profile_to_document(profile)
    Path(path).write_text(json.dumps(document, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    profile.raw = document
