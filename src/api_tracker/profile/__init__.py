"""Library profile: declared versions, their order and per-version flags."""

from .loader import (
    add_version,
    load_profile,
    mark_annotation_boundary,
    parse_flag,
    parse_profile,
    profile_to_document,
    read_profile,
    save_profile,
    skip_version,
)
from .models import CURRENT, Profile, VersionEntry

__all__ = [
    "CURRENT",
    "Profile",
    "VersionEntry",
    "add_version",
    "load_profile",
    "mark_annotation_boundary",
    "parse_flag",
    "parse_profile",
    "profile_to_document",
    "read_profile",
    "save_profile",
    "skip_version",
]
