"""Analyzer options derived from the profile."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..profile.models import Profile, VersionEntry


@dataclass(frozen=True)
class AnalyzerOptions:
    """Flags passed to the analyzer for one version (or version pair).

    ``filter_args`` is what both comparing and counting honor;
    ``compare_args`` adds the report-only flags.
    """

    skip_packages: Optional[str] = None
    skip_classes: Optional[str] = None
    skip_internal_packages: Optional[str] = None
    skip_internal_types: Optional[str] = None
    annotations_list: Optional[str] = None
    skip_annotations_list: Optional[str] = None
    added_annotations: bool = False
    private_api: bool = False
    dependency_dumps: Tuple[Optional[str], Optional[str]] = (None, None)
    external_css: bool = False
    external_js: bool = False
    compact: bool = False

    def filter_args(self) -> List[str]:
        args: List[str] = []
        for flag, value in (
            ("-skip-packages", self.skip_packages),
            ("-skip-classes", self.skip_classes),
            ("-skip-internal-packages", self.skip_internal_packages),
            ("-skip-internal-types", self.skip_internal_types),
            ("-annotations-list", self.annotations_list),
            ("-skip-annotations-list", self.skip_annotations_list),
        ):
            if value:
                args += [flag, value]
        return args

    def compare_args(self) -> List[str]:
        args = self.filter_args()
        if self.added_annotations:
            args.append("-added-annotations")
        if self.external_css:
            args += ["-external-css", "css/japicc.css"]
        if self.external_js:
            args += ["-external-js", "js/japicc.js"]
        if self.compact:
            args.append("-compact")
        dep1, dep2 = self.dependency_dumps
        if dep1:
            args += ["-dep1", dep1]
        if dep2:
            args += ["-dep2", dep2]
        return args

    @property
    def has_symbol_filters(self) -> bool:
        """Whether a filtered count can differ from the total count."""
        return bool(self.filter_args())


def options_for(
    profile: Profile,
    version: VersionEntry,
    dependency_dumps: Tuple[Optional[str], Optional[str]] = (None, None),
) -> AnalyzerOptions:
    """Options for analyzing ``version`` (the newer side of a comparison).

    Annotation lists are left out for versions published before the
    annotations existed.
    """
    with_annotations = not version.without_annotations
    return AnalyzerOptions(
        skip_packages=profile.skip_packages,
        skip_classes=profile.skip_classes,
        skip_internal_packages=profile.skip_internal_packages,
        skip_internal_types=profile.skip_internal_types,
        annotations_list=profile.annotation_list if with_annotations else None,
        skip_annotations_list=profile.skip_annotation_list if with_annotations else None,
        added_annotations=version.added_annotations,
        private_api=profile.private_api,
        dependency_dumps=dependency_dumps,
        external_css=profile.external_css,
        external_js=profile.external_js,
        compact=profile.compact_report,
    )
