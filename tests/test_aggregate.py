"""Tests for the version pair aggregation."""

import pytest

from api_tracker.aggregate import aggregate, format_percent
from api_tracker.store import PairComparisonRecord


def comparison(affected=0.0, source_affected=0.0, added=0, removed=0, total_problems=0):
    return PairComparisonRecord(
        affected=affected,
        added=added,
        removed=removed,
        total_problems=total_problems,
        path="r.html",
        archive1="a.jar",
        archive2="a.jar",
        source_affected=source_affected,
    )


class TestAggregate:
    """Weighted compatibility rates and sums."""

    def test_nothing_to_compare(self):
        summary = aggregate([])
        assert summary.bc == 100.0
        assert summary.source_bc == 100.0

    def test_zero_symbols_and_no_removals(self):
        summary = aggregate([(comparison(affected=50.0), 0)], total_archives=1)
        assert summary.bc == 100.0

    def test_only_removals(self):
        # no matched archive: only the removal penalty applies
        summary = aggregate([], removed_symbols=[40], total_archives=1)
        assert summary.bc == 0.0
        assert summary.archives_removed == 1
        assert summary.archives_removed_symbols == 40

    def test_removed_archive_without_symbols(self):
        summary = aggregate([], removed_symbols=[0], total_archives=1)
        assert summary.bc == 100.0

    def test_weighted_by_old_symbol_count(self):
        pairs = [
            (comparison(affected=10.0, source_affected=20.0), 100),
            (comparison(affected=0.0), 300),
        ]
        summary = aggregate(pairs, total_archives=2)
        assert summary.bc == pytest.approx(97.5)
        assert summary.source_bc == pytest.approx(95.0)

    def test_removal_penalty(self):
        pairs = [(comparison(affected=10.0), 100)]
        summary = aggregate(pairs, removed_symbols=[100], total_archives=2)
        assert summary.bc == pytest.approx(45.0)

    def test_sums_and_counts(self):
        pairs = [
            (comparison(added=2, removed=1, total_problems=3), 10),
            (comparison(added=5, removed=0, total_problems=1), 10),
        ]
        summary = aggregate(pairs, added_symbols=[7, 8], total_archives=2, renamed={"a.jar": "b.jar"})
        assert summary.added == 7
        assert summary.removed == 1
        assert summary.total_problems == 4
        assert summary.archives_added == 2
        assert summary.archives_added_symbols == 15
        assert summary.total_archives == 2
        assert summary.renamed == {"a.jar": "b.jar"}


class TestFormatPercent:
    """Display truncation, never rounding."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (100.0, "100"),
            (99.999, "99.99"),
            (99.5, "99.5"),
            (97.123456, "97.12"),
            (99.104, "99.10"),
            (90.0, "90"),
            (0.0, "0"),
            (45, "45"),
        ],
    )
    def test_truncates(self, value, expected):
        assert format_percent(value) == expected
