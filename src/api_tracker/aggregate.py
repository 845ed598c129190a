"""Fold per-archive comparisons into one version pair summary.

Archives are weighted by the symbol count of their old release::

    TotalFuncs       = sum(old_total_symbols)
    WeightedAffected = sum(affected * old_total_symbols)
    BC = 100 - WeightedAffected / TotalFuncs            (100 if TotalFuncs == 0)
    BC *= 1 - RemovedSymbols / (TotalFuncs + RemovedSymbols)   (if archives were removed)

The source compatibility rate uses the same formula with the source
affected percentages.
"""

from __future__ import annotations

import re
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from .store.models import PairComparisonRecord, VersionPairSummary

# (comparison, symbol count of the old archive)
WeightedComparison = Tuple[PairComparisonRecord, int]

_TWO_DECIMALS = re.compile(r"\d+\.\d\d")


def compatibility_rate(
    affected: np.ndarray,
    weights: np.ndarray,
    removed_symbols: int,
    archives_removed: bool,
) -> float:
    """Weighted compatibility percentage, full precision."""
    total_funcs = float(weights.sum())
    rate = 100.0
    if total_funcs:
        rate -= float(np.dot(affected, weights)) / total_funcs
    if archives_removed and total_funcs + removed_symbols:
        rate *= 1 - removed_symbols / (total_funcs + removed_symbols)
    return rate


def aggregate(
    pairs: Sequence[WeightedComparison],
    removed_symbols: Sequence[int] = (),
    added_symbols: Sequence[int] = (),
    total_archives: int = 0,
    renamed: Optional[Dict[str, str]] = None,
) -> VersionPairSummary:
    """Summarize a version pair.

    Args:
        pairs: Comparisons of the matched archives with their old symbol counts
        removed_symbols: Filtered symbol count of each removed archive
        added_symbols: Filtered symbol count of each added archive
        total_archives: Number of archives in the old version
        renamed: Old -> new archive names, for display
    """
    weights = np.array([float(count) for _, count in pairs], dtype=float)
    binary = np.array([c.affected for c, _ in pairs], dtype=float)
    source = np.array([c.source_affected for c, _ in pairs], dtype=float)

    removed_total = int(sum(removed_symbols))
    penalized = bool(removed_symbols) and total_archives > 0

    return VersionPairSummary(
        bc=compatibility_rate(binary, weights, removed_total, penalized),
        source_bc=compatibility_rate(source, weights, removed_total, penalized),
        added=sum(c.added for c, _ in pairs),
        removed=sum(c.removed for c, _ in pairs),
        total_problems=sum(c.total_problems for c, _ in pairs),
        source_total_problems=sum(c.source_total_problems for c, _ in pairs),
        archives_added=len(added_symbols),
        archives_removed=len(removed_symbols),
        archives_added_symbols=int(sum(added_symbols)),
        archives_removed_symbols=removed_total,
        total_archives=total_archives,
        renamed=dict(renamed or {}),
    )


def format_percent(value: float) -> str:
    """
    Cut a rate to at most two decimals, never rounding.

    Digits are dropped, not stripped: 99.104 -> "99.10", 99.999 -> "99.99",
    while 87.5 -> "87.5" and 100.0 -> "100" keep their short form.
    """
    text = format(float(value), ".15g")
    match = _TWO_DECIMALS.match(text)
    return match.group(0) if match else text
