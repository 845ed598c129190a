"""
Memo of filtered symbol counts.

Counting the symbols left after the profile's filters means one analyzer
run per dump. Results are kept in a diskcache (SQLite) store keyed by the
dump's path, mtime and size plus a hash of the filter options, so a filter
change or a rewritten dump never hits a stale count.
"""

import hashlib
import json
from pathlib import Path
from typing import Callable, Optional, Sequence

from diskcache import Cache

from .logging_config import get_logger

logger = get_logger(__name__)


class SymbolCountCache:
    """
    SQLite-based memo for ``count_symbols`` results.

    Usage::

        with SymbolCountCache("out/.api-tracker-cache") as memo:
            total = memo.count(dump_path, ["-skip-packages", "impl"], compute)

    A failing memo never fails the count: errors are logged and the count
    is computed.
    """

    def __init__(self, cache_dir: str = ".api-tracker-cache"):
        self.directory = cache_dir
        self.cache = Cache(cache_dir)
        logger.debug("Symbol count memo at %s", cache_dir)

    def __len__(self) -> int:
        return len(self.cache)

    def __enter__(self) -> "SymbolCountCache":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def dump_key(self, dump_path: Path, options: Sequence[str]) -> str:
        """Key of one dump file as it is now, counted with ``options``."""
        try:
            stat = dump_path.stat()
            key_data = f"{dump_path.resolve()}:{stat.st_mtime}:{stat.st_size}"
        except OSError:
            key_data = str(dump_path)
        key_data += ":" + compute_options_hash(options)
        return hashlib.sha256(key_data.encode()).hexdigest()

    def get(self, key: str) -> Optional[int]:
        try:
            return self.cache.get(key)
        except Exception as e:
            logger.warning("Symbol count memo read failed: %s", e)
            return None

    def set(self, key: str, value: int) -> None:
        try:
            self.cache.set(key, value)
        except Exception as e:
            logger.warning("Symbol count memo write failed: %s", e)

    def count(self, dump_path: Path, options: Sequence[str], compute: Callable[[], int]) -> int:
        """
        Filtered symbol count of a dump, computed at most once per options set.

        Args:
            dump_path: API dump the count refers to
            options: Analyzer filter arguments used for counting
            compute: Called on a miss

        Returns:
            Symbol count
        """
        key = self.dump_key(Path(dump_path), options)
        cached = self.get(key)
        if cached is not None:
            logger.debug("Reusing symbol count of %s", dump_path)
            return cached

        value = compute()
        self.set(key, value)
        return value

    def clear(self) -> int:
        """Forget every count; returns how many were stored."""
        removed = self.cache.clear()
        logger.info("Forgot %d symbol counts", removed)
        return removed

    def close(self) -> None:
        self.cache.close()


def compute_options_hash(options: Sequence[str]) -> str:
    """Hash of the filter arguments; order matters to the analyzer, so it is kept."""
    options_str = json.dumps(list(options))
    return hashlib.sha256(options_str.encode()).hexdigest()[:16]
