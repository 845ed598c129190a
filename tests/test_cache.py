"""Tests for the filtered symbol count memo."""

from api_tracker.cache import SymbolCountCache, compute_options_hash


class TestSymbolCountCache:
    """Counts are computed once per dump and options."""

    def test_computes_once(self, tmp_path):
        dump = tmp_path / "API.dump"
        dump.write_text("dump", encoding="utf-8")
        calls = []

        def compute():
            calls.append(1)
            return 17

        cache = SymbolCountCache(str(tmp_path / "cache"))
        try:
            assert cache.count(dump, ["-skip-packages", "x"], compute) == 17
            assert cache.count(dump, ["-skip-packages", "x"], compute) == 17
        finally:
            cache.close()

        assert len(calls) == 1

    def test_options_change_the_key(self, tmp_path):
        dump = tmp_path / "API.dump"
        dump.write_text("dump", encoding="utf-8")
        cache = SymbolCountCache(str(tmp_path / "cache"))
        try:
            assert cache.count(dump, ["-skip-packages", "x"], lambda: 1) == 1
            assert cache.count(dump, ["-skip-packages", "y"], lambda: 2) == 2
        finally:
            cache.close()

    def test_survives_reopening(self, tmp_path):
        dump = tmp_path / "API.dump"
        dump.write_text("dump", encoding="utf-8")
        first = SymbolCountCache(str(tmp_path / "cache"))
        first.count(dump, [], lambda: 5)
        first.close()

        second = SymbolCountCache(str(tmp_path / "cache"))
        try:
            assert second.count(dump, [], lambda: 99) == 5
            assert len(second) == 1
        finally:
            second.close()

    def test_rewritten_dump_is_recounted(self, tmp_path):
        dump = tmp_path / "API.dump"
        dump.write_text("dump", encoding="utf-8")
        with SymbolCountCache(str(tmp_path / "cache")) as cache:
            assert cache.count(dump, [], lambda: 3) == 3
            dump.write_text("a longer dump", encoding="utf-8")
            assert cache.count(dump, [], lambda: 4) == 4

    def test_clear(self, tmp_path):
        dump = tmp_path / "API.dump"
        dump.write_text("dump", encoding="utf-8")
        with SymbolCountCache(str(tmp_path / "cache")) as cache:
            cache.count(dump, [], lambda: 5)
            cache.count(dump, ["-skip-classes", "x"], lambda: 1)
            assert cache.clear() == 2
            assert cache.count(dump, [], lambda: 6) == 6

    def test_options_hash_keeps_order(self):
        assert compute_options_hash(["a", "b"]) != compute_options_hash(["b", "a"])
