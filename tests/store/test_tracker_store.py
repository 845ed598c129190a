"""Tests for the tracker database and its artifact trees."""

import json
import logging
import os

import pytest

from api_tracker.store import (
    ApiDumpRecord,
    PairComparisonRecord,
    TrackerStore,
    VersionPairSummary,
    archive_key,
    read_sidecar,
)
from api_tracker.store.database import BIN_REPORT_NAME, DUMP_NAME, SRC_REPORT_NAME


def put_dump(store, version, archive, total=100):
    """Store a dump record with its artifact on disk."""
    key = store.dump_key(version, archive)
    path = store.dump_dir(version, key) / DUMP_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("$VAR1 = {};\n", encoding="utf-8")
    record = ApiDumpRecord(path=store.relative(path), archive=archive, total_symbols=total)
    store.put_dump(version, key, record)
    return key, record


def put_comparison(store, v1, v2, archive1, archive2, affected=0.0):
    key = store.comparison_key(v1, v2, archive1, archive2)
    directory = store.comparison_dir(v1, v2, key)
    directory.mkdir(parents=True, exist_ok=True)
    (directory / BIN_REPORT_NAME).write_text("<!-- -->\n", encoding="utf-8")
    (directory / SRC_REPORT_NAME).write_text("<!-- -->\n", encoding="utf-8")
    record = PairComparisonRecord(
        affected=affected,
        added=1,
        removed=0,
        total_problems=0,
        path=store.relative(directory / BIN_REPORT_NAME),
        archive1=archive1,
        archive2=archive2,
        source_report_path=store.relative(directory / SRC_REPORT_NAME),
    )
    store.put_comparison(v1, v2, key, record)
    return key, record


@pytest.fixture
def store(tmp_path):
    return TrackerStore(tmp_path, "libfoo")


class TestKeys:
    """Short path-derived keys."""

    def test_length_and_determinism(self):
        key = archive_key("lib/foo.jar")
        assert len(key) == 5
        assert key == archive_key("lib/foo.jar")
        assert archive_key("lib/foo.jar", length=8).startswith(key)

    def test_pair_key_differs_from_single(self):
        assert archive_key("a.jar", "b.jar") != archive_key("a.jar")


class TestRecords:
    """Storing and fetching records."""

    def test_dump_round_trip(self, store, tmp_path):
        key, record = put_dump(store, "1.0", "lib/foo.jar", total=42)
        store.save()

        reloaded = TrackerStore(tmp_path, "libfoo")
        reloaded.load()
        assert reloaded.get_dump("1.0", key, archive="lib/foo.jar") == record
        assert reloaded.find_dump("1.0", "lib/foo.jar").total_symbols == 42

    def test_sidecar_written_next_to_artifact(self, store):
        key, _ = put_dump(store, "1.0", "foo.jar", total=7)
        meta = read_sidecar(store.dump_dir("1.0", key) / "meta.json")
        assert meta["Archive"] == "foo.jar"
        assert meta["TotalSymbols"] == 7

    def test_key_collision_is_a_miss(self, store):
        key, _ = put_dump(store, "1.0", "foo.jar")
        assert store.get_dump("1.0", key, archive="bar.jar") is None
        # the colliding record itself is kept
        assert store.get_dump("1.0", key, archive="foo.jar") is not None

    def test_colliding_archives_take_separate_slots(self, tmp_path):
        store = TrackerStore(tmp_path, "libfoo", key_length=2)
        assert store.key("a6.jar") == store.key("a14.jar")

        key6, _ = put_dump(store, "1.0", "a6.jar", total=6)
        key14, _ = put_dump(store, "1.0", "a14.jar", total=14)

        assert key14 == key6 + "-1"
        assert store.find_dump("1.0", "a6.jar").total_symbols == 6
        assert store.find_dump("1.0", "a14.jar").total_symbols == 14
        assert store.dump_dir("1.0", key6).is_dir()

        store.save()
        store.db_path.unlink()
        fresh = TrackerStore(tmp_path, "libfoo", key_length=2)
        fresh.load()
        fresh.reconcile_with_disk()
        assert sorted(r.archive for r in fresh.dumps_for("1.0").values()) == ["a14.jar", "a6.jar"]

    def test_put_refuses_another_archives_key(self, store):
        key, _ = put_dump(store, "1.0", "foo.jar")
        with pytest.raises(ValueError):
            store.put_dump("1.0", key, ApiDumpRecord(path="elsewhere", archive="bar.jar"))
        assert store.get_dump("1.0", key).archive == "foo.jar"

    def test_missing_artifact_drops_record(self, store):
        key, record = put_dump(store, "1.0", "foo.jar")
        store.resolve(record.path).unlink()
        assert store.get_dump("1.0", key) is None
        assert store.dumps_for("1.0") == {}

    def test_invalidate_removes_directory(self, store):
        key, _ = put_dump(store, "1.0", "foo.jar")
        store.invalidate_dump("1.0", key)
        assert not store.dump_dir("1.0", key).exists()
        assert store.get_dump("1.0", key) is None

    def test_summary_path_points_at_sidecar(self, store):
        store.put_summary("1.0", "1.1", VersionPairSummary(bc=99.5, source_bc=100.0))
        summary = store.get_summary("1.0", "1.1")
        assert summary.path.endswith("archives_report/libfoo/1.0/1.1/meta.json")
        assert list(store.summaries()) == [("1.0", "1.1", summary)]


class TestReconcile:
    """The database follows the artifact trees."""

    def test_adopts_orphan_artifacts(self, store, tmp_path):
        dump_key, dump = put_dump(store, "1.0", "foo.jar", total=12)
        cmp_key, comparison = put_comparison(store, "1.0", "1.1", "foo.jar", "foo.jar", affected=2.5)
        store.put_summary("1.0", "1.1", VersionPairSummary(bc=97.5, source_bc=97.5, renamed={"a": "b"}))

        fresh = TrackerStore(tmp_path, "libfoo")
        fresh.load()
        dropped, adopted = fresh.reconcile_with_disk()

        assert (dropped, adopted) == (0, 3)
        assert fresh.get_dump("1.0", dump_key) == dump
        assert fresh.get_comparison("1.0", "1.1", cmp_key) == comparison
        assert fresh.get_summary("1.0", "1.1").renamed == {"a": "b"}

    def test_drops_entries_without_artifacts(self, store):
        key, record = put_dump(store, "1.0", "foo.jar")
        store.resolve(record.path).unlink()

        dropped, adopted = store.reconcile_with_disk()

        assert dropped == 1
        assert adopted == 0
        assert store.dumps_for("1.0") == {}

    def test_corrupt_sidecar_is_skipped(self, store, tmp_path, caplog):
        key, _ = put_dump(store, "1.0", "foo.jar")
        (store.dump_dir("1.0", key) / "meta.json").write_text("{broken", encoding="utf-8")

        fresh = TrackerStore(tmp_path, "libfoo")
        fresh.load()
        with caplog.at_level(logging.WARNING, logger="api_tracker"):
            assert fresh.reconcile_with_disk() == (0, 0)

        assert fresh.dumps_for("1.0") == {}
        assert "corrupt sidecar" in caplog.text

    def test_corrupt_database_is_rebuilt(self, store, tmp_path):
        key, record = put_dump(store, "1.0", "foo.jar")
        store.save()
        store.db_path.write_text("{ not json", encoding="utf-8")

        fresh = TrackerStore(tmp_path, "libfoo")
        fresh.load()
        assert fresh.dumps_for("1.0") == {}
        fresh.reconcile_with_disk()
        assert fresh.get_dump("1.0", key) == record


class TestLifecycle:
    """Saving, clearing and the context manager."""

    def test_save_is_atomic(self, store, monkeypatch):
        put_dump(store, "1.0", "foo.jar")
        store.save()
        before = store.db_path.read_text(encoding="utf-8")

        put_dump(store, "1.0", "bar.jar")

        def fail(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail)
        with pytest.raises(OSError):
            store.save()

        assert store.db_path.read_text(encoding="utf-8") == before
        assert [p.name for p in store.db_path.parent.iterdir()] == [store.db_path.name]

    def test_saved_document_format(self, store):
        put_dump(store, "1.0", "foo.jar")
        store.save()
        document = json.loads(store.db_path.read_text(encoding="utf-8"))
        assert document["Format"] == 1
        assert list(document["APIDump"]["1.0"].values())[0]["Archive"] == "foo.jar"

    def test_context_manager_saves(self, tmp_path):
        with TrackerStore(tmp_path, "libfoo") as store:
            put_dump(store, "1.0", "foo.jar")
        assert (tmp_path / "db" / "libfoo" / "Tracker.json").is_file()

    def test_clear(self, store, tmp_path):
        put_dump(store, "1.0", "foo.jar")
        put_comparison(store, "1.0", "1.1", "foo.jar", "foo.jar")
        store.save()

        store.clear()

        assert not store.db_path.exists()
        assert not (tmp_path / "api_dump" / "libfoo").exists()
        assert not (tmp_path / "compat_report" / "libfoo").exists()
        assert store.dumps_for("1.0") == {}
