"""Tests for the SQLite catalog store."""

import sqlite3
import threading
from pathlib import Path

import pytest

from windex.catalog.database import Catalog, CatalogError
from windex.catalog.models import FileKind, FileRecord


@pytest.fixture
def catalog(tmp_path):
    """Create a temporary catalog for testing."""
    cat = Catalog(tmp_path / "test.db")
    cat.initialize()
    yield cat
    cat.close()


def make_record(path: str, mtime: int = 100, size: int = 10, kind=FileKind.FILE) -> FileRecord:
    return FileRecord(
        path=path,
        name=path.rsplit("/", 1)[-1],
        kind=kind,
        size=size,
        modified_at=mtime,
    )


class TestCatalogInitialization:
    def test_creates_database_file(self, tmp_path: Path):
        db_path = tmp_path / "test.db"
        cat = Catalog(db_path)
        cat.initialize()
        assert db_path.exists()
        cat.close()

    def test_creates_parent_directories(self, tmp_path: Path):
        db_path = tmp_path / "nested" / ".windex" / "index.db"
        cat = Catalog(db_path)
        cat.initialize()
        assert db_path.exists()
        cat.close()

    def test_initialize_is_repeatable(self, catalog: Catalog):
        catalog.upsert(make_record("/a"))
        catalog.initialize()
        assert catalog.count() == 1

    def test_unopenable_path_raises_catalog_error(self, tmp_path: Path):
        # A directory cannot be opened as a database file
        cat = Catalog(tmp_path)
        with pytest.raises(CatalogError, match="Cannot open catalog"):
            cat.initialize()


class TestRecordOperations:
    def test_upsert_inserts_new_record(self, catalog: Catalog):
        catalog.upsert(make_record("/data/file.txt", mtime=123, size=42))

        record = catalog.get("/data/file.txt")
        assert record is not None
        assert record.name == "file.txt"
        assert record.kind == FileKind.FILE
        assert record.size == 42
        assert record.modified_at == 123

    def test_upsert_updates_when_mtime_changes(self, catalog: Catalog):
        catalog.upsert(make_record("/data/file.txt", mtime=100, size=1))
        first_id = catalog.get("/data/file.txt").id

        catalog.upsert(make_record("/data/file.txt", mtime=200, size=2))

        record = catalog.get("/data/file.txt")
        assert record.id == first_id
        assert record.modified_at == 200
        assert record.size == 2
        assert catalog.count() == 1

    def test_upsert_ignores_same_mtime(self, catalog: Catalog):
        catalog.upsert(make_record("/data/file.txt", mtime=100, size=1))
        catalog.upsert(make_record("/data/file.txt", mtime=100, size=999))

        record = catalog.get("/data/file.txt")
        assert record.size == 1

    def test_upsert_can_change_kind(self, catalog: Catalog):
        catalog.upsert(make_record("/data/thing", mtime=100))
        catalog.upsert(make_record("/data/thing", mtime=101, kind=FileKind.DIRECTORY))
        assert catalog.get("/data/thing").kind == FileKind.DIRECTORY

    def test_lookup_modified_at(self, catalog: Catalog):
        catalog.upsert(make_record("/data/file.txt", mtime=1234567890))
        assert catalog.lookup_modified_at("/data/file.txt") == 1234567890

    def test_lookup_modified_at_absent_is_zero(self, catalog: Catalog):
        assert catalog.lookup_modified_at("/nope") == 0

    def test_get_modified_at_distinguishes_absent_from_epoch_zero(self, catalog: Catalog):
        catalog.upsert(make_record("/epoch", mtime=0))
        assert catalog.get_modified_at("/epoch") == 0
        assert catalog.get_modified_at("/nope") is None

    def test_get_nonexistent_record(self, catalog: Catalog):
        assert catalog.get("/nonexistent") is None

    def test_delete_by_path(self, catalog: Catalog):
        catalog.upsert(make_record("/data/file.txt"))
        catalog.delete_by_path("/data/file.txt")
        assert catalog.get("/data/file.txt") is None

    def test_delete_absent_path_is_noop(self, catalog: Catalog):
        catalog.upsert(make_record("/data/keep.txt"))
        catalog.delete_by_path("/data/missing.txt")
        assert catalog.count() == 1

    def test_find_by_path_prefix(self, catalog: Catalog):
        for path in ["/a/b/c", "/a/b/d/e", "/a/bc", "/A/b/x", "/z"]:
            catalog.upsert(make_record(path))

        assert catalog.find_by_path_prefix("/a/b/") == ["/a/b/c", "/a/b/d/e"]

    def test_find_by_path_prefix_treats_wildcards_literally(self, catalog: Catalog):
        catalog.upsert(make_record("/data_1/file"))
        catalog.upsert(make_record("/dataX1/file"))
        assert catalog.find_by_path_prefix("/data_1/") == ["/data_1/file"]

    def test_all_paths_and_count(self, catalog: Catalog):
        catalog.upsert(make_record("/b"))
        catalog.upsert(make_record("/a"))
        assert catalog.all_paths() == ["/a", "/b"]
        assert catalog.count() == 2


class TestTransactions:
    def test_commits_on_success(self, catalog: Catalog):
        with catalog.transaction():
            catalog.upsert(make_record("/one"))
            catalog.upsert(make_record("/two"))
        assert catalog.count() == 2

    def test_rolls_back_on_error(self, catalog: Catalog):
        catalog.upsert(make_record("/existing", mtime=1))

        with pytest.raises(RuntimeError):
            with catalog.transaction():
                catalog.upsert(make_record("/new"))
                catalog.upsert(make_record("/existing", mtime=2))
                catalog.delete_by_path("/existing")
                raise RuntimeError("boom")

        assert catalog.all_paths() == ["/existing"]
        assert catalog.get("/existing").modified_at == 1

    def test_rolls_back_on_keyboard_interrupt(self, catalog: Catalog):
        with pytest.raises(KeyboardInterrupt):
            with catalog.transaction():
                catalog.upsert(make_record("/new"))
                raise KeyboardInterrupt
        assert catalog.count() == 0

    def test_uncommitted_writes_invisible_to_other_connections(self, catalog: Catalog):
        other = Catalog(catalog.db_path)
        try:
            with catalog.transaction():
                catalog.upsert(make_record("/pending"))
                assert catalog.get("/pending") is not None
                assert other.get("/pending") is None
            assert other.get("/pending") is not None
        finally:
            other.close()

    def test_nested_transaction_rejected(self, catalog: Catalog):
        with pytest.raises(CatalogError, match="already active"):
            with catalog.transaction():
                with catalog.transaction():
                    pass

    def test_usable_after_rollback(self, catalog: Catalog):
        with pytest.raises(RuntimeError):
            with catalog.transaction():
                raise RuntimeError("boom")
        catalog.upsert(make_record("/after"))
        assert catalog.count() == 1

    def test_in_transaction_tracks_sqlite_state(self, catalog: Catalog):
        assert not catalog.in_transaction
        with pytest.raises(CatalogError):
            with catalog.transaction():
                assert catalog.in_transaction
                # What SQLite does on its own after SQLITE_FULL or SQLITE_IOERR
                catalog._get_connection().execute("ROLLBACK")
                assert not catalog.in_transaction

    def test_transaction_rolled_back_by_sqlite_raises(self, catalog: Catalog):
        catalog.upsert(make_record("/existing"))

        with pytest.raises(CatalogError, match="rolled back by SQLite"):
            with catalog.transaction():
                catalog.upsert(make_record("/lost"))
                catalog._get_connection().execute("ROLLBACK")

        assert catalog.all_paths() == ["/existing"]

    def test_write_after_sqlite_rollback_is_not_autocommitted(self, catalog: Catalog):
        with pytest.raises(CatalogError, match="rolled back by SQLite"):
            with catalog.transaction():
                catalog.upsert(make_record("/first"))
                catalog._get_connection().execute("ROLLBACK")
                catalog.upsert(make_record("/second"))

        assert catalog.count() == 0
        # The catalog keeps working afterwards
        catalog.upsert(make_record("/after"))
        assert catalog.all_paths() == ["/after"]


class TestConnections:
    def test_close_reaches_other_threads(self, catalog: Catalog):
        opened = []
        worker = threading.Thread(target=lambda: opened.append(catalog._get_connection()))
        worker.start()
        worker.join()

        catalog.close()

        with pytest.raises(sqlite3.ProgrammingError):
            opened[0].execute("SELECT 1")

    def test_reopens_after_close(self, catalog: Catalog):
        catalog.upsert(make_record("/kept"))
        catalog.close()
        assert catalog.all_paths() == ["/kept"]

    def test_each_thread_gets_its_own_connection(self, catalog: Catalog):
        opened = []
        worker = threading.Thread(target=lambda: opened.append(catalog._get_connection()))
        worker.start()
        worker.join()

        assert opened[0] is not catalog._get_connection()


class TestSearch:
    def test_matches_name_or_path_substring(self, catalog: Catalog):
        catalog.upsert(make_record("/work/projectA", mtime=100, kind=FileKind.DIRECTORY))
        catalog.upsert(make_record("/work/projectB", mtime=200, kind=FileKind.DIRECTORY))
        catalog.upsert(make_record("/work/readme", mtime=50))

        results = catalog.search("project")
        assert [r.name for r in results] == ["projectB", "projectA"]

    def test_matches_directory_part_of_path(self, catalog: Catalog):
        catalog.upsert(make_record("/music/albums/track.mp3"))
        catalog.upsert(make_record("/other/file.txt"))

        results = catalog.search("albums")
        assert [r.path for r in results] == ["/music/albums/track.mp3"]

    def test_case_insensitive_against_stored_values(self, catalog: Catalog):
        catalog.upsert(make_record("/Docs/ReadMe.TXT"))
        assert len(catalog.search("readme.txt")) == 1

    def test_unicode_case_folding(self, catalog: Catalog):
        catalog.upsert(make_record("/docs/Ärger.txt"))
        assert len(catalog.search("ärger")) == 1

    def test_wildcards_are_literal(self, catalog: Catalog):
        catalog.upsert(make_record("/files/100%_done.txt", mtime=2))
        catalog.upsert(make_record("/files/1000done.txt", mtime=1))

        assert [r.name for r in catalog.search("%")] == ["100%_done.txt"]
        assert [r.name for r in catalog.search("_do")] == ["100%_done.txt"]

    def test_empty_pattern_matches_everything(self, catalog: Catalog):
        for i in range(5):
            catalog.upsert(make_record(f"/f{i}", mtime=i))
        assert len(catalog.search("")) == 5

    def test_no_match_returns_empty(self, catalog: Catalog):
        catalog.upsert(make_record("/something"))
        assert catalog.search("nothing-like-it") == []

    def test_limit_keeps_newest(self, catalog: Catalog):
        for i in range(150):
            catalog.upsert(make_record(f"/data/match-{i:03d}", mtime=i + 1))

        results = catalog.search("match")
        assert len(results) == 100
        assert [r.modified_at for r in results] == list(range(150, 50, -1))

    def test_ties_ordered_by_path(self, catalog: Catalog):
        for name in ["c", "a", "b"]:
            catalog.upsert(make_record(f"/same/{name}", mtime=10))

        first = [r.path for r in catalog.search("same")]
        second = [r.path for r in catalog.search("same")]
        assert first == ["/same/a", "/same/b", "/same/c"]
        assert first == second
