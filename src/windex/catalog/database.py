"""SQLite storage for the file catalog."""

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from windex.catalog.models import FileKind, FileRecord

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"

# Default cap on search results
SEARCH_LIMIT = 100

SCHEMA_SQL = """
-- windex catalog schema v1.0

PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS files (
    id      INTEGER PRIMARY KEY AUTOINCREMENT,
    path    TEXT NOT NULL UNIQUE,
    name    TEXT NOT NULL,
    kind    TEXT NOT NULL,
    size    INTEGER NOT NULL DEFAULT 0,
    mtime   INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_files_name ON files(name);
CREATE INDEX IF NOT EXISTS idx_files_path ON files(path);
CREATE INDEX IF NOT EXISTS idx_files_mtime ON files(mtime DESC);

CREATE TABLE IF NOT EXISTS meta (
    key   TEXT PRIMARY KEY,
    value TEXT
);

INSERT OR REPLACE INTO meta (key, value) VALUES ('schema_version', '1.0');
"""


class CatalogError(Exception):
    """Raised when the catalog cannot be opened or used."""

    pass


def _unicode_lower(value: str | None) -> str | None:
    # SQLite's built-in lower() only folds ASCII
    return value.lower() if value is not None else None


class Catalog:
    """SQLite-backed catalog of file records keyed by path.

    Writes issued outside of :meth:`transaction` commit immediately. Writes
    issued inside it are only committed when the transaction block exits
    normally, so an index run is all-or-nothing.
    """

    def __init__(self, db_path: Path):
        """Initialize catalog (no connection is opened yet)."""
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._write_lock = threading.Lock()
        # Every thread's connection, so close() can reach all of them
        self._connections: set[sqlite3.Connection] = set()
        self._connections_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        conn = getattr(self._local, "conn", None)
        if conn is None or conn not in self._connections:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode; transactions are opened explicitly.
            # Each connection is still used by one thread only; close() may
            # run on another.
            conn = sqlite3.connect(
                str(self.db_path), isolation_level=None, check_same_thread=False
            )
            conn.row_factory = sqlite3.Row
            conn.create_function("unicode_lower", 1, _unicode_lower, deterministic=True)
            with self._connections_lock:
                self._connections.add(conn)
            self._local.conn = conn
        return conn

    def _in_transaction(self) -> bool:
        return getattr(self._local, "in_transaction", False)

    @property
    def in_transaction(self) -> bool:
        """Whether SQLite still has this thread's transaction open.

        SQLite rolls a transaction back on its own after errors such as
        SQLITE_FULL or SQLITE_IOERR; this turns False when that happens.
        """
        return self._in_transaction() and self._get_connection().in_transaction

    @contextmanager
    def _read_cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor for read operations."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    @contextmanager
    def _write_cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor for write operations.

        Joins the active transaction if there is one, otherwise wraps the
        write in its own transaction.
        """
        if self._in_transaction():
            # Without an open transaction the write would autocommit
            if not self._get_connection().in_transaction:
                raise CatalogError("Catalog transaction was rolled back by SQLite")
            with self._read_cursor() as cursor:
                yield cursor
            return

        with self.transaction():
            with self._read_cursor() as cursor:
                yield cursor

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block of writes as a single atomic unit.

        Commits when the block exits normally and rolls back on any exception,
        including KeyboardInterrupt. If SQLite already rolled the transaction
        back, or the commit fails, CatalogError is raised and nothing is kept.
        """
        if self._in_transaction():
            raise CatalogError("A catalog transaction is already active")

        with self._write_lock:
            conn = self._get_connection()
            conn.execute("BEGIN IMMEDIATE")
            self._local.in_transaction = True
            try:
                yield
                if not conn.in_transaction:
                    raise CatalogError("Catalog transaction was rolled back by SQLite")
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error as e:
                    raise CatalogError(f"Cannot commit catalog changes: {e}") from e
            except BaseException:
                conn.rollback()
                raise
            finally:
                self._local.in_transaction = False

    def initialize(self) -> None:
        """Initialize the database schema."""
        try:
            with self._write_lock:
                self._get_connection().executescript(SCHEMA_SQL)
        except (sqlite3.Error, OSError) as e:
            raise CatalogError(f"Cannot open catalog at {self.db_path}: {e}") from e
        logger.debug("Catalog ready at %s", self.db_path)

    def close(self) -> None:
        """Close the database connections of every thread.

        Threads that use the catalog afterwards open a fresh connection.
        """
        with self._connections_lock:
            connections, self._connections = self._connections, set()
        for conn in connections:
            conn.close()
        self._local.conn = None

    # Record operations

    def upsert(self, record: FileRecord) -> None:
        """Insert a record, or update it in place when its mtime changed.

        Rows whose stored mtime already equals ``record.modified_at`` are left
        untouched.
        """
        with self._write_cursor() as cursor:
            cursor.execute(
                """INSERT INTO files (path, name, kind, size, mtime)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    name = excluded.name,
                    kind = excluded.kind,
                    size = excluded.size,
                    mtime = excluded.mtime
                WHERE files.mtime != excluded.mtime
                """,
                (
                    record.path,
                    record.name,
                    FileKind(record.kind).value,
                    record.size,
                    record.modified_at,
                ),
            )

    def lookup_modified_at(self, path: str) -> int:
        """Get the stored mtime of a path, or 0 when it is not cataloged."""
        modified_at = self.get_modified_at(path)
        return modified_at if modified_at is not None else 0

    def get_modified_at(self, path: str) -> int | None:
        """Get the stored mtime of a path, or None when it is not cataloged."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT mtime FROM files WHERE path = ?", (path,))
            row = cursor.fetchone()
            return row["mtime"] if row else None

    def get(self, path: str) -> FileRecord | None:
        """Get a record by its path."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT * FROM files WHERE path = ?", (path,))
            row = cursor.fetchone()
            if row:
                return self._row_to_record(row)
            return None

    def delete_by_path(self, path: str) -> None:
        """Delete a record by path."""
        with self._write_cursor() as cursor:
            cursor.execute("DELETE FROM files WHERE path = ?", (path,))

    def find_by_path_prefix(self, prefix: str) -> list[str]:
        """Get all cataloged paths that start with ``prefix``."""
        # substr() keeps the match exact and case-sensitive, unlike LIKE
        with self._read_cursor() as cursor:
            cursor.execute(
                "SELECT path FROM files WHERE substr(path, 1, ?) = ? ORDER BY path",
                (len(prefix), prefix),
            )
            return [row["path"] for row in cursor.fetchall()]

    def all_paths(self) -> list[str]:
        """Get every cataloged path in sorted order."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT path FROM files ORDER BY path")
            return [row["path"] for row in cursor.fetchall()]

    def count(self) -> int:
        """Count the records in the catalog."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT COUNT(*) FROM files")
            return cursor.fetchone()[0]

    # Search operations

    def search(self, pattern: str, limit: int = SEARCH_LIMIT) -> list[FileRecord]:
        """
        Find records whose lowercased name or path contains ``pattern``.

        The pattern is matched literally (no wildcards) and is expected to be
        lowercase already. Results are ordered by mtime, newest first, with
        path as the tie-breaker.
        """
        query = "SELECT * FROM files"
        params: list = []

        if pattern:
            query += """
                WHERE instr(unicode_lower(name), ?) > 0
                   OR instr(unicode_lower(path), ?) > 0"""
            params.extend([pattern, pattern])

        query += " ORDER BY mtime DESC, path ASC LIMIT ?"
        params.append(limit)

        with self._read_cursor() as cursor:
            cursor.execute(query, params)
            return [self._row_to_record(row) for row in cursor.fetchall()]

    def _row_to_record(self, row: sqlite3.Row) -> FileRecord:
        """Convert a database row to a FileRecord."""
        return FileRecord(
            id=row["id"],
            path=row["path"],
            name=row["name"],
            kind=FileKind(row["kind"]),
            size=row["size"],
            modified_at=row["mtime"],
        )
