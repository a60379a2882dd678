"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/store.py
Persistent checksum index backed by SQLite.

The table is keyed by path, so re-hashing a file replaces its row. Duplicate
groups are derived on demand by grouping rows on checksum. The index is a cache
of what is on disk: when its schema cannot be migrated it is dropped and rebuilt,
and the next scan fills it again.

The process-wide handle is created by get_store() under a lock and released by
close_store(). Acquire it from one thread before handing it to workers.
"""

import logging
import os
import sqlite3
import threading
from typing import Callable, Dict, List, Optional, Tuple

from dupfile.core.errors import StoreError
from dupfile.core.interfaces import DuplicateStore
from dupfile.core.models import DuplicateGroup, FileRecord, representative_key

logger = logging.getLogger(__name__)

TABLE = "checksums"


def _v1_create_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {TABLE} (
            checksum TEXT NOT NULL,
            path TEXT PRIMARY KEY,
            name TEXT NOT NULL
        )
        """
    )
    columns = {row[1] for row in conn.execute(f"PRAGMA table_info({TABLE})")}
    if not {"checksum", "path", "name"} <= columns:
        raise sqlite3.OperationalError(f"Unknown layout of table {TABLE}: {sorted(columns)}")


def _v2_add_metadata_columns(conn: sqlite3.Connection) -> None:
    conn.execute(f"ALTER TABLE {TABLE} ADD COLUMN size INTEGER NOT NULL DEFAULT 0")
    conn.execute(f"ALTER TABLE {TABLE} ADD COLUMN modified_timestamp REAL NOT NULL DEFAULT 0")


def _v3_index_checksum(conn: sqlite3.Connection) -> None:
    conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{TABLE}_checksum ON {TABLE}(checksum)")


# Ordered, additive. Position + 1 is the schema version the step produces.
MIGRATIONS: List[Callable[[sqlite3.Connection], None]] = [
    _v1_create_table,
    _v2_add_metadata_columns,
    _v3_index_checksum,
]

SCHEMA_VERSION = len(MIGRATIONS)


class SQLiteDuplicateStore(DuplicateStore):
    """
    Path-keyed index of hashed files.

    All public methods raise StoreError when SQLite fails; callers decide whether
    that is fatal. Access is serialized with an internal lock, so the connection
    may be used from whichever thread owns the scan.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None
        self._open()

    # ---------- lifecycle ----------

    def _open(self) -> None:
        try:
            if self.db_path != ":memory:":
                os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
            conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Cannot open checksum index at {self.db_path}: {e}") from e

        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
        except sqlite3.Error as e:
            logger.debug(f"WAL journal unavailable for {self.db_path}: {e}")

        self._conn = conn
        self._migrate()

    def _migrate(self) -> None:
        conn = self._require_conn()
        try:
            version = conn.execute("PRAGMA user_version").fetchone()[0]
        except sqlite3.Error as e:
            raise StoreError(f"Cannot read schema version: {e}") from e

        if version >= SCHEMA_VERSION:
            return

        logger.info(f"Migrating checksum index from v{version} to v{SCHEMA_VERSION}")
        try:
            with conn:
                for step in MIGRATIONS[version:]:
                    step(conn)
                conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        except sqlite3.Error as e:
            logger.warning(f"Migration failed ({e}); rebuilding checksum index")
            self._recreate()

    def _recreate(self) -> None:
        conn = self._require_conn()
        try:
            with conn:
                conn.execute(f"DROP TABLE IF EXISTS {TABLE}")
                for step in MIGRATIONS:
                    step(conn)
                conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        except sqlite3.Error as e:
            raise StoreError(f"Cannot rebuild checksum index: {e}") from e

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @property
    def closed(self) -> bool:
        return self._conn is None

    def schema_version(self) -> int:
        return self._query("PRAGMA user_version")[0][0]

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError("Checksum index is closed")
        return self._conn

    def _execute(self, sql: str, params: Tuple = ()) -> int:
        """Runs a statement in its own transaction and returns the affected row count."""
        with self._lock:
            conn = self._require_conn()
            try:
                with conn:
                    return conn.execute(sql, params).rowcount
            except sqlite3.Error as e:
                raise StoreError(f"Checksum index write failed: {e}") from e

    def _query(self, sql: str, params: Tuple = ()) -> List[tuple]:
        with self._lock:
            conn = self._require_conn()
            try:
                return conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"Checksum index read failed: {e}") from e

    @staticmethod
    def _root_clause(root: Optional[str]) -> Tuple[str, Tuple]:
        """
        WHERE fragment matching root itself and everything below it.
        Prefix comparison with substr avoids LIKE wildcard escaping.
        """
        if root is None:
            return "", ()
        root = os.path.abspath(root)
        prefix = root if root.endswith(os.sep) else root + os.sep
        return (
            "WHERE (path = ? OR substr(path, 1, ?) = ?)",
            (root, len(prefix), prefix),
        )

    # ---------- operations ----------

    def upsert(self, record: FileRecord) -> None:
        """Inserts the record or replaces the one with the same path."""
        self._execute(
            f"""
            INSERT OR REPLACE INTO {TABLE} (checksum, path, name, size, modified_timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (record.checksum, record.path, record.name, record.size, record.modified_time),
        )

    def clear(self, root: Optional[str] = None) -> int:
        """Removes every record under root (or all records). Returns rows removed."""
        where, params = self._root_clause(root)
        removed = self._execute(f"DELETE FROM {TABLE} {where}", params)
        logger.debug(f"Cleared {removed} records for {root or 'all roots'}")
        return removed

    def remove(self, path: str) -> bool:
        return self._execute(f"DELETE FROM {TABLE} WHERE path = ?", (path,)) > 0

    def get(self, path: str) -> Optional[FileRecord]:
        rows = self._query(
            f"SELECT checksum, path, name, size, modified_timestamp FROM {TABLE} WHERE path = ?",
            (path,),
        )
        return self._to_record(rows[0]) if rows else None

    def count(self, root: Optional[str] = None) -> int:
        where, params = self._root_clause(root)
        return self._query(f"SELECT COUNT(*) FROM {TABLE} {where}", params)[0][0]

    def duplicate_count(self, root: Optional[str] = None) -> int:
        """Number of redundant copies: the sum of (count - 1) over all groups."""
        where, params = self._root_clause(root)
        rows = self._query(
            f"""
            SELECT COALESCE(SUM(c - 1), 0) FROM (
                SELECT COUNT(*) AS c FROM {TABLE} {where}
                GROUP BY checksum HAVING COUNT(*) > 1
            )
            """,
            params,
        )
        return rows[0][0]

    def duplicate_groups(self, root: Optional[str] = None) -> List[DuplicateGroup]:
        """
        Groups records sharing a checksum (2+ members), representative first.
        Groups are returned largest reclaimable size first.
        """
        where, params = self._root_clause(root)
        rows = self._query(
            f"""
            SELECT checksum, path, name, size, modified_timestamp FROM {TABLE}
            {where + ' AND' if where else 'WHERE'} checksum IN (
                SELECT checksum FROM {TABLE} {where}
                GROUP BY checksum HAVING COUNT(*) > 1
            )
            ORDER BY checksum, modified_timestamp, path
            """,
            params + params,
        )

        by_checksum: Dict[str, List[FileRecord]] = {}
        for row in rows:
            record = self._to_record(row)
            by_checksum.setdefault(record.checksum, []).append(record)

        groups = [
            DuplicateGroup(checksum=checksum, files=sorted(records, key=representative_key))
            for checksum, records in by_checksum.items()
            if len(records) >= 2
        ]
        groups.sort(key=lambda g: (-g.reclaimable_size, g.representative.path))
        return groups

    @staticmethod
    def _to_record(row) -> FileRecord:
        checksum, path, name, size, modified = row
        return FileRecord(path=path, size=size, modified_time=modified, checksum=checksum, name=name)


# =============================
# Process-wide handle
# =============================

_store: Optional[SQLiteDuplicateStore] = None
_store_lock = threading.Lock()


def get_store(db_path: Optional[str] = None) -> SQLiteDuplicateStore:
    """
    Returns the process-wide store, opening it on first use.
    db_path only matters for the first call after start-up or close_store().
    """
    global _store
    with _store_lock:
        if _store is None or _store.closed:
            if db_path is None:
                from dupfile.config import AppPaths
                db_path = AppPaths.default().database_path
            _store = SQLiteDuplicateStore(db_path)
            logger.debug(f"Opened checksum index {db_path}")
        return _store


def close_store() -> None:
    """Explicit shutdown of the process-wide store."""
    global _store
    with _store_lock:
        if _store is not None:
            _store.close()
            _store = None
