"""
Thread-safe SQLite store for playlist associations.

An association remembers which Yoto card a YouTube playlist was last synced
to, so the next `yoto sync` of the same playlist can offer that card first.
There is at most one association per source playlist; saving again replaces
the previous one.

Schema:
    schema_version:  Single row with the schema version
    associations:    One row per source playlist (source_id is unique)

Usage:
    with AssociationStore(config.storage.database_file) as store:
        previous = store.get(playlist.id)
        ...
        store.upsert(Association(...))
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from yoto_sync.core.exceptions import DatabaseError, PersistFailed
from yoto_sync.sync.models import Association


DATABASE_VERSION = 1


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS associations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source_id TEXT UNIQUE NOT NULL,
    target_id TEXT NOT NULL,
    target_name TEXT,
    source_name TEXT,
    last_synced_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_associations_target ON associations(target_id);
"""


class AssociationStore:
    """
    SQLite-backed association store.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing. The connection
    is opened lazily by open() or on first use, and released by close().
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    def __enter__(self) -> "AssociationStore":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def open(self) -> None:
        """
        Create the storage directory and schema if needed.

        Raises:
            DatabaseError: If the file cannot be opened or has an
                           incompatible schema version.
        """
        with self._lock:
            if self._conn is not None:
                return
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                with self._get_connection() as conn:
                    self._init_schema(conn)
            except (sqlite3.Error, OSError) as e:
                self._discard_connection()
                raise DatabaseError(
                    f"Failed to open association store: {e}",
                    details={"path": str(self.db_path)}
                ) from e
            except DatabaseError:
                self._discard_connection()
                raise

    def close(self) -> None:
        """Close the database connection. Safe to call multiple times."""
        with self._lock:
            self._discard_connection()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get the persistent connection, creating it on first use.

        Does not close the connection on exit.
        """
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # Guarded by _lock
            )
            self._conn.row_factory = sqlite3.Row
        yield self._conn

    def _discard_connection(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(_SCHEMA_SQL)

        cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
        row = cursor.fetchone()

        if row is None:
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
        elif row[0] != DATABASE_VERSION:
            raise DatabaseError(
                f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                details={"expected": DATABASE_VERSION, "actual": row[0], "path": str(self.db_path)}
            )
        conn.commit()

    def _ensure_open(self) -> None:
        if self._conn is None:
            self.open()

    @staticmethod
    def _row_to_association(row: sqlite3.Row) -> Association:
        last_synced = datetime.fromisoformat(row["last_synced_at"])
        if last_synced.tzinfo is None:
            last_synced = last_synced.replace(tzinfo=timezone.utc)
        return Association(
            source_id=row["source_id"],
            target_id=row["target_id"],
            target_name=row["target_name"] or "",
            source_name=row["source_name"] or "",
            last_synced_at=last_synced,
        )

    # =========================================================================
    # Association Operations
    # =========================================================================

    def get(self, source_id: str) -> Association | None:
        """Return the association for a source playlist, or None."""
        self._ensure_open()
        with self._lock:
            try:
                with self._get_connection() as conn:
                    cursor = conn.execute(
                        "SELECT * FROM associations WHERE source_id = ?",
                        (source_id,)
                    )
                    row = cursor.fetchone()
            except sqlite3.Error as e:
                raise DatabaseError(
                    f"Failed to read association: {e}",
                    details={"source_id": source_id}
                ) from e
        return self._row_to_association(row) if row else None

    def upsert(self, association: Association) -> None:
        """
        Insert or replace the association for association.source_id.

        Raises:
            PersistFailed: If the write fails.
        """
        try:
            self._ensure_open()
        except DatabaseError as e:
            raise PersistFailed(e.message, details=e.details) from e

        with self._lock:
            try:
                with self._get_connection() as conn:
                    conn.execute("""
                        INSERT INTO associations
                            (source_id, target_id, target_name, source_name, last_synced_at)
                        VALUES (?, ?, ?, ?, ?)
                        ON CONFLICT(source_id) DO UPDATE SET
                            target_id = excluded.target_id,
                            target_name = excluded.target_name,
                            source_name = excluded.source_name,
                            last_synced_at = excluded.last_synced_at
                    """, (
                        association.source_id,
                        association.target_id,
                        association.target_name,
                        association.source_name,
                        association.last_synced_at.isoformat(),
                    ))
                    conn.commit()
            except sqlite3.Error as e:
                raise PersistFailed(
                    f"Failed to save association: {e}",
                    details={
                        "source_id": association.source_id,
                        "target_id": association.target_id,
                    }
                ) from e

    def all(self) -> list[Association]:
        """Return every association, most recently synced first."""
        self._ensure_open()
        with self._lock:
            try:
                with self._get_connection() as conn:
                    cursor = conn.execute(
                        "SELECT * FROM associations ORDER BY last_synced_at DESC"
                    )
                    rows = cursor.fetchall()
            except sqlite3.Error as e:
                raise DatabaseError(f"Failed to list associations: {e}") from e
        return [self._row_to_association(row) for row in rows]
