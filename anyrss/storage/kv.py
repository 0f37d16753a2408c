"""
Embedded ordered key-value store on top of SQLite.

Data lives in named buckets of byte keys and byte values inside a single
database file. Every operation runs inside a read-write transaction; all
transactions against one store are serialized, so no two ever overlap.
SQLite compares BLOB keys with memcmp, which gives the ascending
lexicographic byte order that cursor scans rely on.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from anyrss.errors import StorageError
from anyrss.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS buckets (
    name BLOB PRIMARY KEY
) WITHOUT ROWID;

CREATE TABLE IF NOT EXISTS entries (
    bucket BLOB NOT NULL,
    key BLOB NOT NULL,
    value BLOB NOT NULL,
    PRIMARY KEY (bucket, key)
) WITHOUT ROWID;
"""

_SCAN_BATCH_SIZE = 64


class Cursor:
    """Forward cursor over one bucket."""

    def __init__(self, bucket: Bucket) -> None:
        self._bucket = bucket

    def seek(self, start: bytes) -> Iterator[tuple[bytes, bytes]]:
        """
        Iterate over (key, value) pairs with ``key >= start``.

        Parameters
        ----------
        start : bytes
            Position to start from; it does not need to exist.

        Yields
        ------
        tuple[bytes, bytes]
            Key/value pairs in ascending key order.
        """
        tx = self._bucket.tx
        rows = tx._execute(
            "SELECT key, value FROM entries WHERE bucket = ? AND key >= ? ORDER BY key",
            (self._bucket.name, bytes(start)),
        )
        while True:
            try:
                batch = rows.fetchmany(_SCAN_BATCH_SIZE)
            except sqlite3.Error as e:
                raise StorageError(f"cursor scan failed: {e}") from e
            if not batch:
                return
            for key, value in batch:
                yield bytes(key), bytes(value)

    def first(self) -> Iterator[tuple[bytes, bytes]]:
        """Iterate over the whole bucket in key order."""
        return self.seek(b"")


class Bucket:
    """A named keyspace inside a transaction."""

    def __init__(self, tx: Transaction, name: bytes) -> None:
        self.tx = tx
        self.name = name

    def get(self, key: bytes) -> bytes | None:
        """Return the value stored under ``key``, or None."""
        row = self.tx._execute(
            "SELECT value FROM entries WHERE bucket = ? AND key = ?",
            (self.name, key),
        ).fetchone()
        return bytes(row[0]) if row is not None else None

    def put(self, key: bytes, value: bytes) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        if not key:
            raise StorageError("key required")
        self.tx._execute(
            "INSERT OR REPLACE INTO entries (bucket, key, value) VALUES (?, ?, ?)",
            (self.name, key, value),
        )

    def delete(self, key: bytes) -> None:
        """Delete ``key``. Deleting a missing key is not an error."""
        self.tx._execute(
            "DELETE FROM entries WHERE bucket = ? AND key = ?",
            (self.name, key),
        )

    def cursor(self) -> Cursor:
        return Cursor(self)

    def scan_prefix(self, prefix: bytes) -> Iterator[tuple[bytes, bytes]]:
        """
        Iterate over the pairs whose key starts with ``prefix``.

        Seeks to ``prefix`` and stops at the first key that no longer matches.
        """
        for key, value in self.cursor().seek(prefix):
            if not key.startswith(prefix):
                return
            yield key, value


class Transaction:
    """
    A read-write transaction.

    Only valid inside the ``KVStore.transaction()`` block that created it.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self.closed = False

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        if self.closed:
            raise StorageError("transaction is closed")
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(f"storage operation failed: {e}") from e

    def bucket(self, name: bytes) -> Bucket | None:
        """Return the named bucket, or None if it was never created."""
        row = self._execute("SELECT 1 FROM buckets WHERE name = ?", (name,)).fetchone()
        if row is None:
            return None
        return Bucket(self, name)

    def create_bucket_if_not_exists(self, name: bytes) -> Bucket:
        """Return the named bucket, creating it first if needed."""
        if not name:
            raise StorageError("bucket name required")
        self._execute("INSERT OR IGNORE INTO buckets (name) VALUES (?)", (name,))
        return Bucket(self, name)


class KVStore:
    """
    Single-file transactional key-value store.

    Parameters
    ----------
    path : str | Path
        Database file; created if missing.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode: transactions are opened explicitly below
            self._conn: sqlite3.Connection | None = sqlite3.connect(
                str(self.path), check_same_thread=False, isolation_level=None
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA_SQL)
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"cannot open store {self.path}: {e}") from e
        logger.debug("kv store opened", path=str(self.path))

    def __enter__(self) -> KVStore:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def close(self) -> None:
        """Close the underlying database. Safe to call more than once."""
        with self._lock:
            if self._conn is None:
                return
            try:
                self._conn.close()
            except sqlite3.Error as e:
                raise StorageError(f"cannot close store {self.path}: {e}") from e
            finally:
                self._conn = None
            logger.debug("kv store closed", path=str(self.path))

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Open a serialized read-write transaction.

        Commits when the block exits normally. If the block raises, every write
        made in it is rolled back and the exception propagates unchanged.

        Raises
        ------
        StorageError
            If the store is closed or the engine fails to begin or commit.
        """
        with self._lock:
            if self._conn is None:
                raise StorageError("store is closed")
            conn = self._conn
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StorageError(f"cannot begin transaction: {e}") from e

            tx = Transaction(conn)
            try:
                yield tx
            except BaseException:
                tx.closed = True
                self._rollback(conn)
                raise

            tx.closed = True
            try:
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                raise StorageError(f"cannot commit transaction: {e}") from e

    def update(self, fn: Callable[[Transaction], T]) -> T:
        """
        Run ``fn`` inside one transaction and return its result.

        Parameters
        ----------
        fn : Callable[[Transaction], T]
            Function applying reads and writes through the transaction.

        Returns
        -------
        T
            Whatever ``fn`` returned, after the transaction committed.
        """
        with self.transaction() as tx:
            return fn(tx)

    def _rollback(self, conn: sqlite3.Connection) -> None:
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            # The original error is the one the caller needs to see
            logger.error("rollback failed", path=str(self.path), error=str(e))
