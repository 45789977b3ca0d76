"""File-based transactional storage engine.

This adapter owns one store file and provides named partitions ("buckets")
of ordered binary key-value pairs, with transaction boundaries around every
access. The file is an SQLite database in write-ahead-log mode, which gives
the concurrency model the buckets rely on:

- A single writer. Write transactions run on one connection, serialized by
  an in-process lock, and commit atomically.
- Many snapshot readers. Each read transaction holds its own connection and
  sees the store as of its first read. Readers never block the writer and
  the writer never blocks readers.

File Format:
    - ``buckets`` table: bucket name and its sequence counter
    - ``records`` table: (bucket, key) primary key, value blob
    - ``application_id`` / ``user_version`` pragmas identify the file

Operational hazard:
    A read transaction pins the version of the store it started on. The log
    cannot be checkpointed past the oldest open reader, so a reader that is
    never closed (typically an abandoned iterator) makes the log grow without
    bound. ``expay_read_transactions_open`` tracks open readers.

Thread Safety:
    The engine and its transactions may be shared across threads, but a
    single transaction must only be used by one thread at a time. Beginning
    a second write transaction on a thread that already holds one deadlocks.

References:
    - adapters/outbound/bucket.py (bucket API on top of these primitives)
"""

from __future__ import annotations

import fcntl
import os
import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Literal

from expay.adapters.outbound.bucket import Bucket
from expay.adapters.outbound.json_codec import JsonCodec
from expay.domain.errors import StoreIOError
from expay.infrastructure.logging import get_logger
from expay.infrastructure.metrics import MetricsRegistry, get_metrics


logger = get_logger(__name__)

# "EXPY" - marks files created by this engine
APPLICATION_ID = 0x45585059
FORMAT_VERSION = 1

LOCK_POLL_INTERVAL = 0.05

SyncMode = Literal["fsync", "normal", "none"]

_SYNCHRONOUS = {
    "fsync": "FULL",
    "normal": "NORMAL",
    "none": "OFF",
}

_SCHEMA = (
    """
    CREATE TABLE buckets (
        name TEXT PRIMARY KEY,
        sequence INTEGER NOT NULL DEFAULT 0
    ) WITHOUT ROWID
    """,
    """
    CREATE TABLE records (
        bucket TEXT NOT NULL REFERENCES buckets (name),
        key BLOB NOT NULL,
        value BLOB NOT NULL,
        PRIMARY KEY (bucket, key)
    ) WITHOUT ROWID
    """,
)


class Cursor:
    """Forward-only cursor over one bucket of a transaction, in key order.

    Rows are fetched lazily from the transaction's snapshot. ``first`` and
    ``next`` return ``(None, None)`` once the bucket is exhausted.
    """

    _QUERY = "SELECT key, value FROM records WHERE bucket = ? ORDER BY key"

    def __init__(self, tx: Transaction, bucket: str) -> None:
        self._tx = tx
        self._bucket = bucket
        self._rows: sqlite3.Cursor | None = None

    def first(self) -> tuple[bytes | None, bytes | None]:
        """Position the cursor on the first key and return that pair."""
        self.close()
        self._rows = self._tx.execute(self._QUERY, (self._bucket,))
        return self._fetch()

    def next(self) -> tuple[bytes | None, bytes | None]:
        """Advance to the next key and return that pair."""
        if self._rows is None:
            return None, None
        return self._fetch()

    def close(self) -> None:
        """Release the underlying statement."""
        if self._rows is not None:
            rows, self._rows = self._rows, None
            try:
                rows.close()
            except sqlite3.Error as e:
                raise StoreIOError(f"cannot close cursor: {e}") from e

    def _fetch(self) -> tuple[bytes | None, bytes | None]:
        try:
            row = self._rows.fetchone()
        except sqlite3.Error as e:
            raise StoreIOError(f"cursor read failed: {e}") from e
        if row is None:
            self.close()
            return None, None
        return bytes(row[0]), bytes(row[1])


class Transaction:
    """A read-only or read-write transaction against the store.

    Read-write transactions hold the engine's writer lock from ``begin``
    until ``commit`` or ``rollback``. Read-only transactions hold a
    snapshot until ``rollback``, which is how they are ended.
    """

    def __init__(
        self,
        engine: StorageEngine,
        conn: sqlite3.Connection,
        writable: bool,
    ) -> None:
        self._engine = engine
        self._conn = conn
        self._writable = writable
        self._cursors: list[Cursor] = []
        self._closed = False

    @property
    def writable(self) -> bool:
        """Return True for read-write transactions."""
        return self._writable

    @property
    def closed(self) -> bool:
        """Return True once the transaction has been committed or rolled back."""
        return self._closed

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        """Run one statement inside the transaction.

        Raises:
            StoreIOError: If the transaction is closed or the statement fails.
        """
        if self._closed:
            raise StoreIOError("transaction is closed")
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StoreIOError(f"storage error: {e}") from e

    # -- bucket primitives -------------------------------------------------

    def bucket_exists(self, name: str) -> bool:
        """Return True if the bucket has been created."""
        row = self.execute("SELECT 1 FROM buckets WHERE name = ?", (name,)).fetchone()
        return row is not None

    def create_bucket_if_not_exists(self, name: str) -> None:
        """Create the bucket unless it already exists."""
        self._require_writable()
        cursor = self.execute(
            "INSERT OR IGNORE INTO buckets (name, sequence) VALUES (?, 0)", (name,)
        )
        if cursor.rowcount:
            logger.info("bucket_created", bucket=name)

    def next_sequence(self, name: str) -> int:
        """Increment and return the bucket's sequence counter.

        The increment belongs to this transaction: it is discarded on
        rollback and becomes visible together with the rest of the commit.
        """
        self._require_writable()
        self.execute("UPDATE buckets SET sequence = sequence + 1 WHERE name = ?", (name,))
        row = self.execute("SELECT sequence FROM buckets WHERE name = ?", (name,)).fetchone()
        if row is None:
            raise StoreIOError(f"bucket not found: {name}")
        return int(row[0])

    def get(self, name: str, key: bytes) -> bytes | None:
        """Return the value stored under ``key``, or None if absent."""
        row = self.execute(
            "SELECT value FROM records WHERE bucket = ? AND key = ?", (name, key)
        ).fetchone()
        return None if row is None else bytes(row[0])

    def put(self, name: str, key: bytes, value: bytes) -> None:
        """Insert or overwrite ``key``."""
        self._require_writable()
        self.execute(
            "INSERT OR REPLACE INTO records (bucket, key, value) VALUES (?, ?, ?)",
            (name, key, value),
        )

    def delete(self, name: str, key: bytes) -> None:
        """Remove ``key``; removing an absent key is a no-op."""
        self._require_writable()
        self.execute("DELETE FROM records WHERE bucket = ? AND key = ?", (name, key))

    def cursor(self, name: str) -> Cursor:
        """Return a cursor over the bucket, owned by this transaction."""
        cursor = Cursor(self, name)
        self._cursors.append(cursor)
        return cursor

    # -- lifecycle ----------------------------------------------------------

    def commit(self) -> None:
        """Commit a read-write transaction.

        Raises:
            StoreIOError: If the transaction is closed, read-only, or the
                commit fails. A failed commit is rolled back.
        """
        if self._closed:
            raise StoreIOError("transaction is closed")
        self._require_writable()
        try:
            self._close_cursors()
            self._conn.commit()
        except (sqlite3.Error, StoreIOError) as e:
            self._rollback_quietly()
            self._finish("rollback")
            raise StoreIOError(f"commit failed: {e}") from e
        self._finish("commit")

    def rollback(self) -> None:
        """Discard a read-write transaction or end a read-only one.

        Rolling back a closed transaction is a no-op.

        Raises:
            StoreIOError: If the rollback fails.
        """
        if self._closed:
            return
        try:
            self._close_cursors()
            self._conn.rollback()
        except (sqlite3.Error, StoreIOError) as e:
            self._finish("rollback", reusable=False)
            raise StoreIOError(f"rollback failed: {e}") from e
        self._finish("rollback")

    def _require_writable(self) -> None:
        if not self._writable:
            raise StoreIOError("transaction is read-only")

    def _close_cursors(self) -> None:
        cursors, self._cursors = self._cursors, []
        for cursor in cursors:
            cursor.close()

    def _rollback_quietly(self) -> None:
        try:
            self._conn.rollback()
        except sqlite3.Error as e:
            logger.warning("rollback_after_failed_commit_failed", error=str(e))

    def _finish(self, status: str, reusable: bool = True) -> None:
        self._closed = True
        self._engine._release(self, status, reusable)

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None and self._writable:
            self.commit()
        else:
            self.rollback()


class StorageEngine:
    """Owner of one store file: buckets, transactions, and the file lock.

    Usage:
        engine = StorageEngine.open("storage.bolt")
        payments = engine.bucket("payment", Payment)
        ...
        engine.close()

    The engine holds an exclusive advisory lock on the store file for its
    whole lifetime, so only one engine (in any process) can own a file.
    """

    def __init__(
        self,
        path: Path,
        lock_fd: int,
        writer: sqlite3.Connection,
        sync_mode: SyncMode,
        metrics: MetricsRegistry,
    ) -> None:
        self._path = path
        self._lock_fd = lock_fd
        self._writer = writer
        self._sync_mode = sync_mode
        self._metrics = metrics

        self._write_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._idle_readers: list[sqlite3.Connection] = []
        self._open_readers: set[Transaction] = set()
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        lock_timeout: float | None = None,
        sync_mode: SyncMode = "fsync",
        metrics: MetricsRegistry | None = None,
    ) -> StorageEngine:
        """Create or open a store file.

        Args:
            path: Path of the store file. Created if it does not exist.
            lock_timeout: Seconds to wait for another owner to release the
                file. None waits forever, 0 tries exactly once.
            sync_mode: Durability of commits: 'fsync', 'normal' or 'none'.
            metrics: Metrics registry (defaults to the global one).

        Returns:
            The opened engine.

        Raises:
            StoreIOError: If the path cannot be used as a store file.
        """
        path = Path(path)
        if sync_mode not in _SYNCHRONOUS:
            raise ValueError(f"unknown sync mode: {sync_mode}")

        lock_fd = _acquire_file_lock(path, lock_timeout)
        try:
            writer = _connect(path)
            try:
                _configure_writer(writer, sync_mode)
                _initialize(writer, path)
            except BaseException:
                writer.close()
                raise
        except BaseException:
            _release_file_lock(lock_fd)
            raise

        engine = cls(path, lock_fd, writer, sync_mode, metrics or get_metrics())
        logger.info("storage_engine_opened", path=str(path), sync_mode=sync_mode)
        return engine

    @property
    def path(self) -> Path:
        """Return the store file path."""
        return self._path

    @property
    def closed(self) -> bool:
        """Return True once the engine has been closed."""
        return self._closed

    def bucket(self, name: str, value_type: Any = Any) -> Bucket:
        """Return a handle on the named bucket.

        This is cheap and has no side effects: the bucket itself is created
        by its first write.

        Args:
            name: Bucket name.
            value_type: Type of the values stored in the bucket.
        """
        return Bucket(self, name, JsonCodec(value_type), metrics=self._metrics)

    def begin(self, writable: bool) -> Transaction:
        """Begin a transaction.

        A read-write transaction waits for the writer lock. A read-only
        transaction gets its own connection and never waits on the writer.

        Raises:
            StoreIOError: If the engine is closed or the transaction cannot start.
        """
        self._check_open()
        if writable:
            return self._begin_write()
        return self._begin_read()

    @contextmanager
    def view(self) -> Generator[Transaction, None, None]:
        """Run a block inside a read-only transaction."""
        tx = self.begin(writable=False)
        try:
            yield tx
        finally:
            tx.rollback()

    @contextmanager
    def update(self) -> Generator[Transaction, None, None]:
        """Run a block inside a read-write transaction.

        Commits when the block completes and rolls back if it raises.
        """
        tx = self.begin(writable=True)
        try:
            yield tx
        except BaseException:
            tx.rollback()
            raise
        tx.commit()

    def stats(self) -> dict[str, Any]:
        """Return engine statistics."""
        with self._state_lock:
            return {
                "path": str(self._path),
                "closed": self._closed,
                "sync_mode": self._sync_mode,
                "read_transactions_open": len(self._open_readers),
                "idle_readers": len(self._idle_readers),
            }

    def close(self) -> None:
        """Flush the store and release the file.

        Pending log frames are checkpointed into the store file, every
        connection is closed, and the file lock is released. Read
        transactions still open are ended first. Closing twice is a no-op.

        Raises:
            StoreIOError: If the final checkpoint fails. The file is still
                released.
        """
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            stale = list(self._open_readers)
            idle, self._idle_readers = self._idle_readers, []

        if stale:
            logger.warning("closing_with_open_readers", path=str(self._path), count=len(stale))
        for tx in stale:
            try:
                tx.rollback()
            except StoreIOError as e:
                logger.warning("reader_rollback_failed", error=str(e))

        error: Exception | None = None
        with self._write_lock:
            try:
                for conn in idle:
                    conn.close()
                self._writer.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            except sqlite3.Error as e:
                error = e
            finally:
                self._writer.close()
                # SQLite's own locks on the file die with the process's last
                # descriptor on it, so the lock descriptor goes last.
                _release_file_lock(self._lock_fd)

        logger.info("storage_engine_closed", path=str(self._path))
        if error is not None:
            raise StoreIOError(f"checkpoint on close failed: {error}") from error

    # -- internals ----------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise StoreIOError("storage engine is closed")

    def _begin_write(self) -> Transaction:
        self._write_lock.acquire()
        try:
            self._check_open()
            self._writer.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            self._write_lock.release()
            raise StoreIOError(f"cannot begin write transaction: {e}") from e
        except BaseException:
            self._write_lock.release()
            raise
        return Transaction(self, self._writer, writable=True)

    def _begin_read(self) -> Transaction:
        with self._state_lock:
            conn = self._idle_readers.pop() if self._idle_readers else None
        try:
            if conn is None:
                conn = _connect(self._path)
                conn.execute("PRAGMA query_only = ON")
            conn.execute("BEGIN")
        except sqlite3.Error as e:
            if conn is not None:
                conn.close()
            raise StoreIOError(f"cannot begin read transaction: {e}") from e

        tx = Transaction(self, conn, writable=False)
        with self._state_lock:
            self._open_readers.add(tx)
        self._metrics.read_transactions_open.inc()
        return tx

    def _release(self, tx: Transaction, status: str, reusable: bool) -> None:
        """Return a finished transaction's resources to the engine."""
        mode = "write" if tx.writable else "read"
        self._metrics.transactions_total.labels(mode=mode, status=status).inc()
        if tx.writable:
            self._write_lock.release()
            return

        self._metrics.read_transactions_open.dec()
        with self._state_lock:
            self._open_readers.discard(tx)
            if reusable and not self._closed:
                self._idle_readers.append(tx._conn)
                return
        tx._conn.close()

    def __enter__(self) -> StorageEngine:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"StorageEngine({str(self._path)!r}, {state})"


def _acquire_file_lock(path: Path, timeout: float | None) -> int:
    """Open the store file and take an exclusive advisory lock on it."""
    try:
        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o666)
    except OSError as e:
        raise StoreIOError(f"cannot open store file {path}: {e.strerror or e}") from e

    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            return fd
        except BlockingIOError:
            if deadline is not None and time.monotonic() >= deadline:
                os.close(fd)
                raise StoreIOError(f"store file {path} is locked by another owner")
            time.sleep(LOCK_POLL_INTERVAL)
        except OSError as e:
            os.close(fd)
            raise StoreIOError(f"cannot lock store file {path}: {e}") from e


def _release_file_lock(fd: int) -> None:
    try:
        fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


def _connect(path: Path) -> sqlite3.Connection:
    try:
        return sqlite3.connect(path, isolation_level=None, check_same_thread=False)
    except sqlite3.Error as e:
        raise StoreIOError(f"cannot open store file {path}: {e}") from e


def _configure_writer(conn: sqlite3.Connection, sync_mode: SyncMode) -> None:
    try:
        (mode,) = conn.execute("PRAGMA journal_mode = WAL").fetchone()
        conn.execute(f"PRAGMA synchronous = {_SYNCHRONOUS[sync_mode]}")
        conn.execute("PRAGMA foreign_keys = ON")
    except sqlite3.Error as e:
        raise StoreIOError(f"not a usable store file: {e}") from e
    if mode.lower() != "wal":
        raise StoreIOError(f"store file does not support write-ahead logging (mode {mode})")


def _initialize(conn: sqlite3.Connection, path: Path) -> None:
    """Create the schema in a new file, or validate an existing one."""
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            (application_id,) = conn.execute("PRAGMA application_id").fetchone()
            (version,) = conn.execute("PRAGMA user_version").fetchone()
            (tables,) = conn.execute("SELECT count(*) FROM sqlite_master").fetchone()

            if application_id == 0 and tables == 0:
                for statement in _SCHEMA:
                    conn.execute(statement)
                conn.execute(f"PRAGMA application_id = {APPLICATION_ID}")
                conn.execute(f"PRAGMA user_version = {FORMAT_VERSION}")
                logger.info("store_file_initialized", path=str(path))
            elif application_id != APPLICATION_ID:
                raise StoreIOError(f"invalid store file {path}: bad application id {application_id}")
            elif version != FORMAT_VERSION:
                raise StoreIOError(f"unsupported store file version: {version}")
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    except sqlite3.Error as e:
        raise StoreIOError(f"invalid store file {path}: {e}") from e
