from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, List, Optional
import logging, sqlite3, os, threading, uuid
from hkpstore.errors import StoreError, TransactionError

log = logging.getLogger("hkpstore.storage")


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


class SQLiteStorage:
    """
    Relational session shared by the lookup, import and export components.

    Each thread gets its own connection to the same database, so every
    thread has its own BEGIN/COMMIT state and never reads another thread's
    uncommitted rows. File databases run in WAL mode so readers proceed
    while an import holds the write lock. Connections are in autocommit
    mode; multi-row writes go through ``transaction()``.

    ``:memory:`` maps to a private shared-cache memory database. It is meant
    for single-threaded use: concurrent readers there get "table is locked"
    instead of WAL snapshots.
    """

    def __init__(self, path="db/hkpstore.db", timeout: float = 5.0):
        if path == ":memory:":
            self._target = f"file:hkpstore-{uuid.uuid4().hex}?mode=memory&cache=shared"
        else:
            # If no directory, default to current working directory
            dir_path = os.path.dirname(path) or "."
            os.makedirs(dir_path, exist_ok=True)
            self._target = path
        self.path = path
        self.timeout = timeout
        self._local = threading.local()
        self._lock = threading.Lock()
        self._connections: List[sqlite3.Connection] = []

        # Also keeps a shared-cache memory database alive until close()
        self._init()

    @property
    def db(self) -> sqlite3.Connection:
        """The calling thread's connection, opened on first use."""
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = self._connect()
            self._local.conn = conn
        return conn

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                self._target,
                timeout=self.timeout,
                check_same_thread=False,
                isolation_level=None,
                uri=self.path == ":memory:",
            )
            conn.execute("PRAGMA foreign_keys = ON")
            conn.create_function("casefold", 1, _casefold, deterministic=True)
        except sqlite3.Error as e:
            raise StoreError(f"failed to open {self.path}: {e}") from e
        with self._lock:
            self._connections.append(conn)
        return conn

    def execute(self, sql: str, params: tuple = None) -> sqlite3.Cursor:
        try:
            if params:
                return self.db.execute(sql, params)
            return self.db.execute(sql)
        except sqlite3.Error as e:
            raise StoreError(f"query failed: {e}") from e

    def fetch_one(self, sql: str, params: tuple = None) -> Optional[tuple]:
        cur = self.execute(sql, params)
        try:
            return cur.fetchone()
        finally:
            cur.close()

    def _init(self) -> None:
        c = self.db.cursor()
        if self.path != ":memory:":
            c.execute("PRAGMA journal_mode = WAL")

        c.execute("""CREATE TABLE IF NOT EXISTS keys(
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            fingerprint BLOB NOT NULL UNIQUE,
            keyid64 INTEGER NOT NULL,
            keyid32 INTEGER NOT NULL,
            creation_time INTEGER NOT NULL,
            expiration_time INTEGER NOT NULL DEFAULT 0,
            algo INTEGER NOT NULL,
            bit_length INTEGER NOT NULL,
            packets BLOB NOT NULL
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS identities(
            key_id INTEGER NOT NULL REFERENCES keys(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            creation_time INTEGER NOT NULL,
            expiration_time INTEGER NOT NULL DEFAULT 0,
            wkd_hash TEXT NOT NULL
        )""")
        c.execute("CREATE INDEX IF NOT EXISTS keys_keyid64 ON keys(keyid64)")
        c.execute("CREATE INDEX IF NOT EXISTS keys_keyid32 ON keys(keyid32)")
        c.execute("CREATE INDEX IF NOT EXISTS identities_key ON identities(key_id)")
        c.execute("CREATE INDEX IF NOT EXISTS identities_wkd_hash ON identities(wkd_hash)")
        c.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        db = self.db
        try:
            db.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise TransactionError(f"failed to create transaction: {e}") from e

        try:
            yield db
        except BaseException:
            self._rollback()
            raise

        try:
            db.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback()
            raise TransactionError(f"failed to commit transaction: {e}") from e

    def _rollback(self) -> None:
        if not self.db.in_transaction:
            return
        try:
            self.db.execute("ROLLBACK")
        except sqlite3.Error as e:
            log.error(f"rollback failed: {e}")
            raise TransactionError(f"failed to roll back transaction: {e}") from e

    def close(self):
        with self._lock:
            conns, self._connections = self._connections, []
        for conn in conns:
            conn.close()
        self._local = threading.local()
