import logging
import os
import sqlite3
import threading
from datetime import datetime
from typing import Dict, List, Protocol, Tuple

from .errors import OrderNotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class OrderStore(Protocol):
    def get(self, key: str) -> bytes:
        ...

    def put(self, key: str, payload: bytes) -> None:
        ...

    def count(self) -> int:
        ...

    def list_all(self) -> List[Tuple[str, bytes]]:
        ...

    def close(self) -> None:
        ...


class InMemoryOrderStore:
    """Dict-backed store with the same upsert semantics as the SQLite one."""

    def __init__(self):
        self._rows: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes:
        with self._lock:
            row = self._rows.get(key)
        if row is None:
            raise OrderNotFoundError(f"order {key} not found", order_uid=key)
        return row

    def put(self, key: str, payload: bytes) -> None:
        with self._lock:
            self._rows[key] = bytes(payload)

    def count(self) -> int:
        with self._lock:
            return len(self._rows)

    def list_all(self) -> List[Tuple[str, bytes]]:
        with self._lock:
            return list(self._rows.items())

    def close(self) -> None:
        pass


class SQLiteOrderStore:
    """SQLite-backed order table keyed by order_uid."""

    def __init__(self, db_path: str):
        if db_path != ":memory:":
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        # One connection is shared by the ingestion task and request threads.
        self._lock = threading.Lock()
        self._init_table()

    def _init_table(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS orders (
                order_uid TEXT PRIMARY KEY,
                data BLOB NOT NULL,
                created_at TEXT NOT NULL
            );
            """
        )
        self.conn.commit()

    def get(self, key: str) -> bytes:
        try:
            with self._lock:
                row = self.conn.execute(
                    "SELECT data FROM orders WHERE order_uid = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"select order {key}: {exc}", order_uid=key) from exc
        if row is None:
            raise OrderNotFoundError(f"order {key} not found", order_uid=key)
        return bytes(row["data"])

    def put(self, key: str, payload: bytes) -> None:
        try:
            with self._lock:
                self.conn.execute(
                    """
                    INSERT INTO orders (order_uid, data, created_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT (order_uid) DO UPDATE
                    SET data = excluded.data, created_at = excluded.created_at
                    """,
                    (key, sqlite3.Binary(payload), datetime.utcnow().isoformat()),
                )
                self.conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"save order {key}: {exc}", order_uid=key) from exc

    def count(self) -> int:
        try:
            with self._lock:
                row = self.conn.execute("SELECT COUNT(*) AS c FROM orders").fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"count orders: {exc}") from exc
        return row["c"]

    def list_all(self) -> List[Tuple[str, bytes]]:
        try:
            with self._lock:
                rows = self.conn.execute(
                    "SELECT order_uid, data FROM orders"
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"list orders: {exc}") from exc
        return [(row["order_uid"], bytes(row["data"])) for row in rows]

    def close(self) -> None:
        with self._lock:
            self.conn.close()


def create_store(backend: str, dsn: str) -> OrderStore:
    backend = backend.lower()
    if backend == "sqlite":
        logger.info("opening sqlite order store at %s", dsn)
        return SQLiteOrderStore(dsn)
    logger.info("using in-memory order store")
    return InMemoryOrderStore()
