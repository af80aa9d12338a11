import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple


class ReadWriteLock:
    """Many concurrent readers or one exclusive writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            # Waiting writers go first so a steady read load cannot starve them.
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class OrderCache:
    """Unbounded in-memory map of order_uid to raw order payload."""

    def __init__(self):
        self._entries: Dict[str, bytes] = {}
        self._lock = ReadWriteLock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock.read():
            return self._entries.get(key)

    def upsert(self, key: str, payload: bytes) -> None:
        with self._lock.write():
            self._entries[key] = payload

    def snapshot(self) -> List[Tuple[str, bytes]]:
        with self._lock.read():
            return list(self._entries.items())

    def __contains__(self, key: str) -> bool:
        with self._lock.read():
            return key in self._entries

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)
