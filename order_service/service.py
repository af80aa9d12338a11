from typing import List, Tuple

from .cache import OrderCache
from .errors import InvalidOrderKey
from .store import OrderStore


class OrderReadService:
    """Cache-first order lookups with store fallback."""

    def __init__(self, cache: OrderCache, store: OrderStore):
        self.cache = cache
        self.store = store

    def get_by_key(self, key: str) -> bytes:
        """Return the order payload for key.

        Raises OrderNotFoundError when neither cache nor store has it and
        PersistenceError when the store lookup fails. A store hit is copied
        into the cache before returning.
        """
        if not key:
            raise InvalidOrderKey("missing id")
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        payload = self.store.get(key)
        self.cache.upsert(key, payload)
        return payload

    def list_all(self) -> List[Tuple[str, bytes]]:
        # Only what is cached so far, not the whole store.
        return self.cache.snapshot()
