import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    expires_at: float


class TTLCache:
    """
    In-memory TTL cache.

    Expired entries stay readable through ``get_stale`` until evicted, so
    callers can serve old data when the upstream fails.
    """

    def __init__(self, default_ttl: float = 300, max_size: int = 1000, clock: Callable[[], float] = time.time):
        self.default_ttl = default_ttl
        self.max_size = max_size
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._access_order: list = []
        self._lock = asyncio.Lock()

    def _touch(self, key: str) -> None:
        if key in self._access_order:
            self._access_order.remove(key)
        self._access_order.append(key)

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None or self._clock() > entry.expires_at:
                return None
            self._touch(key)
            return entry.value

    async def get_stale(self, key: str) -> Optional[CacheEntry]:
        async with self._lock:
            return self._cache.get(key)

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        async with self._lock:
            now = self._clock()
            ttl = self.default_ttl if ttl is None else ttl
            self._cache[key] = CacheEntry(value=value, stored_at=now, expires_at=now + ttl)
            self._touch(key)

            while len(self._cache) > self.max_size:
                oldest_key = self._access_order.pop(0)
                self._cache.pop(oldest_key, None)

    async def extend(self, key: str, ttl: float) -> None:
        """Push the expiry of an existing entry ``ttl`` seconds into the future."""
        async with self._lock:
            entry = self._cache.get(key)
            if entry is not None:
                entry.expires_at = self._clock() + ttl

    def age(self, entry: CacheEntry) -> float:
        return self._clock() - entry.stored_at

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()
            self._access_order.clear()

    def reset(self) -> None:
        self._cache.clear()
        self._access_order.clear()

    def size(self) -> int:
        return len(self._cache)
