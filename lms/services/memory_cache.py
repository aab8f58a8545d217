# services/memory_cache.py
"""
Process-local TTL cache, the first level in front of Redis.

Course documents and course list pages are read far more often than they are
written, so each worker keeps a short-lived copy. Values are the same
JSON-shaped dicts stored in Redis. Per-key locks let one coroutine rebuild a
cold entry while the others wait for it.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass
class _Entry:
    value: Any
    expires_at: Optional[float]  # None: never expires

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class AsyncInMemoryCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._locks_guard = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    async def set(self, key: str, value: Any, ttl: int = 0) -> None:
        expires_at = self._clock() + ttl if ttl > 0 else None
        self._entries[key] = _Entry(value, expires_at)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def delete_prefix(self, prefix: str) -> int:
        doomed = [k for k in self._entries if k.startswith(prefix)]
        for k in doomed:
            del self._entries[k]
        self._drop_idle_locks(lambda k: k.startswith(prefix))
        return len(doomed)

    async def get_lock(self, key: str) -> asyncio.Lock:
        async with self._locks_guard:
            return self._locks.setdefault(key, asyncio.Lock())

    def purge_expired(self) -> int:
        now = self._clock()
        stale = [k for k, e in self._entries.items() if e.expired(now)]
        for k in stale:
            del self._entries[k]
        self._drop_idle_locks()
        return len(stale)

    def _drop_idle_locks(self, match: Callable[[str], bool] = lambda k: True) -> None:
        # a lock is kept while its key is cached or someone holds it
        idle = [k for k, lock in self._locks.items()
                if match(k) and k not in self._entries and not lock.locked()]
        for k in idle:
            del self._locks[k]

    def clear(self) -> None:
        # locks are bound to the running loop; start over with fresh ones
        self._entries.clear()
        self._locks.clear()
        self._locks_guard = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def lock_count(self) -> int:
        return len(self._locks)


memory_cache = AsyncInMemoryCache()
