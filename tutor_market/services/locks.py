"""Per-key asyncio locks: one critical section per session id (or wallet/tutor pair).

Entries are weak: a key's lock lives only while someone holds it or waits on it,
so the map does not grow with every session or pair ever seen.
"""
import asyncio
import weakref


class KeyedLock:
    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def __call__(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
