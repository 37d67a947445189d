"""Per-fingerprint mutual exclusion for download-client mutations."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class FingerprintLocks:
    """One ``asyncio.Lock`` per torrent fingerprint, created on first use."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._registry_lock = asyncio.Lock()

    @staticmethod
    def _normalize(fingerprint: str) -> str:
        return fingerprint.strip().lower()

    async def _get_or_create(self, fingerprint: str) -> asyncio.Lock:
        key = self._normalize(fingerprint)
        lock = self._locks.get(key)
        if lock is not None:
            return lock

        async with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[key] = lock
            return lock

    @asynccontextmanager
    async def hold(self, fingerprint: str) -> AsyncIterator[None]:
        lock = await self._get_or_create(fingerprint)
        async with lock:
            yield

    def locked(self, fingerprint: str) -> bool:
        lock = self._locks.get(self._normalize(fingerprint))
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
