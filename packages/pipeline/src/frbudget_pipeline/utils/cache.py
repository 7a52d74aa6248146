"""utils/cache.py — Per-run in-memory cache of fetched dataset records."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

log = structlog.get_logger(__name__)

CacheKey = tuple[str, str | None]
Records = list[dict[str, Any]]


class RecordCache:
    """
    Dict-based cache keyed by (dataset_id, where).

    Owned by one pipeline run and discarded with it, so nothing is shared
    between invocations. Concurrent tracks asking for the same key wait on a
    per-key lock and reuse the first result; failed fetches are not cached.
    """

    def __init__(self) -> None:
        self._store: dict[CacheKey, Records] = {}
        self._locks: dict[CacheKey, asyncio.Lock] = {}
        self.hits = 0
        self.misses = 0

    async def get_or_fetch(
        self,
        dataset_id: str,
        where: str | None,
        fetch: Callable[[], Awaitable[Records]],
    ) -> Records:
        key = (dataset_id, where)
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            if key in self._store:
                self.hits += 1
                log.debug("record_cache_hit", dataset_id=dataset_id, where=where)
                return self._store[key]
            self.misses += 1
            records = await fetch()
            self._store[key] = records
            return records

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def clear(self) -> None:
        self._store.clear()
        self._locks.clear()
