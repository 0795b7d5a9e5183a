"""
Result Cache: memoized extraction results per (url, options).

Entries expire after a fixed TTL and are pruned lazily when read. A miss is
always safe; the cache is never a source of truth.
"""
import asyncio
import time
from dataclasses import dataclass

from loguru import logger

from component_extractor.models import ExtractedComponent


@dataclass
class CacheEntry:
    timestamp: float
    components: list[ExtractedComponent]


class ResultCache:
    def __init__(self, ttl_seconds: float = 300, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self.lock = asyncio.Lock()

    def _expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp > self.ttl_seconds

    async def get(self, url: str, options_key: str) -> list[ExtractedComponent] | None:
        async with self.lock:
            key = (url, options_key)
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry):
                del self._entries[key]
                logger.debug(f"[cache] Expired entry for {url}")
                return None
            return list(entry.components)

    async def set(self, url: str, options_key: str, components: list[ExtractedComponent]):
        async with self.lock:
            self._entries[(url, options_key)] = CacheEntry(
                timestamp=self._clock(),
                components=list(components),
            )

    async def clear(self):
        async with self.lock:
            self._entries.clear()

    def __len__(self):
        return len(self._entries)


_cache: ResultCache | None = None


def get_result_cache() -> ResultCache:
    global _cache
    if _cache is None:
        from component_extractor.config import get_settings
        _cache = ResultCache(ttl_seconds=get_settings().cache_ttl_seconds)
    return _cache
