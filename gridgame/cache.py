"""
Thread-safe in-memory TTL cache.

Used for leaderboard reads, which are cheap to recompute but hit on every
page load; entries are invalidated whenever player stats change.
"""

import time
from typing import Any, Optional, Dict, List
import threading
from dataclasses import dataclass


@dataclass
class CacheEntry:
    """A single cache entry with value and expiration"""
    value: Any
    expires_at: float
    created_at: float


class MemoryCache:
    """Thread-safe in-memory cache with TTL support"""

    def __init__(self):
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._stats = {
            'hits': 0,
            'misses': 0,
            'sets': 0,
            'evictions': 0
        }

    def get(self, key: str) -> Optional[Any]:
        """Get a value from cache, return None if not found or expired"""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._stats['misses'] += 1
                return None

            if time.time() > entry.expires_at:
                del self._cache[key]
                self._stats['misses'] += 1
                self._stats['evictions'] += 1
                return None

            self._stats['hits'] += 1
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: int = 60) -> None:
        with self._lock:
            now = time.time()
            self._cache[key] = CacheEntry(
                value=value,
                expires_at=now + ttl_seconds,
                created_at=now
            )
            self._stats['sets'] += 1

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._cache if k.startswith(prefix)]
            for k in keys:
                del self._cache[k]
            self._stats['evictions'] += len(keys)
            return len(keys)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            total_requests = self._stats['hits'] + self._stats['misses']
            hit_rate = (self._stats['hits'] / total_requests * 100) if total_requests > 0 else 0
            return {
                **self._stats,
                'total_requests': total_requests,
                'hit_rate_percent': round(hit_rate, 2),
                'cache_size': len(self._cache),
            }


LEADERBOARD_PREFIX = "leaderboard:"


def cache_leaderboard(cache: MemoryCache, limit: int, entries: List[Any], ttl_seconds: int) -> None:
    if ttl_seconds > 0:
        cache.set(f"{LEADERBOARD_PREFIX}{limit}", entries, ttl_seconds)


def get_cached_leaderboard(cache: MemoryCache, limit: int) -> Optional[List[Any]]:
    return cache.get(f"{LEADERBOARD_PREFIX}{limit}")


def invalidate_leaderboard_cache(cache: MemoryCache) -> None:
    """Drop every cached leaderboard page; called when any stats row changes"""
    cache.delete_prefix(LEADERBOARD_PREFIX)
