"""In-memory TTL cache for per-repository pull request lists.

Entries expire ``ttl_ms`` after they were written and the store never holds
more than ``max_size`` repositories (least recently used goes first). Every
operation takes the same lock; values are stored as tuples so a reader either
sees the previous list or the new one, never a partial write.
"""

from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Callable, Sequence

from cachetools import TTLCache  # type: ignore[import-untyped]

from ..core.domain.models import PullRequestRecord
from ..core.ports.cache_port import PullRequestCachePort

logger = logging.getLogger(__name__)


DEFAULT_TTL_MS = 300_000
DEFAULT_MAX_SIZE = 100


class TTLPullRequestCache(PullRequestCachePort):
    def __init__(
        self,
        ttl_ms: int = DEFAULT_TTL_MS,
        max_size: int = DEFAULT_MAX_SIZE,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._cache: TTLCache[str, tuple[PullRequestRecord, ...]] = TTLCache(
            maxsize=max_size, ttl=ttl_ms / 1000.0, timer=timer
        )
        self._lock = Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> tuple[PullRequestRecord, ...] | None:
        with self._lock:
            value = self._cache.get(key)
            if value is None:
                self._misses += 1
                logger.debug("Cache MISS: %s", key)
            else:
                self._hits += 1
                logger.debug("Cache HIT: %s", key)
            return value

    def put(self, key: str, records: Sequence[PullRequestRecord]) -> None:
        value = tuple(records)
        with self._lock:
            self._cache[key] = value

    def evict_all(self) -> None:
        with self._lock:
            self._cache.clear()
        logger.debug("Evicted all cached pull request lists")

    def keys(self) -> list[str]:
        with self._lock:
            self._cache.expire()
            return list(self._cache.keys())

    def stats(self) -> dict[str, int]:
        """Current cache statistics for monitoring."""
        with self._lock:
            self._cache.expire()
            return {
                "size": len(self._cache),
                "maxsize": int(self._cache.maxsize),
                "hits": self._hits,
                "misses": self._misses,
            }

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)
