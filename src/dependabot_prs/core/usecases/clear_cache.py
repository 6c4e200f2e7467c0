from __future__ import annotations

from ..ports.cache_port import PullRequestCachePort


class ClearCacheUseCase:
    def __init__(self, cache: PullRequestCachePort) -> None:
        self._cache = cache

    def execute(self) -> int:
        """Evict every cached repository; returns how many entries were dropped."""
        dropped = len(self._cache)
        self._cache.evict_all()
        return dropped
