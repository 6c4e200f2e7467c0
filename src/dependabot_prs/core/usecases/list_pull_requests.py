from __future__ import annotations

import logging
from typing import Sequence

from ..domain.models import PullRequestRecord
from ..ports.cache_port import PullRequestCachePort
from ..ports.source_port import PullRequestSourcePort

logger = logging.getLogger(__name__)


class ListPullRequestsUseCase:
    """Cache-fronted read path over the configured repositories.

    A miss fetches from upstream and stores whatever came back, including the
    empty list an upstream failure degrades to.
    """

    def __init__(
        self,
        source: PullRequestSourcePort,
        cache: PullRequestCachePort,
        repositories: Sequence[str] | None = None,
    ) -> None:
        self._source = source
        self._cache = cache
        self._repositories = tuple(repositories or ())

    def for_repository(self, repository: str) -> list[PullRequestRecord]:
        cached = self._cache.get(repository)
        if cached is not None:
            return list(cached)

        records = self._source.fetch_or_empty(repository)
        self._cache.put(repository, records)
        logger.debug("Returning %d PRs for repository: %s", len(records), repository)
        return list(records)

    def for_all(self) -> list[PullRequestRecord]:
        result: list[PullRequestRecord] = []
        for repository in self._repositories:
            result.extend(self.for_repository(repository))
        logger.info("Returning %d PRs across %d repositories", len(result), len(self._repositories))
        return result
