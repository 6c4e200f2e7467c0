from __future__ import annotations

import logging
from datetime import datetime, timedelta
from threading import Event, Lock
from typing import Optional, Sequence

from ..domain.exceptions import RefreshExhaustedError, RefreshInterruptedError
from ..domain.models import RefreshExecutionRecord
from ..ports.cache_port import PullRequestCachePort
from ..ports.clock_port import ClockPort, SystemClock
from ..ports.source_port import PullRequestSourcePort

logger = logging.getLogger(__name__)


class ExecutionTracker:
    """Process-lifetime refresh counters, written by the orchestrator only."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._execution_count = 0
        self._last_execution_time: Optional[datetime] = None
        self._last_execution_duration: Optional[timedelta] = None

    def begin(self) -> int:
        with self._lock:
            self._execution_count += 1
            return self._execution_count

    def record_success(self, started_at: datetime, duration: timedelta) -> None:
        with self._lock:
            self._last_execution_time = started_at
            self._last_execution_duration = duration

    def snapshot(self) -> RefreshExecutionRecord:
        with self._lock:
            return RefreshExecutionRecord(
                execution_count=self._execution_count,
                last_execution_time=self._last_execution_time,
                last_execution_duration=self._last_execution_duration,
            )


class RefreshOrchestrator:
    """Evicts the pull request cache and repopulates it for every configured repository.

    The repository loop is retried as one batch: if any repository raises, the
    whole loop starts over from the first repository after ``retry_delay_ms``,
    up to ``max_retries`` extra attempts. Failures are logged and absorbed so
    the scheduler driving refresh() keeps firing.
    """

    def __init__(
        self,
        source: PullRequestSourcePort,
        cache: PullRequestCachePort,
        repositories: Sequence[str] | None,
        max_retries: int = 3,
        retry_delay_ms: int = 5_000,
        clock: Optional[ClockPort] = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must be non-negative")
        self._source = source
        self._cache = cache
        self._repositories = tuple(repositories or ())
        self._max_retries = max_retries
        self._retry_delay_ms = retry_delay_ms
        self._clock = clock or SystemClock()
        self._tracker = ExecutionTracker()
        self._interrupted = Event()

    @property
    def stats(self) -> RefreshExecutionRecord:
        return self._tracker.snapshot()

    def interrupt(self) -> None:
        """Abort the retry wait of the cycle currently running, if any."""
        self._interrupted.set()

    def refresh(self) -> bool:
        """Run one refresh cycle. Returns True on success; never raises."""
        self._interrupted.clear()
        started_at = self._clock.now()
        execution = self._tracker.begin()
        logger.info("=== Starting scheduled PR refresh (execution #%d) ===", execution)

        try:
            self._evict_cache()
            total_prs = self._refresh_all_repositories()
        except Exception as e:
            elapsed_ms = self._elapsed_ms(started_at)
            logger.error(
                "=== Scheduled PR refresh failed after %dms (execution #%d) ===",
                elapsed_ms, execution, exc_info=e,
            )
            return False

        duration = self._clock.now() - started_at
        self._tracker.record_success(started_at, duration)
        logger.info(
            "=== Scheduled PR refresh completed successfully in %dms. Refreshed %d PRs ===",
            int(duration.total_seconds() * 1000), total_prs,
        )
        return True

    def _evict_cache(self) -> None:
        logger.debug("Evicting cache before refresh")
        self._cache.evict_all()

    def _refresh_all_repositories(self) -> int:
        logger.debug("Refreshing %d repositories: %s", len(self._repositories), list(self._repositories))
        attempts = 0
        while True:
            try:
                total_prs = self._fetch_batch()
            except Exception as e:
                attempts += 1
                if attempts > self._max_retries:
                    logger.error("All %d retry attempts exhausted", self._max_retries)
                    raise RefreshExhaustedError(attempts) from e
                logger.warning(
                    "Refresh attempt %d failed, retrying in %dms...",
                    attempts, self._retry_delay_ms, exc_info=e,
                )
                self._wait_before_retry()
                continue

            if attempts > 0:
                logger.info("Successfully refreshed after %d retry attempts", attempts)
            return total_prs

    def _fetch_batch(self) -> int:
        total_prs = 0
        for repository in self._repositories:
            logger.debug("Fetching PRs for repository: %s", repository)
            records = self._source.fetch(repository)
            self._cache.put(repository, records)
            total_prs += len(records)
            logger.debug("Found %d PRs for %s", len(records), repository)
        return total_prs

    def _wait_before_retry(self) -> None:
        if self._interrupted.wait(self._retry_delay_ms / 1000.0):
            raise RefreshInterruptedError("Retry interrupted")

    def _elapsed_ms(self, started_at: datetime) -> int:
        return int((self._clock.now() - started_at).total_seconds() * 1000)
