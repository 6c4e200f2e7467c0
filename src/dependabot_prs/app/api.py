from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from .container import Container
from ..config.settings import AppConfig
from ..core.domain.models import PullRequestRecord, RefreshExecutionRecord


class DependabotPRClient:
    """Client for reading Dependabot pull requests across configured repositories.

    The container and its resources are initialized once and reused across calls,
    so the pull request cache is shared by every read and by the background
    refresh scheduler started from this client.

    Example:
        # Using default configuration (from environment variables)
        client = DependabotPRClient()
        prs = client.list_pull_requests()
        client.close()

        # Using context manager (recommended)
        with DependabotPRClient(owner="my-org", repos=["service-a", "service-b"]) as client:
            for pr in client.list_repository_pull_requests("service-a"):
                print(pr.dependency, pr.current_version, "->", pr.proposed_version)

        # Long-running process with the cron refresh enabled
        with DependabotPRClient(scheduler_enabled=True, scheduler_cron="*/15 * * * *") as client:
            client.start_scheduler()
            ...
    """

    def __init__(
        self,
        *,
        app_id: str | None = None,
        installation_id: str | None = None,
        private_key: str | None = None,
        private_key_path: str | Path | None = None,
        owner: str | None = None,
        repos: Sequence[str] | None = None,
        api_url: str | None = None,
        cache_ttl_ms: int | None = None,
        cache_max_size: int | None = None,
        scheduler_enabled: bool | None = None,
        scheduler_cron: str | None = None,
        scheduler_max_retries: int | None = None,
        scheduler_retry_delay_ms: int | None = None,
    ):
        """Initialize the client.

        Every argument left as None falls back to the matching DEPENDABOT_PRS_*
        environment variable, then to the AppConfig default.

        Args:
            app_id: GitHub App ID used as the credential issuer.
            installation_id: Installation whose access tokens are requested.
            private_key: Inline PEM private key (PKCS#1 or PKCS#8).
            private_key_path: Path to a PEM private key file.
            owner: User or organization that owns the repositories.
            repos: Repository names to monitor.
            api_url: GitHub REST API base URL.
            cache_ttl_ms: Cache entry lifetime in milliseconds (default: 300000).
            cache_max_size: Maximum cached repositories (default: 100).
            scheduler_enabled: Whether start_scheduler() registers the cron job.
            scheduler_cron: Cron expression for the refresh job.
            scheduler_max_retries: Extra attempts for a failed refresh batch (default: 3).
            scheduler_retry_delay_ms: Delay between refresh attempts (default: 5000).
        """
        self._container = Container()

        overrides: dict[str, Any] = {
            "app_id": app_id,
            "installation_id": installation_id,
            "private_key": private_key,
            "private_key_path": Path(private_key_path) if isinstance(private_key_path, str) else private_key_path,
            "owner": owner,
            "repos": list(repos) if repos is not None else None,
            "api_url": api_url,
            "cache_ttl_ms": cache_ttl_ms,
            "cache_max_size": cache_max_size,
            "scheduler_enabled": scheduler_enabled,
            "scheduler_cron": scheduler_cron,
            "scheduler_max_retries": scheduler_max_retries,
            "scheduler_retry_delay_ms": scheduler_retry_delay_ms,
        }
        config_dict = {k: v for k, v in overrides.items() if v is not None}

        # Override config if any settings provided
        if config_dict:
            config = AppConfig(**config_dict)
            self._container.config.from_pydantic(config)

        self._container.init_resources()
        self._scheduler_started = False

    @property
    def container(self) -> Container:
        return self._container

    def list_pull_requests(self) -> list[PullRequestRecord]:
        """Return open Dependabot pull requests from every configured repository.

        Served from the cache where possible. A repository whose upstream call
        fails contributes an empty list instead of raising.
        """
        return self._container.list_uc().for_all()

    def list_repository_pull_requests(self, repository: str) -> list[PullRequestRecord]:
        """Return open Dependabot pull requests for one repository (cache-fronted)."""
        return self._container.list_uc().for_repository(repository)

    def refresh(self) -> bool:
        """Run one refresh cycle immediately: evict the cache and refetch every repository.

        Returns True when the batch succeeded within the retry budget.
        """
        return self._container.orchestrator().refresh()

    def start_scheduler(self) -> bool:
        """Register the cron refresh job. Returns False when the scheduler is disabled."""
        started = self._container.refresh_timer().start()
        self._scheduler_started = self._scheduler_started or started
        return started

    def stop_scheduler(self) -> None:
        if self._scheduler_started:
            self._container.refresh_timer().stop()
            self._scheduler_started = False

    def execution_stats(self) -> RefreshExecutionRecord:
        return self._container.orchestrator().stats

    def cache_stats(self) -> dict[str, int]:
        return self._container.cache().stats()

    def clear_cache(self) -> int:
        return self._container.clear_cache_uc().execute()

    def close(self) -> None:
        """Stop the scheduler (if started) and release resources."""
        self.stop_scheduler()
        self._container.shutdown_resources()

    def __enter__(self) -> DependabotPRClient:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


__all__ = [
    "DependabotPRClient",
    "AppConfig",
]
