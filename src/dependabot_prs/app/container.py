from __future__ import annotations

import logging

from dependency_injector import containers, providers

from ..config.settings import AppConfig
from ..core.ports.clock_port import SystemClock
from ..core.services.refresh_orchestrator import RefreshOrchestrator
from ..core.usecases.clear_cache import ClearCacheUseCase
from ..core.usecases.list_pull_requests import ListPullRequestsUseCase
from ..infra.cache_memory import TTLPullRequestCache
from ..infra.credentials import CredentialMinter, PrivateKeySource
from ..infra.cron import CronRefreshTimer
from ..infra.github_poller import GitHubPullRequestPoller
from ..infra.http_client import HttpClient
from ..infra.token_exchange import InstallationTokenExchanger

logger = logging.getLogger(__name__)


def http_client_resource():
	logger.debug("Initializing HTTP client")
	client = HttpClient()
	try:
		yield client
	finally:
		logger.debug("Closing HTTP client")
		client.close()


def cache_factory(ttl_ms, max_size):
	logger.info(f"Initializing PR cache (ttl: {ttl_ms}ms, max entries: {max_size})")
	return TTLPullRequestCache(ttl_ms=ttl_ms, max_size=max_size)


class Container(containers.DeclarativeContainer):
	config = providers.Configuration(pydantic_settings=[AppConfig()])

	clock = providers.Singleton(SystemClock)

	http_client = providers.Resource(http_client_resource)

	key_source = providers.Factory(
		PrivateKeySource,
		inline=config.private_key,
		path=config.private_key_path,
	)

	credential_minter = providers.Factory(
		CredentialMinter,
		app_id=config.app_id,
		key_source=key_source,
		clock=clock,
	)

	token_exchanger = providers.Factory(
		InstallationTokenExchanger,
		minter=credential_minter,
		http_client=http_client,
		installation_id=config.installation_id,
		api_url=config.api_url,
	)

	poller = providers.Factory(
		GitHubPullRequestPoller,
		token_provider=token_exchanger,
		owner=config.owner,
		api_url=config.api_url,
	)

	# Shared by the read path and the scheduler
	cache = providers.Singleton(
		cache_factory,
		ttl_ms=config.cache_ttl_ms,
		max_size=config.cache_max_size,
	)

	list_uc = providers.Factory(ListPullRequestsUseCase, source=poller, cache=cache, repositories=config.repos)
	clear_cache_uc = providers.Factory(ClearCacheUseCase, cache=cache)

	orchestrator = providers.Singleton(
		RefreshOrchestrator,
		source=poller,
		cache=cache,
		repositories=config.repos,
		max_retries=config.scheduler_max_retries,
		retry_delay_ms=config.scheduler_retry_delay_ms,
		clock=clock,
	)

	refresh_timer = providers.Singleton(
		CronRefreshTimer,
		orchestrator=orchestrator,
		cron=config.scheduler_cron,
		enabled=config.scheduler_enabled,
	)
