from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import requests
from github import Auth, Github, GithubException

from ..config.urls import DEFAULT_API_URL
from ..core.domain.enums import PullRequestState
from ..core.domain.exceptions import ConversionError, FetchError, TokenExchangeError
from ..core.domain.models import PullRequestRecord
from ..core.ports.source_port import PullRequestSourcePort
from ..core.ports.token_port import AccessTokenProviderPort
from ..shared.utils import is_dependabot_login, parse_dependency_title

logger = logging.getLogger(__name__)


GithubFactory = Callable[[str], Github]

# PyGithub surfaces API errors as GithubException and transport errors from requests
_UPSTREAM_ERRORS = (GithubException, requests.RequestException, OSError)


def github_factory_for(api_url: str = DEFAULT_API_URL) -> GithubFactory:
    """Return a factory building a PyGithub client authenticated with an installation token."""

    def _factory(token: str) -> Github:
        return Github(auth=Auth.Token(token), base_url=api_url.rstrip("/"))

    return _factory


class GitHubPullRequestPoller(PullRequestSourcePort):
    def __init__(
        self,
        token_provider: AccessTokenProviderPort,
        owner: Optional[str],
        api_url: str = DEFAULT_API_URL,
        github_factory: Optional[GithubFactory] = None,
    ) -> None:
        self._token_provider = token_provider
        self._owner = owner
        self._github_factory = github_factory or github_factory_for(api_url)

    def fetch(self, repository: str) -> list[PullRequestRecord]:
        """Return open Dependabot pull requests for owner/repository.

        A fresh installation token is issued for every call. Listing failures
        raise FetchError; an author that cannot be read only skips that pull
        request, while a failure during conversion raises ConversionError for
        the whole call.
        """
        if not self._owner:
            raise FetchError(repository, "No repository owner configured.")

        token = self._token_provider.issue_token()
        client = self._github_factory(token.token)
        try:
            logger.debug("Fetching Dependabot PRs for %s/%s", self._owner, repository)
            pulls = self._list_open_pulls(client, repository)
            matching = [pr for pr in pulls if self._is_dependabot_pr(pr, repository)]
            records = [self._to_record(pr, repository) for pr in matching]
        finally:
            client.close()

        logger.debug("Found %d Dependabot PRs out of %d open PRs in %s/%s", len(records), len(pulls), self._owner, repository)
        return records

    def fetch_or_empty(self, repository: str) -> list[PullRequestRecord]:
        try:
            return self.fetch(repository)
        except (FetchError, TokenExchangeError) as e:
            cause = e.__cause__ or e
            logger.error("Error fetching PRs for repository %s: %s", repository, cause)
            return []

    def _list_open_pulls(self, client: Github, repository: str) -> list[Any]:
        slug = f"{self._owner}/{repository}"
        try:
            # Materialize every page here so pagination errors surface as FetchError
            return list(client.get_repo(slug).get_pulls(state="open"))
        except _UPSTREAM_ERRORS as e:
            raise FetchError(repository) from e

    @staticmethod
    def _is_dependabot_pr(pr: Any, repository: str) -> bool:
        try:
            return is_dependabot_login(pr.user.login)
        except (*_UPSTREAM_ERRORS, AttributeError) as e:
            logger.warning("Error checking PR author in %s: %s", repository, e)
            return False

    @staticmethod
    def _to_record(pr: Any, repository: str) -> PullRequestRecord:
        number = getattr(pr, "number", None)
        try:
            title = pr.title or ""
            parsed = parse_dependency_title(title)
            mergeable = pr.mergeable
            return PullRequestRecord(
                number=pr.number,
                id=pr.id,
                title=title,
                author=pr.user.login,
                repository=repository,
                url=pr.html_url,
                state=PullRequestState.from_github(pr.state, pr.merged_at),
                created_at=pr.created_at,
                updated_at=pr.updated_at,
                body=pr.body,
                commits=pr.commits,
                changed_files=pr.changed_files,
                has_conflicts=mergeable is not None and not mergeable,
                dependency=parsed.dependency,
                current_version=parsed.current_version,
                proposed_version=parsed.proposed_version,
            )
        except (*_UPSTREAM_ERRORS, AttributeError, TypeError) as e:
            logger.error("Error converting PR %s#%s: %s", repository, number, e)
            raise ConversionError(repository, number) from e
