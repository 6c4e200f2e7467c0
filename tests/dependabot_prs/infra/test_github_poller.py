from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import Mock, PropertyMock

import pytest
import requests
from github import GithubException

from dependabot_prs.core.domain.enums import PullRequestState
from dependabot_prs.core.domain.exceptions import ConversionError, FetchError, TokenExchangeError
from dependabot_prs.core.domain.models import AccessToken
from dependabot_prs.infra.github_poller import GitHubPullRequestPoller


class FakeTokenProvider:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls = 0
        self._error = error

    def issue_token(self) -> AccessToken:
        self.calls += 1
        if self._error:
            raise self._error
        return AccessToken(token=f"ghs_token_{self.calls}")


def _create_mock_github_client(pulls: list | None = None, exception: Exception | None = None):
    """Create a mock Github client whose repo returns the given pulls or raises exception."""
    mock_client = Mock()
    mock_repo = Mock()
    if exception:
        mock_repo.get_pulls.side_effect = exception
    else:
        mock_repo.get_pulls.return_value = pulls or []
    mock_client.get_repo.return_value = mock_repo
    return mock_client


def _poller(client, tokens=None, factory_tokens: list | None = None):
    def factory(token: str):
        if factory_tokens is not None:
            factory_tokens.append(token)
        return client

    return GitHubPullRequestPoller(token_provider=tokens or FakeTokenProvider(), owner="test-owner", github_factory=factory)


def test_fetch_filters_to_dependabot_and_parses_titles(make_pull):
    pulls = [
        make_pull(1, "Bump lodash from 4.17.20 to 4.17.21 (#1)"),
        make_pull(2, "Add feature", login="octocat"),
        make_pull(3, "Bump pytest from 7.4.0 to 8.0.0", login="dependabot-preview[bot]"),
    ]
    client = _create_mock_github_client(pulls)

    records = _poller(client).fetch("repo")

    client.get_repo.assert_called_once_with("test-owner/repo")
    client.get_repo.return_value.get_pulls.assert_called_once_with(state="open")
    assert [r.number for r in records] == [1, 3]
    first = records[0]
    assert first.repository == "repo"
    assert first.author == "dependabot[bot]"
    assert first.dependency == "lodash"
    assert first.current_version == "4.17.20"
    assert first.proposed_version == "4.17.21"
    assert first.state is PullRequestState.OPEN
    assert first.id == 900_001
    assert first.url == "https://github.com/test-owner/repo/pull/1"
    assert first.created_at == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert first.commits == 1
    assert first.changed_files == 2
    assert first.has_conflicts is False
    client.close.assert_called_once()


@pytest.mark.parametrize("mergeable, expected", [(True, False), (False, True), (None, False)])
def test_conflict_flag_follows_mergeable(make_pull, mergeable, expected):
    client = _create_mock_github_client([make_pull(mergeable=mergeable)])
    (record,) = _poller(client).fetch("repo")
    assert record.has_conflicts is expected


def test_fetch_issues_a_new_token_per_call(make_pull):
    tokens = FakeTokenProvider()
    seen: list[str] = []
    client = _create_mock_github_client([make_pull()])
    poller = _poller(client, tokens=tokens, factory_tokens=seen)

    poller.fetch("repo")
    poller.fetch("repo")

    assert tokens.calls == 2
    assert seen == ["ghs_token_1", "ghs_token_2"]


@pytest.mark.parametrize(
    "exception",
    [
        GithubException(404, {"message": "Not Found"}, None),
        requests.ConnectionError("connection reset"),
    ],
)
def test_fetch_raises_fetch_error_on_listing_failure(exception):
    client = _create_mock_github_client(exception=exception)
    with pytest.raises(FetchError) as exc_info:
        _poller(client).fetch("repo")
    assert exc_info.value.repository == "repo"
    assert exc_info.value.__cause__ is exception
    client.close.assert_called_once()


def test_fetch_or_empty_degrades_listing_failure_to_empty_list():
    client = _create_mock_github_client(exception=GithubException(500, {"message": "boom"}, None))
    assert _poller(client).fetch_or_empty("repo") == []


def test_fetch_or_empty_degrades_token_failure_to_empty_list():
    client = _create_mock_github_client([])
    tokens = FakeTokenProvider(error=TokenExchangeError("HTTP 401"))
    assert _poller(client, tokens=tokens).fetch_or_empty("repo") == []
    client.get_repo.assert_not_called()


def test_fetch_propagates_token_failure():
    tokens = FakeTokenProvider(error=TokenExchangeError("HTTP 401"))
    with pytest.raises(TokenExchangeError):
        _poller(_create_mock_github_client([]), tokens=tokens).fetch("repo")


def test_unreadable_author_skips_only_that_pull(make_pull):
    broken = make_pull(2)
    type(broken).user = PropertyMock(side_effect=GithubException(500, {"message": "boom"}, None))
    client = _create_mock_github_client([make_pull(1), broken, make_pull(3)])

    records = _poller(client).fetch("repo")

    assert [r.number for r in records] == [1, 3]


def test_conversion_failure_raises_for_whole_call(make_pull):
    broken = make_pull(2)
    type(broken).commits = PropertyMock(side_effect=GithubException(502, {"message": "Bad Gateway"}, None))
    client = _create_mock_github_client([make_pull(1), broken])
    poller = _poller(client)

    with pytest.raises(ConversionError) as exc_info:
        poller.fetch("repo")
    assert exc_info.value.number == 2

    # Conversion failures are not absorbed by the degrading variant either
    with pytest.raises(ConversionError):
        poller.fetch_or_empty("repo")


def test_merged_and_closed_states(make_pull):
    pulls = [
        make_pull(1, state="closed", merged_at=datetime(2024, 1, 17, tzinfo=timezone.utc)),
        make_pull(2, state="closed"),
    ]
    records = _poller(_create_mock_github_client(pulls)).fetch("repo")
    assert [r.state for r in records] == [PullRequestState.MERGED, PullRequestState.CLOSED]


def test_missing_owner_raises_fetch_error():
    poller = GitHubPullRequestPoller(token_provider=FakeTokenProvider(), owner=None, github_factory=lambda t: Mock())
    with pytest.raises(FetchError, match="owner"):
        poller.fetch("repo")
    assert poller.fetch_or_empty("repo") == []
