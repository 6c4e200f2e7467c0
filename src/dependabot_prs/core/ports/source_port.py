from __future__ import annotations

from typing import Protocol, Sequence

from ..domain.models import PullRequestRecord


class PullRequestSourcePort(Protocol):
    def fetch(self, repository: str) -> Sequence[PullRequestRecord]:
        """Return open Dependabot pull requests for repository.

        Upstream failures propagate (FetchError, TokenExchangeError, ...).
        """
        ...

    def fetch_or_empty(self, repository: str) -> Sequence[PullRequestRecord]:
        """Like fetch(), but listing and token failures degrade to an empty result."""
        ...
