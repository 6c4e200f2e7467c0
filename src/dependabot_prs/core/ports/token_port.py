from __future__ import annotations

from typing import Protocol

from ..domain.models import AccessToken


class AccessTokenProviderPort(Protocol):
    def issue_token(self) -> AccessToken:
        """Return a freshly issued installation access token.

        Raises TokenExchangeError (or CredentialError) when no token can be obtained.
        """
        ...
