from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Optional

import httpx

from ..config.tokens import fingerprint_token
from ..config.urls import DEFAULT_API_URL, get_installation_token_url
from ..core.domain.exceptions import TokenExchangeError
from ..core.domain.models import AccessToken, AppCredential
from .credentials import CredentialMinter
from .http_client import HttpClient

logger = logging.getLogger(__name__)


def _parse_expiry(value: object) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Ignoring unparseable token expiry: %s", value)
        return None


class InstallationTokenExchanger:
    """Trades a signed app credential for an installation access token.

    Every issue_token() call mints a new credential and requests a new token;
    nothing is reused between calls.
    """

    def __init__(
        self,
        minter: CredentialMinter,
        http_client: HttpClient,
        installation_id: Optional[str],
        api_url: str = DEFAULT_API_URL,
    ) -> None:
        self._minter = minter
        self._http = http_client
        self._installation_id = installation_id
        self._api_url = api_url

    def issue_token(self) -> AccessToken:
        return self.exchange(self._minter.mint())

    def exchange(self, credential: AppCredential) -> AccessToken:
        if not self._installation_id:
            raise TokenExchangeError("No GitHub App installation ID configured")

        url = get_installation_token_url(str(self._installation_id), self._api_url)
        logger.debug("Requesting installation token for installation %s", self._installation_id)
        try:
            data = self._http.post_json(url, headers={"Authorization": f"Bearer {credential.token}"})
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("Installation token request rejected with HTTP %s for installation %s", status, self._installation_id)
            raise TokenExchangeError(f"GitHub rejected installation token request (HTTP {status})") from e
        except (httpx.HTTPError, json.JSONDecodeError, TypeError) as e:
            logger.warning("Installation token request failed for installation %s: %s", self._installation_id, type(e).__name__)
            raise TokenExchangeError("Failed to obtain installation token") from e

        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise TokenExchangeError("Installation token response did not contain a token")

        access_token = AccessToken(token=token, expires_at=_parse_expiry(data.get("expires_at")))
        logger.debug("Obtained installation token %s (expires at %s)", fingerprint_token(token), access_token.expires_at)
        return access_token
