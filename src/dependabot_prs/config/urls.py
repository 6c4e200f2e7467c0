from __future__ import annotations


DEFAULT_API_URL = "https://api.github.com"


def get_installation_token_url(installation_id: str, api_url: str = DEFAULT_API_URL) -> str:
    return f"{api_url.rstrip('/')}/app/installations/{installation_id}/access_tokens"
