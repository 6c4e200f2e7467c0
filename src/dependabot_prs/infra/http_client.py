from __future__ import annotations

from typing import Mapping, Optional

import httpx


GITHUB_API_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
    "User-Agent": "dependabot-prs",
}


def _json_object(resp: httpx.Response) -> dict:
    resp.raise_for_status()
    data = resp.json()
    if not isinstance(data, dict):
        raise TypeError("HttpClient invariant violated: expected JSON object")
    return data


class HttpClient:
    """Thin httpx wrapper for GitHub REST calls that return a JSON object.

    Per-request headers (e.g. the bearer credential) are merged over the
    GitHub defaults and never stored on the client.
    """

    def __init__(
        self,
        base_headers: Optional[Mapping[str, str]] = None,
        timeout_seconds: float = 20.0,
    ) -> None:
        headers = {**GITHUB_API_HEADERS, **(base_headers or {})}
        self._client = httpx.Client(
            timeout=timeout_seconds,
            headers=headers,
            follow_redirects=True,
            max_redirects=10,
        )

    def post_json(self, url: str, payload: dict | None = None, headers: Optional[Mapping[str, str]] = None) -> dict:
        return _json_object(self._client.post(url, json=payload or {}, headers=dict(headers or {})))

    def close(self) -> None:
        self._client.close()
