"""tests/conftest.py

Common fixtures for the entire test suite.
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from typer.testing import CliRunner


class FakeClock:
    """Deterministic ClockPort; advance() moves time forward."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class FakeTimer:
    """Monotonic-style float timer for cache TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value


@pytest.fixture(scope="session")
def runner() -> CliRunner:
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep DEPENDABOT_PRS_* variables from the developer's shell out of tests."""
    import os

    for name in list(os.environ):
        if name.upper().startswith("DEPENDABOT_PRS_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def pkcs1_pem(rsa_private_key) -> str:
    """PEM in the 'BEGIN RSA PRIVATE KEY' form GitHub hands out for App keys."""
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def pkcs8_pem(rsa_private_key) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def make_pull():
    """Factory for PyGithub-like PullRequest stand-ins."""

    def _make(
        number: int = 1,
        title: str = "Bump lodash from 4.17.20 to 4.17.21",
        login: str = "dependabot[bot]",
        state: str = "open",
        merged_at=None,
        mergeable: bool | None = True,
        commits: int = 1,
        changed_files: int = 2,
    ) -> Mock:
        pr = Mock()
        pr.number = number
        pr.id = 900_000 + number
        pr.title = title
        pr.user.login = login
        pr.html_url = f"https://github.com/test-owner/repo/pull/{number}"
        pr.state = state
        pr.merged_at = merged_at
        pr.created_at = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        pr.updated_at = datetime(2024, 1, 16, 14, 20, tzinfo=timezone.utc)
        pr.body = "Bumps lodash."
        pr.commits = commits
        pr.changed_files = changed_files
        pr.mergeable = mergeable
        return pr

    return _make


@pytest.fixture
def mock_httpx_client(monkeypatch):
    """
    Replaces httpx.Client with a mock that uses a MockTransport.

    Returns a handler function that tests can use to register mock responses.
    """
    responses = {}
    calls_log: list[httpx.Request] = []
    original_client = httpx.Client

    def add_response(
        url: str,
        method: str = "GET",
        status_code: int = 200,
        json_payload: dict | list | None = None,
        content: bytes | None = None,
    ):
        """Register a mock response for a given URL and method."""
        if json_payload is not None:
            body = json.dumps(json_payload).encode("utf-8")
        else:
            body = content if content is not None else b""
        responses[(method.upper(), url)] = (status_code, body)

    def mock_transport(request: httpx.Request) -> httpx.Response:
        """The transport logic that returns registered responses or a 404."""
        calls_log.append(request)
        key = (request.method, str(request.url))
        if key in responses:
            status, body = responses[key]
            headers = {"Content-Length": str(len(body)), "Content-Type": "application/json"}
            return httpx.Response(status, content=body, headers=headers)

        return httpx.Response(404, text=f"Mock URL not found: {request.method} {request.url}")

    def patched_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(mock_transport)
        return original_client(*args, **kwargs)

    monkeypatch.setattr(httpx, "Client", patched_client)
    add_response.calls = calls_log  # type: ignore[attr-defined]
    return add_response
