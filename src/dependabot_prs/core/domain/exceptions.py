from __future__ import annotations

from typing import Optional


class DependabotPRError(Exception):
    """Base exception for all dependabot_prs errors."""
    pass


class CredentialError(DependabotPRError):
    """Raised when the App private key is missing, unreadable or not a valid RSA key."""
    pass


class TokenExchangeError(DependabotPRError):
    """Raised when GitHub refuses or fails to issue an installation access token."""
    pass


class FetchError(DependabotPRError):
    """Raised when listing pull requests for a repository fails."""
    def __init__(self, repository: str, message: str = "Failed to list pull requests.") -> None:
        self.repository = repository
        super().__init__(f"{message} Repository: {repository}")


class ConversionError(DependabotPRError):
    """Raised when a pull request's metadata cannot be turned into a PullRequestRecord."""
    def __init__(self, repository: str, number: Optional[int] = None, message: str = "Failed to convert pull request.") -> None:
        self.repository = repository
        self.number = number
        where = f"{repository}#{number}" if number is not None else repository
        super().__init__(f"{message} Pull request: {where}")


class RefreshError(DependabotPRError):
    """Raised inside a refresh cycle when it cannot complete; never escapes the orchestrator."""
    pass


class RefreshExhaustedError(RefreshError):
    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Failed to refresh repositories after {attempts} attempts")


class RefreshInterruptedError(RefreshError):
    """Raised when the wait between refresh attempts is interrupted."""
    pass
