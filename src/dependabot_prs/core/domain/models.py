from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .enums import PullRequestState


CREDENTIAL_VALIDITY = timedelta(minutes=10)


@dataclass(frozen=True)
class AppCredential:
    """Signed, time-boxed assertion identifying the GitHub App (a JWT)."""

    issuer: str
    issued_at: datetime
    expires_at: datetime
    token: str

    @property
    def signature(self) -> str:
        return self.token.rsplit(".", 1)[-1]

    def __repr__(self) -> str:
        return f"AppCredential(issuer={self.issuer!r}, issued_at={self.issued_at!r}, expires_at={self.expires_at!r})"


@dataclass(frozen=True)
class AccessToken:
    """Installation-scoped bearer token."""

    token: str
    expires_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"AccessToken(expires_at={self.expires_at!r})"


@dataclass(frozen=True)
class PullRequestRecord:
    number: int
    id: int
    title: str
    author: str
    repository: str
    url: Optional[str] = None
    state: PullRequestState = PullRequestState.OPEN
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    body: Optional[str] = None
    commits: Optional[int] = None
    changed_files: Optional[int] = None
    has_conflicts: bool = False

    # Parsed from the title; None when the title does not follow the bump format
    dependency: Optional[str] = None
    current_version: Optional[str] = None
    proposed_version: Optional[str] = None

    def as_dict(self) -> dict[str, object]:
        return {
            "number": self.number,
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "repository": self.repository,
            "url": self.url,
            "state": self.state.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "dependency": self.dependency,
            "current_version": self.current_version,
            "proposed_version": self.proposed_version,
            "body": self.body,
            "commits": self.commits,
            "changed_files": self.changed_files,
            "has_conflicts": self.has_conflicts,
        }


@dataclass(frozen=True)
class RefreshExecutionRecord:
    execution_count: int = 0
    last_execution_time: Optional[datetime] = None
    last_execution_duration: Optional[timedelta] = None

    @property
    def last_execution_duration_ms(self) -> Optional[int]:
        if self.last_execution_duration is None:
            return None
        return int(self.last_execution_duration.total_seconds() * 1000)
