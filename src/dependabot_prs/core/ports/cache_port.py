from __future__ import annotations

from typing import Protocol, Sequence

from ..domain.models import PullRequestRecord


class PullRequestCachePort(Protocol):
    def get(self, key: str) -> tuple[PullRequestRecord, ...] | None:
        """Return cached records for key, or None if missing/expired."""

    def put(self, key: str, records: Sequence[PullRequestRecord]) -> None:
        """Insert or replace the records for key, stamping the write time."""

    def evict_all(self) -> None:
        """Remove every entry unconditionally."""

    def __len__(self) -> int:
        ...
