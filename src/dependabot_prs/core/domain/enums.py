from __future__ import annotations

from enum import Enum
from typing import Optional


class PullRequestState(Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    MERGED = "MERGED"

    @classmethod
    def from_github(cls, state: Optional[str], merged_at: object = None) -> "PullRequestState":
        """Map GitHub's lowercase ``state`` plus ``merged_at`` onto the three lifecycle states.

        GitHub reports merged pull requests as ``closed``; a non-empty ``merged_at``
        distinguishes them.
        """
        if merged_at:
            return cls.MERGED
        if state and state.strip().upper() == "CLOSED":
            return cls.CLOSED
        return cls.OPEN
