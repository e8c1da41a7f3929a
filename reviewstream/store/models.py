"""Review history data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class ReviewRecord:
    """The last completed review of one branch, for one user.

    There is at most one record per (user_id, repo_key); a newer review of the
    same branch replaces it.
    """

    user_id: str
    owner: str
    repo_name: str
    branch: str
    commit_hash: str
    review: str
    timestamp: str  # ISO-8601 UTC timestamp

    @property
    def repo_key(self) -> str:
        return f"{self.owner}/{self.repo_name}@{self.branch}"

    @property
    def display_date(self) -> str:
        """Human-readable form of the timestamp."""
        try:
            return datetime.fromisoformat(self.timestamp).strftime("%Y-%m-%d %H:%M:%S")
        except ValueError:
            return self.timestamp
