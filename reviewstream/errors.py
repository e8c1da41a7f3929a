"""Exceptions raised by reviewstream."""


class ReviewStreamError(Exception):
    """Base class for reviewstream errors."""


class SessionNotFoundError(ReviewStreamError):
    """Raised when a triggering request names an unknown or closed session."""

    def __init__(self, session_id: str):
        super().__init__(f"No active EventSource connection found for session: {session_id}")
        self.session_id = session_id


class BranchNotFoundError(ReviewStreamError):
    """Raised when the hosting API reports no such branch."""

    def __init__(self, repo: str, branch: str):
        super().__init__(f"Branch not found: {repo}@{branch}")
        self.repo = repo
        self.branch = branch


class StoreError(ReviewStreamError):
    """Raised when the history store fails to read or write."""
