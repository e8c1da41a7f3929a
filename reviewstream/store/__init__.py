"""Persisted rules and review history."""

from .history import HistoryStore, make_repo_key
from .models import ReviewRecord

__all__ = ["HistoryStore", "ReviewRecord", "make_repo_key"]
