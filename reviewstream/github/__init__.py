"""GitHub access for reviewstream."""

from .fetcher import (
    FetchEvent,
    FetchNarration,
    FileBatch,
    GitHubFileFetcher,
    UNAVAILABLE_PLACEHOLDER,
    is_code_file,
)

__all__ = [
    "FetchEvent",
    "FetchNarration",
    "FileBatch",
    "GitHubFileFetcher",
    "UNAVAILABLE_PLACEHOLDER",
    "is_code_file",
]
