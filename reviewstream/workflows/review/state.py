"""State definitions for the branch review workflow."""

import operator
from enum import Enum
from typing import Annotated

from typing_extensions import TypedDict

SKIP_MESSAGE = "SKIPPED: No changes since last review."


class ReviewStatus(str, Enum):
    """Where a run stands; the only value the graph branches on."""

    PENDING = "pending"
    SKIPPED = "skipped"
    REVIEWED = "reviewed"
    PUBLISHED = "published"


class ReviewState(TypedDict):
    """State for the branch review workflow.

    Nodes return partial updates; ``logs`` is append-only.
    """

    # Request details
    user_id: str
    owner: str
    repo: str
    branch: str

    # Fetched branch contents
    files: list[dict]
    commit_hash: str

    # Review details
    rules: list[str]
    review: str
    status: ReviewStatus

    # Narration accumulator (append-only)
    logs: Annotated[list[str], operator.add]
