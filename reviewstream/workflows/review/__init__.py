"""Branch review workflow."""

from .graph import build_review_graph
from .state import SKIP_MESSAGE, ReviewState, ReviewStatus
from .workflow import ReviewWorkflow, create_llm

__all__ = [
    "SKIP_MESSAGE",
    "ReviewState",
    "ReviewStatus",
    "ReviewWorkflow",
    "build_review_graph",
    "create_llm",
]
