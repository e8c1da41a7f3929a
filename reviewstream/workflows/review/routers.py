"""Routing functions for the review workflow graph."""

import logging

from langgraph.graph import END

from .state import ReviewState, ReviewStatus

logger = logging.getLogger(__name__)


def route_after_history_check(state: ReviewState) -> str:
    """Skip straight to END when the branch tip was already reviewed.

    Args:
        state: Current workflow state.

    Returns:
        'review_agent' or END.
    """
    if state.get("status") == ReviewStatus.SKIPPED:
        logger.info("Commit already reviewed; routing to END")
        return END

    logger.info("New commits found; routing to review_agent")
    return "review_agent"
