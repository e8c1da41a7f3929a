"""Nodes of the branch review workflow.

Each node receives the current state and returns a partial update; the store
and chat model are bound in with ``functools.partial`` when the graph is built.
"""

import logging

from langchain_core.messages import HumanMessage

from reviewstream.store import HistoryStore

from .prompts import build_review_prompt
from .state import SKIP_MESSAGE, ReviewState, ReviewStatus

logger = logging.getLogger(__name__)


def history_checker(history: HistoryStore, state: ReviewState) -> dict:
    """Skip the run when the branch tip matches the last reviewed commit.

    Args:
        history: Store holding the last review of each branch.
        state: Current workflow state.

    Returns:
        Skip update with the sentinel review text, or a narration-only update.
    """
    last = history.get_last_review(
        state["user_id"], state["owner"], state["repo"], state["branch"]
    )
    if last is not None and last.commit_hash == state["commit_hash"]:
        logger.info(
            f"{state['owner']}/{state['repo']}@{state['branch']} already reviewed "
            f"at {state['commit_hash'][:7]}"
        )
        return {
            "review": SKIP_MESSAGE,
            "status": ReviewStatus.SKIPPED,
            "logs": ["History: No changes - skipping."],
        }

    previous = last.commit_hash[:7] if last else "none"
    return {"logs": [f"History: changes found since last review ({previous})."]}


async def review_agent(
    llm, history: HistoryStore, max_chars_per_file: int, state: ReviewState
) -> dict:
    """Review the fetched files with the chat model.

    Errors raised by the model propagate to the caller.

    Args:
        llm: LangChain chat model.
        history: Store holding the custom rules.
        max_chars_per_file: Per-file content ceiling in the prompt.
        state: Current workflow state.

    Returns:
        Update carrying the rules used and the raw review text.
    """
    rules = history.get_rules(state["user_id"], state["repo"])
    prompt = HumanMessage(
        content=build_review_prompt(
            owner=state["owner"],
            repo=state["repo"],
            branch=state["branch"],
            rules=rules,
            files=state["files"],
            max_chars_per_file=max_chars_per_file,
        )
    )

    logger.info(f"Sending review prompt for {len(state['files'])} files to LLM")
    response = await llm.ainvoke([prompt])
    logger.info("LLM response received")

    content = response.content
    if not isinstance(content, str):
        # Content blocks: keep the text parts.
        content = "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )

    return {
        "rules": rules,
        "review": content,
        "status": ReviewStatus.REVIEWED,
        "logs": ["Detailed code review completed."],
    }


def publisher(history: HistoryStore, state: ReviewState) -> dict:
    """Record the review as the latest for the branch."""
    history.save_review(
        user_id=state["user_id"],
        owner=state["owner"],
        repo=state["repo"],
        branch=state["branch"],
        commit_hash=state["commit_hash"],
        review=state["review"],
    )
    logger.info(f"Saved review of {state['owner']}/{state['repo']}@{state['branch']}")
    return {"status": ReviewStatus.PUBLISHED, "logs": ["Saved to history."]}
