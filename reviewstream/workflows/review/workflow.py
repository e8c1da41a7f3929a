"""Branch review workflow implementation."""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from uuid import uuid4

from langchain_anthropic import ChatAnthropic

from reviewstream.config import Settings
from reviewstream.store import HistoryStore

from .graph import build_review_graph
from .state import ReviewState, ReviewStatus

logger = logging.getLogger(__name__)


def create_llm(settings: Settings):
    """Create the chat model used for reviews.

    The Anthropic API key is read from ``ANTHROPIC_API_KEY``.
    """
    return ChatAnthropic(model=settings.llm_model, temperature=settings.llm_temperature)


class ReviewWorkflow:
    """Dedup-aware review of a branch's files.

    Wraps the compiled graph so callers can either stream per-node updates
    (the server) or run to completion (the CLI).
    """

    def __init__(
        self,
        llm,
        history: HistoryStore,
        *,
        max_chars_per_file: int = 8000,
        checkpointer: Optional[object] = None,
    ):
        self.graph = build_review_graph(
            llm,
            history,
            max_chars_per_file=max_chars_per_file,
            checkpointer=checkpointer,
        )

    def create_initial_state(
        self,
        user_id: str,
        owner: str,
        repo: str,
        branch: str,
        files: List[dict],
        commit_hash: str,
    ) -> ReviewState:
        """Create the state a run starts from."""
        return ReviewState(
            user_id=user_id,
            owner=owner,
            repo=repo,
            branch=branch,
            files=files,
            commit_hash=commit_hash,
            rules=[],
            review="",
            status=ReviewStatus.PENDING,
            logs=[],
        )

    async def astream(self, state: ReviewState) -> AsyncIterator[Tuple[str, Dict[str, Any]]]:
        """Yield ``(node_name, update)`` as each node finishes."""
        config = {"configurable": {"thread_id": f"review-{uuid4()}"}}
        async for event in self.graph.astream(state, config, stream_mode="updates"):
            for node, update in event.items():
                yield node, update or {}

    async def run(self, state: ReviewState) -> Dict[str, Any]:
        """Execute the workflow and return the final state."""
        logger.info(
            f"Starting review for {state['owner']}/{state['repo']}@{state['branch']}"
        )

        # Accumulate state from partial updates
        accumulated_state = dict(state)
        async for _, update in self.astream(state):
            for key, val in update.items():
                if key == "logs":
                    accumulated_state["logs"] = accumulated_state["logs"] + list(val)
                elif val is not None:
                    accumulated_state[key] = val
        return accumulated_state

    def render_mermaid(self) -> str:
        """Return the Mermaid source of the compiled graph."""
        return self.graph.get_graph().draw_mermaid()
