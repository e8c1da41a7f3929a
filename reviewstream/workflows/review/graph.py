"""LangGraph definition for the branch review workflow."""

from functools import partial
from typing import Optional

from langgraph.graph import END, StateGraph

from reviewstream.store import HistoryStore

from .nodes import history_checker, publisher, review_agent
from .routers import route_after_history_check
from .state import ReviewState


def build_review_graph(
    llm,
    history: HistoryStore,
    *,
    max_chars_per_file: int = 8000,
    checkpointer: Optional[object] = None,
):
    """Build the branch review workflow graph.

    This function constructs a LangGraph StateGraph that:
    1. Checks the branch tip against the last reviewed commit
    2. Reviews the fetched files with the chat model (new commits only)
    3. Saves the review as the latest for the branch

    Args:
        llm: LangChain chat model used by review_agent.
        history: Store for rules and review history.
        max_chars_per_file: Per-file content ceiling in the prompt.
        checkpointer: Optional checkpointer; none is used by default.

    Returns:
        Compiled StateGraph ready for invocation.
    """
    graph_builder = StateGraph(ReviewState)

    # ── Nodes ──
    graph_builder.add_node("history_checker", partial(history_checker, history))
    graph_builder.add_node(
        "review_agent", partial(review_agent, llm, history, max_chars_per_file)
    )
    graph_builder.add_node("publisher", partial(publisher, history))

    # ── Edges ──
    graph_builder.set_entry_point("history_checker")
    graph_builder.add_conditional_edges(
        "history_checker",
        route_after_history_check,
        {
            "review_agent": "review_agent",
            END: END,
        },
    )
    graph_builder.add_edge("review_agent", "publisher")
    graph_builder.add_edge("publisher", END)

    # ── Compile ──
    return graph_builder.compile(checkpointer=checkpointer)
