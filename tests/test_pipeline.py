"""End-to-end tests of a triggered review streaming over a session."""

import pytest

from conftest import REVIEW_JSON, WIDGET_FILES, make_fetcher, make_llm
from reviewstream.pipeline import ReviewPipeline, ReviewRequest
from reviewstream.sessions import SessionManager
from reviewstream.workflows.review import SKIP_MESSAGE, ReviewWorkflow

REQUEST = ReviewRequest(user_id="alice", owner="acme", repo="widgets", branch="main")


def _pipeline(store, llm, files=WIDGET_FILES, **fetch_kwargs):
    sessions = SessionManager()
    pipeline = ReviewPipeline(sessions, make_fetcher(files, **fetch_kwargs), ReviewWorkflow(llm, store))
    return sessions, pipeline


def _types(messages):
    return [m["type"] for m in messages]


def _checkpoint_events(messages):
    return [
        (m["checkpoint"]["agent"], m["checkpoint"]["status"])
        for m in messages
        if m["type"] == "progress"
    ]


@pytest.mark.asyncio
async def test_new_commit_streams_review_and_done(store):
    store.save_rules("alice", "widgets", ["no console logging"])
    llm = make_llm()
    sessions, pipeline = _pipeline(store, llm)
    session = sessions.open()

    result = await pipeline.run(session.session_id, REQUEST)

    assert result.success is True
    assert result.to_response() == {"success": True}
    llm.ainvoke.assert_awaited_once()

    messages = session.channel.pending()
    types = _types(messages)
    assert types[0] == "init"
    assert types.count("review") == 1
    assert types.count("done") == 1
    assert types[-1] == "done"
    assert "error" not in types
    assert [m["review"] for m in messages if m["type"] == "review"] == [REVIEW_JSON]

    logs = [m["log"] for m in messages if m["type"] == "log"]
    assert logs[0] == "Getting branch SHA..."
    assert "Fetched 3 files." in logs
    assert logs[-1] == "Saved to history."
    assert logs.index("Fetched 3 files.") < logs.index("Detailed code review completed.")

    assert _checkpoint_events(messages) == [
        ("history_checker", "in-progress"),
        ("history_checker", "completed"),
        ("review_agent", "in-progress"),
        ("review_agent", "completed"),
        ("publisher", "in-progress"),
        ("publisher", "completed"),
    ]
    assert session.progress.current_step == 3

    record = store.get_last_review("alice", "acme", "widgets", "main")
    assert record.commit_hash == "abc123"
    assert session.channel.closed
    assert sessions.active_count == 0


@pytest.mark.asyncio
async def test_same_commit_delivers_skip_text_without_inference(store):
    store.save_review("alice", "acme", "widgets", "main", "abc123", "earlier review", "2026-01-01T00:00:00+00:00")
    llm = make_llm()
    sessions, pipeline = _pipeline(store, llm)
    session = sessions.open()

    result = await pipeline.run(session.session_id, REQUEST)

    assert result.success is True
    llm.ainvoke.assert_not_awaited()

    messages = session.channel.pending()
    assert [m["review"] for m in messages if m["type"] == "review"] == [SKIP_MESSAGE]
    assert _types(messages)[-1] == "done"
    assert _checkpoint_events(messages) == [
        ("history_checker", "in-progress"),
        ("history_checker", "completed"),
        ("review_agent", "completed"),
        ("publisher", "completed"),
    ]
    assert session.progress.current_step == 1

    record = store.get_last_review("alice", "acme", "widgets", "main")
    assert record.review == "earlier review"
    assert record.timestamp == "2026-01-01T00:00:00+00:00"


@pytest.mark.asyncio
async def test_missing_branch_fails_before_graph(store):
    llm = make_llm()
    sessions, pipeline = _pipeline(store, llm)
    session = sessions.open()

    result = await pipeline.run(
        session.session_id, ReviewRequest(user_id="alice", owner="acme", repo="widgets", branch="nope")
    )

    assert result.success is False
    assert "Branch not found" in result.error
    llm.ainvoke.assert_not_awaited()

    messages = session.channel.pending()
    assert _types(messages)[-1] == "error"
    assert "done" not in _types(messages)
    assert ("history_checker", "error") in _checkpoint_events(messages)
    assert session.channel.closed
    assert sessions.active_count == 0


@pytest.mark.asyncio
async def test_inference_failure_is_attributed_to_review_agent(store):
    llm = make_llm()
    llm.ainvoke.side_effect = RuntimeError("model unavailable")
    sessions, pipeline = _pipeline(store, llm)
    session = sessions.open()

    result = await pipeline.run(session.session_id, REQUEST)

    assert result.to_response() == {"success": False, "error": "model unavailable"}
    messages = session.channel.pending()
    assert messages[-1] == {"type": "error", "error": "model unavailable"}
    assert _checkpoint_events(messages)[-1] == ("review_agent", "error")
    assert store.get_last_review("alice", "acme", "widgets", "main") is None
    assert sessions.active_count == 0


@pytest.mark.asyncio
async def test_disconnect_mid_run_still_publishes(store):
    llm = make_llm()
    sessions, pipeline = _pipeline(store, llm)
    session = sessions.open()

    async def disconnect_then_review(messages):
        sessions.close(session.session_id)
        return await make_llm().ainvoke(messages)

    llm.ainvoke.side_effect = disconnect_then_review

    result = await pipeline.run(session.session_id, REQUEST)

    assert result.success is True
    assert store.get_last_review("alice", "acme", "widgets", "main").commit_hash == "abc123"
    assert "done" not in _types(session.channel.pending())
