"""FastAPI server: live review channel, review trigger, rules and history."""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from reviewstream.config import Settings, settings as default_settings
from reviewstream.errors import SessionNotFoundError, StoreError
from reviewstream.github import GitHubFileFetcher
from reviewstream.github.repo import parse_repo_full_name
from reviewstream.pipeline import ReviewPipeline, ReviewRequest
from reviewstream.sessions import SessionManager
from reviewstream.store import HistoryStore
from reviewstream.workflows.review import ReviewWorkflow, create_llm

logger = logging.getLogger(__name__)

ENDPOINTS = [
    ("GET", "/review", "EventSource connection for real-time updates"),
    ("POST", "/review", "Start code review process"),
    ("GET", "/rules/{user_id}/{repo_name}", "Load rules for user/repo"),
    ("POST", "/rules", "Save rules for user/repo"),
    ("GET", "/history/{user_id}/{repo_name}", "Get review history"),
    ("DELETE", "/history/{user_id}/{repo_name}/{commit_hash}", "Delete specific review"),
    ("GET", "/health", "Health check"),
]


# ────────────────────────────────────  Bodies  ──────────────────────────────────

class TriggerReviewBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str
    repo: str
    branch: str = "main"
    session_id: str = Field(alias="sessionId")

    @field_validator("repo")
    @classmethod
    def validate_repo(cls, v: str) -> str:
        parse_repo_full_name(v)
        return v.strip()


class SaveRulesBody(BaseModel):
    user_id: str
    repo_name: str
    rules: List[str]


# ────────────────────────────────────  App  ─────────────────────────────────────

def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[HistoryStore] = None,
    fetcher: Optional[GitHubFileFetcher] = None,
    llm=None,
) -> FastAPI:
    """Build the application and everything it owns.

    Args:
        settings: Settings to use; defaults to the environment-loaded singleton.
        store: History store; defaults to SQLite at ``settings.database_path``.
        fetcher: GitHub fetcher; defaults to one built from settings.
        llm: Chat model for reviews; defaults to ChatAnthropic.
    """
    settings = settings or default_settings
    store = store or HistoryStore(settings.database_path)
    fetcher = fetcher or GitHubFileFetcher(
        token=settings.github_token,
        api_url=settings.github_api_url,
        raw_url=settings.github_raw_url,
    )
    workflow = ReviewWorkflow(
        llm if llm is not None else create_llm(settings),
        store,
        max_chars_per_file=settings.max_chars_per_file,
    )
    sessions = SessionManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Backend running at http://{settings.host}:{settings.port}")
        logger.info("Available endpoints:")
        for method, path, description in ENDPOINTS:
            logger.info(f"  {method:<6} {path} - {description}")
        yield
        await fetcher.aclose()
        store.close()

    app = FastAPI(title="reviewstream", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store
    app.state.sessions = sessions
    app.state.pipeline = ReviewPipeline(sessions, fetcher, workflow)

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    """Attach the HTTP routes to ``app``."""

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "active_sessions": request.app.state.sessions.active_count,
        }

    @app.get("/review")
    async def open_review_channel(request: Request):
        """Open the event stream a review reports to."""
        logger.info("EventSource connection established")
        sessions: SessionManager = request.app.state.sessions
        session = sessions.open()

        async def event_stream():
            try:
                async for event in session.channel.events():
                    yield event
            finally:
                sessions.close(session.session_id)

        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.post("/review")
    async def trigger_review(body: TriggerReviewBody, request: Request):
        """Run a review, reporting over the session opened by GET /review."""
        logger.info(
            f"Review requested for {body.repo}:{body.branch} by {body.user_id} "
            f"with session {body.session_id}"
        )
        try:
            request.app.state.sessions.get(body.session_id)
        except SessionNotFoundError as e:
            logger.error(str(e))
            return JSONResponse(status_code=400, content={"success": False, "error": str(e)})

        owner, repo = parse_repo_full_name(body.repo)
        result = await request.app.state.pipeline.run(
            body.session_id,
            ReviewRequest(user_id=body.user_id, owner=owner, repo=repo, branch=body.branch),
        )
        return result.to_response()

    @app.get("/rules/{user_id}/{repo_name}")
    async def get_rules(user_id: str, repo_name: str, request: Request):
        """Load the custom rules for a repository."""
        logger.info(f"Loading rules for {user_id}/{repo_name}")
        try:
            rules = request.app.state.store.get_rules(user_id, repo_name)
        except StoreError as e:
            logger.error(f"Failed to load rules: {e}")
            return JSONResponse(status_code=500, content={"error": "Failed to load rules"})
        logger.info(f"Found {len(rules)} rules for {user_id}/{repo_name}")
        return {"rules": rules}

    @app.post("/rules")
    async def save_rules(body: SaveRulesBody, request: Request):
        """Replace the custom rules for a repository."""
        logger.info(f"Saving {len(body.rules)} rules for {body.user_id}/{body.repo_name}")
        try:
            request.app.state.store.save_rules(body.user_id, body.repo_name, body.rules)
        except StoreError as e:
            logger.error(f"Failed to save rules: {e}")
            return JSONResponse(status_code=500, content={"error": "Failed to save rules"})
        return {"status": "saved"}

    @app.get("/history/{user_id}/{repo_name}")
    async def get_history(
        user_id: str,
        repo_name: str,
        request: Request,
        limit: int = Query(10, ge=1, le=100),
        branch: Optional[str] = None,
    ):
        """List past reviews of a repository, newest first."""
        logger.info(f"Fetching review history for {user_id}/{repo_name}")
        try:
            records = request.app.state.store.list_reviews(
                user_id, repo_name, limit=limit, branch=branch
            )
        except StoreError as e:
            logger.error(f"Failed to fetch history: {e}")
            return JSONResponse(
                status_code=500, content={"error": "Failed to fetch review history"}
            )

        history = [
            {
                "commitHash": record.commit_hash,
                "review": record.review,
                "timestamp": record.timestamp,
                "date": record.display_date,
                "branch": record.branch,
            }
            for record in records
        ]
        logger.info(f"Found {len(history)} review history entries for {user_id}/{repo_name}")
        return {"history": history}

    @app.delete("/history/{user_id}/{repo_name}/{commit_hash}")
    async def delete_history(user_id: str, repo_name: str, commit_hash: str, request: Request):
        """Delete one stored review."""
        logger.info(f"Deleting review history for {user_id}/{repo_name}@{commit_hash}")
        try:
            deleted = request.app.state.store.delete_review(user_id, repo_name, commit_hash)
        except StoreError as e:
            logger.error(f"Failed to delete history: {e}")
            return JSONResponse(
                status_code=500, content={"error": "Failed to delete review history"}
            )

        if not deleted:
            return JSONResponse(status_code=404, content={"error": "Review history not found"})
        logger.info("Successfully deleted review history entry")
        return {"success": True, "message": "Review history deleted"}
