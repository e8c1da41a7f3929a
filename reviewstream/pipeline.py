"""The work behind a triggering request.

Fetches the branch, runs the review workflow and reports every step over the
session's event channel. Each run ends with exactly one terminal outcome:
``done`` on success (or skip), ``error`` on failure; either way the session is
closed.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from reviewstream.github import FetchNarration, FileBatch, GitHubFileFetcher
from reviewstream.sessions import Agent, CheckpointStatus, SessionManager
from reviewstream.sessions.protocol import done_message, log_message, review_message
from reviewstream.workflows.review import ReviewStatus, ReviewWorkflow

logger = logging.getLogger(__name__)


@dataclass
class ReviewRequest:
    user_id: str
    owner: str
    repo: str
    branch: str = "main"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass
class TriggerResult:
    success: bool
    error: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            body["error"] = self.error
        return body


class ReviewPipeline:
    """Runs one review for an open session."""

    def __init__(
        self,
        sessions: SessionManager,
        fetcher: GitHubFileFetcher,
        workflow: ReviewWorkflow,
    ):
        self.sessions = sessions
        self.fetcher = fetcher
        self.workflow = workflow

    def _log(self, session_id: str, log: str) -> None:
        logger.info(f"[LOG] {log}")
        self.sessions.send(session_id, log_message(log))

    async def _fetch(self, session_id: str, request: ReviewRequest) -> FileBatch:
        batch: Optional[FileBatch] = None
        async for item in self.fetcher.fetch_files(request.full_name, request.branch):
            if isinstance(item, FetchNarration):
                self._log(session_id, item.message)
            else:
                batch = item
        if batch is None:
            raise RuntimeError(f"No files returned for {request.full_name}@{request.branch}")
        return batch

    async def run(self, session_id: str, request: ReviewRequest) -> TriggerResult:
        """Run the review, streaming progress to ``session_id``.

        Failures are reported over the channel and in the returned result;
        they are not raised.
        """
        logger.info(f"Starting review process for {request.full_name}:{request.branch}")
        self.sessions.update_checkpoint(
            session_id,
            Agent.HISTORY_CHECKER,
            CheckpointStatus.IN_PROGRESS,
            "Fetching repository information...",
        )

        try:
            batch = await self._fetch(session_id, request)
        except Exception as e:
            logger.error(f"Failed to fetch files: {e}", exc_info=True)
            self.sessions.fail(session_id, str(e))
            return TriggerResult(success=False, error=str(e))

        state = self.workflow.create_initial_state(
            user_id=request.user_id,
            owner=request.owner,
            repo=request.repo,
            branch=request.branch,
            files=batch.files,
            commit_hash=batch.commit_sha,
        )

        try:
            async for node, update in self.workflow.astream(state):
                self._handle_update(session_id, node, update, batch.files)
        except Exception as e:
            logger.error(f"Review failed: {e}", exc_info=True)
            self.sessions.fail(session_id, str(e))
            return TriggerResult(success=False, error=str(e))

        logger.info("Review process completed successfully")
        self.sessions.send(session_id, done_message())
        self.sessions.close(session_id)
        return TriggerResult(success=True)

    def _handle_update(
        self, session_id: str, node: str, update: Dict[str, Any], files: List[dict]
    ) -> None:
        for log in update.get("logs", []):
            self._log(session_id, log)

        if node == Agent.HISTORY_CHECKER.value:
            if update.get("status") == ReviewStatus.SKIPPED:
                self.sessions.update_checkpoint(
                    session_id, Agent.HISTORY_CHECKER, CheckpointStatus.COMPLETED,
                    "No changes since last review",
                )
                for agent in (Agent.REVIEW_AGENT, Agent.PUBLISHER):
                    self.sessions.update_checkpoint(
                        session_id, agent, CheckpointStatus.COMPLETED,
                        "Skipped - no new commits",
                    )
                self.sessions.send(session_id, review_message(update["review"]))
            else:
                self.sessions.update_checkpoint(
                    session_id, Agent.HISTORY_CHECKER, CheckpointStatus.COMPLETED,
                    f"Found {len(files)} files to review",
                )
                self.sessions.update_checkpoint(
                    session_id, Agent.REVIEW_AGENT, CheckpointStatus.IN_PROGRESS,
                    "AI analyzing code quality and architecture...",
                )

        elif node == Agent.REVIEW_AGENT.value:
            logger.info("Review completed")
            self.sessions.update_checkpoint(
                session_id, Agent.REVIEW_AGENT, CheckpointStatus.COMPLETED,
                "Analysis complete - generating final report",
            )
            self.sessions.update_checkpoint(
                session_id, Agent.PUBLISHER, CheckpointStatus.IN_PROGRESS, "Saving results..."
            )
            self.sessions.send(session_id, review_message(update["review"]))

        elif node == Agent.PUBLISHER.value:
            self.sessions.update_checkpoint(
                session_id, Agent.PUBLISHER, CheckpointStatus.COMPLETED,
                "Review saved successfully",
            )
