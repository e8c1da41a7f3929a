"""Progress checkpoints tracked for each review session.

A session always carries the same four checkpoints. ``planner`` is completed
when the snapshot is created; the other three move through
pending → in-progress → completed (or error) as the pipeline runs.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CheckpointStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ERROR = "error"


class Agent(str, Enum):
    """Names of the tracked checkpoints, in pipeline order."""

    PLANNER = "planner"
    HISTORY_CHECKER = "history_checker"
    REVIEW_AGENT = "review_agent"
    PUBLISHER = "publisher"


PLAN_STEPS = [
    "📋 Initialize review session",
    "🔍 Check commit history for changes",
    "📁 Analyze repository structure",
    "🔬 Deep code analysis with AI",
    "📊 Generate comprehensive report",
    "💾 Save results to database",
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Checkpoint(_CamelModel):
    agent: Agent
    status: CheckpointStatus = CheckpointStatus.PENDING
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    description: str = ""
    details: Optional[str] = None

    def to_message(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ProgressSnapshot(_CamelModel):
    plan: List[str] = Field(default_factory=lambda: list(PLAN_STEPS))
    current_step: int = 0
    total_steps: int = len(PLAN_STEPS)
    checkpoints: List[Checkpoint] = Field(default_factory=list)

    def find(self, agent: str) -> Optional[Checkpoint]:
        for checkpoint in self.checkpoints:
            if checkpoint.agent.value == agent:
                return checkpoint
        return None

    def transition(
        self, agent: str, status: CheckpointStatus, details: Optional[str] = None
    ) -> Optional[Checkpoint]:
        """Move a checkpoint to ``status``.

        Entering in-progress stamps the start time and advances
        ``current_step``; entering completed stamps the end time. The planner
        checkpoint is fixed and never transitions.

        Returns:
            The updated checkpoint, or None if nothing changed.
        """
        checkpoint = self.find(agent)
        if checkpoint is None or checkpoint.agent is Agent.PLANNER:
            return None

        status = CheckpointStatus(status)
        checkpoint.status = status
        if status is CheckpointStatus.IN_PROGRESS:
            checkpoint.start_time = _now()
            self.current_step += 1
        elif status is CheckpointStatus.COMPLETED:
            checkpoint.end_time = _now()
        if details:
            checkpoint.details = details
        return checkpoint

    def active_checkpoint(self) -> Optional[Checkpoint]:
        """The most recently started checkpoint still in progress.

        Falls back to the first pending checkpoint when nothing is running.
        """
        for checkpoint in reversed(self.checkpoints):
            if checkpoint.status is CheckpointStatus.IN_PROGRESS:
                return checkpoint
        for checkpoint in self.checkpoints:
            if checkpoint.status is CheckpointStatus.PENDING:
                return checkpoint
        return None

    def to_message(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def create_initial_progress() -> ProgressSnapshot:
    """Build the snapshot a new session starts with."""
    return ProgressSnapshot(
        checkpoints=[
            Checkpoint(
                agent=Agent.PLANNER,
                status=CheckpointStatus.COMPLETED,
                description="Review plan created",
                details=f"Generated analysis roadmap with {len(PLAN_STEPS)} key stages",
            ),
            Checkpoint(
                agent=Agent.HISTORY_CHECKER,
                description="Checking for repository changes",
                details="Comparing with previous review commits",
            ),
            Checkpoint(
                agent=Agent.REVIEW_AGENT,
                description="AI code analysis in progress",
                details="Deep analysis of code quality, bugs, and architecture",
            ),
            Checkpoint(
                agent=Agent.PUBLISHER,
                description="Finalizing and saving results",
                details="Storing review results and generating final report",
            ),
        ]
    )
