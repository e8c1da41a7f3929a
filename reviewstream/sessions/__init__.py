"""Review sessions: event channels, progress checkpoints and message framing."""

from .manager import ReviewSession, SessionChannel, SessionManager
from .progress import Agent, Checkpoint, CheckpointStatus, ProgressSnapshot, create_initial_progress

__all__ = [
    "Agent",
    "Checkpoint",
    "CheckpointStatus",
    "ProgressSnapshot",
    "ReviewSession",
    "SessionChannel",
    "SessionManager",
    "create_initial_progress",
]
