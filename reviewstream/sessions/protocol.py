"""Messages pushed over a session's event stream, and their SSE framing."""

import json
from enum import Enum

from .progress import Checkpoint, ProgressSnapshot


class MessageType(str, Enum):
    INIT = "init"
    PROGRESS = "progress"
    LOG = "log"
    REVIEW = "review"
    DONE = "done"
    ERROR = "error"


def init_message(session_id: str, progress: ProgressSnapshot) -> dict:
    return {
        "sessionId": session_id,
        "type": MessageType.INIT.value,
        "progress": progress.to_message(),
    }


def progress_message(progress: ProgressSnapshot, checkpoint: Checkpoint) -> dict:
    return {
        "type": MessageType.PROGRESS.value,
        "progress": progress.to_message(),
        "checkpoint": checkpoint.to_message(),
    }


def log_message(log: str) -> dict:
    return {"type": MessageType.LOG.value, "log": log}


def review_message(review: str) -> dict:
    return {"type": MessageType.REVIEW.value, "review": review}


def done_message() -> dict:
    return {"type": MessageType.DONE.value, "done": True}


def error_message(error: str) -> dict:
    return {"type": MessageType.ERROR.value, "error": error}


def encode_event(message: dict) -> str:
    """Frame a message as one Server-Sent Events ``data:`` event."""
    return f"data: {json.dumps(message)}\n\n"
