"""Registry of open review sessions and their event channels."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional

from reviewstream.errors import SessionNotFoundError

from .progress import CheckpointStatus, ProgressSnapshot, create_initial_progress
from .protocol import encode_event, error_message, init_message, progress_message

logger = logging.getLogger(__name__)


class SessionChannel:
    """Single-writer, ordered stream of messages for one client.

    Messages are queued as dicts and framed as SSE events when the channel is
    iterated. Closing queues an end marker; it happens at most once.
    """

    _CLOSED = None

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def send(self, message: dict) -> bool:
        if self.closed:
            return False
        self._queue.put_nowait(message)
        return True

    def close(self) -> bool:
        if self.closed:
            return False
        self.closed = True
        self._queue.put_nowait(self._CLOSED)
        return True

    def pending(self) -> list[dict]:
        """Drain and return the messages queued so far without waiting."""
        messages = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not self._CLOSED:
                messages.append(item)
        return messages

    async def messages(self) -> AsyncIterator[dict]:
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield item

    async def events(self) -> AsyncIterator[str]:
        async for message in self.messages():
            yield encode_event(message)


@dataclass
class ReviewSession:
    session_id: str
    channel: SessionChannel = field(default_factory=SessionChannel)
    progress: ProgressSnapshot = field(default_factory=create_initial_progress)


class SessionManager:
    """Owns the mapping from session id to open channel and progress.

    Every method that pushes to a session is a silent no-op once the session
    has been closed, so a client that disconnects mid-review never breaks the
    pipeline still running for it.
    """

    def __init__(self):
        self._sessions: Dict[str, ReviewSession] = {}
        self._last_id = 0

    def _next_session_id(self) -> str:
        self._last_id = max(time.time_ns(), self._last_id + 1)
        return str(self._last_id)

    def open(self) -> ReviewSession:
        """Register a new session and queue its ``init`` message."""
        session = ReviewSession(session_id=self._next_session_id())
        self._sessions[session.session_id] = session
        session.channel.send(init_message(session.session_id, session.progress))
        logger.info(f"Created session: {session.session_id}")
        return session

    def get(self, session_id: str) -> ReviewSession:
        """Return an open session.

        Raises:
            SessionNotFoundError: If the session is unknown or its channel is closed.
        """
        session = self._sessions.get(session_id)
        if session is None or session.channel.closed:
            raise SessionNotFoundError(session_id)
        return session

    def find(self, session_id: str) -> Optional[ReviewSession]:
        return self._sessions.get(session_id)

    def send(self, session_id: str, message: dict) -> None:
        session = self._sessions.get(session_id)
        if session is not None:
            session.channel.send(message)

    def update_checkpoint(
        self,
        session_id: str,
        agent: str,
        status: CheckpointStatus,
        details: Optional[str] = None,
    ) -> None:
        """Transition a checkpoint and push the new snapshot."""
        session = self._sessions.get(session_id)
        if session is None:
            return
        checkpoint = session.progress.transition(agent, status, details)
        if checkpoint is None:
            return
        session.channel.send(progress_message(session.progress, checkpoint))

    def fail(self, session_id: str, error: str) -> None:
        """Mark the running checkpoint as errored, push the error, and close."""
        session = self._sessions.get(session_id)
        if session is None:
            return
        active = session.progress.active_checkpoint()
        if active is not None:
            self.update_checkpoint(session_id, active.agent, CheckpointStatus.ERROR, error)
        session.channel.send(error_message(error))
        self.close(session_id)

    def close(self, session_id: str) -> None:
        """Close the session's channel and drop it from the registry."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        session.channel.close()
        logger.info(f"Session closed: {session_id}")

    @property
    def active_count(self) -> int:
        return len(self._sessions)
