"""Registry of live streaming sessions.

Maps session ids to their mediators. An entry exists exactly as long as
the client connection is live; whoever detaches an entry closes its
mediator.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from speech_gateway.core.mediator import StreamingMediator

logger = logging.getLogger(__name__)


class SessionAlreadyExists(Exception):
    """Raised when attaching a session id that is already registered."""

    pass


@dataclass
class Session:
    """A live client session."""

    session_id: str
    mediator: StreamingMediator
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionRegistry:
    """
    Session id -> mediator mapping shared by all connections.

    Responsibilities:
    - Register sessions on connect
    - Atomically detach them on disconnect or error
    - Close detached mediators, aborting those that do not finish in time
    - Provide session inspection
    """

    def __init__(self, close_grace_seconds: float = 5.0):
        """
        Initialize the registry.

        Args:
            close_grace_seconds: How long close_session() waits for the
                recognizer to finish after half close before aborting
        """
        self.close_grace_seconds = close_grace_seconds
        self._sessions: Dict[str, Session] = {}
        self._lock = asyncio.Lock()

        # Lifetime totals
        self._opened = 0
        self._closed = 0
        self._aborted = 0

    async def attach(self, session_id: str, mediator: StreamingMediator) -> Session:
        """
        Register a mediator under a session id.

        Raises:
            SessionAlreadyExists: If the id is already live
        """
        async with self._lock:
            if session_id in self._sessions:
                raise SessionAlreadyExists(f"Session {session_id} already exists")

            session = Session(session_id=session_id, mediator=mediator)
            self._sessions[session_id] = session
            self._opened += 1

            logger.debug(f"Attached session {session_id}, live: {len(self._sessions)}")
            return session

    async def detach(self, session_id: str) -> Optional[StreamingMediator]:
        """Remove and return the mediator for a session, or None."""
        async with self._lock:
            session = self._sessions.pop(session_id, None)

        if session is None:
            return None
        logger.debug(f"Detached session {session_id}")
        return session.mediator

    async def get(self, session_id: str) -> Optional[StreamingMediator]:
        """Look up the mediator for a live session."""
        async with self._lock:
            session = self._sessions.get(session_id)
            return session.mediator if session else None

    async def close_session(self, session_id: str) -> bool:
        """
        Detach a session and tear its mediator down.

        Returns:
            True if the session was found and closed, False if not found
        """
        mediator = await self.detach(session_id)
        if mediator is None:
            return False

        self._closed += 1
        if await close_mediator(mediator, self.close_grace_seconds):
            self._aborted += 1
        logger.info(f"Closed session {session_id}")
        return True

    async def stop(self) -> None:
        """Close every live session (shutdown)."""
        async with self._lock:
            session_ids = list(self._sessions)

        for session_id in session_ids:
            await self.close_session(session_id)

        logger.info(f"Session registry stopped, closed {len(session_ids)} sessions")

    # Inspection methods

    def get_active_count(self) -> int:
        """Number of live sessions (non-blocking snapshot)."""
        return len(self._sessions)

    def get_all_sessions(self) -> List[Session]:
        """Snapshot of all live sessions."""
        return list(self._sessions.values())

    def get_aggregate_metrics(self) -> dict:
        """Mediator counters summed over live sessions, plus lifetime totals."""
        totals = {
            "frames_sent": 0,
            "bytes_sent": 0,
            "frames_dropped": 0,
            "transcripts_delivered": 0,
            "finals_delivered": 0,
        }
        for session in self._sessions.values():
            metrics = session.mediator.metrics
            totals["frames_sent"] += metrics.frames_sent
            totals["bytes_sent"] += metrics.bytes_sent
            totals["frames_dropped"] += metrics.frames_dropped
            totals["transcripts_delivered"] += metrics.transcripts_delivered
            totals["finals_delivered"] += metrics.finals_delivered

        return {
            "active_sessions": self.get_active_count(),
            "sessions_opened": self._opened,
            "sessions_closed": self._closed,
            "sessions_aborted": self._aborted,
            **totals,
        }


async def close_mediator(mediator: StreamingMediator, grace_seconds: float) -> bool:
    """
    Half-close a mediator, then abort it if it does not finish in time.

    Returns:
        True if the mediator had to be aborted
    """
    await mediator.close()
    if await mediator.wait_closed(timeout=grace_seconds):
        return False

    logger.warning(
        f"[{mediator.name}] Recognizer did not complete within "
        f"{grace_seconds}s, aborting"
    )
    await mediator.abort()
    return True
