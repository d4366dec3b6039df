"""In-memory store of live dictation sessions with TTL cleanup.

WHY: Each browser tab that dictates through the HTTP API owns one
TranscriptSession fed by a PushSource. The API returns a session ID on
creation and every later request refers to it, so the sessions have to
live somewhere between requests. An in-memory store is enough for a
single-process service; transcripts worth keeping are saved explicitly.

HOW: Two components:
  ManagedSession — dataclass tying a session ID to its TranscriptSession,
                   its PushSource, and timestamps
  SessionStore   — thread-safe dict-based store with create/get/list/
                   touch/delete and TTL cleanup of abandoned sessions

RULES:
- All store mutations are protected by threading.Lock
- create_session() starts listening immediately
- get_session() returns None for unknown IDs (no exceptions)
- A session untouched for longer than the TTL expires; a session still
  listening is stopped before it is dropped
- Session IDs are UUID4 hex strings generated at creation time
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from transcript_refiner.config import MAX_SESSIONS, SESSION_TTL_SECONDS
from transcript_refiner.core.ir import SessionSettings
from transcript_refiner.core.session import RestartPolicy, SessionStatus, TranscriptSession
from transcript_refiner.sources.push import PushSource

logger = logging.getLogger(__name__)


@dataclass
class ManagedSession:
    """A TranscriptSession registered with the API.

    RULES:
    - id: UUID4 hex string, immutable after creation
    - source: the PushSource the HTTP endpoints feed
    - updated_at: epoch timestamp of the last request touching the session
    """

    id: str
    session: TranscriptSession
    source: PushSource
    created_at: float
    updated_at: float


class SessionStore:
    """Thread-safe in-memory store for dictation sessions."""

    def __init__(
        self,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        max_sessions: int = MAX_SESSIONS,
        restart_policy: Optional[RestartPolicy] = None,
    ) -> None:
        self._sessions: Dict[str, ManagedSession] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._restart_policy = restart_policy

    def create_session(self, settings: Optional[SessionSettings] = None) -> ManagedSession:
        """Create a session over a fresh PushSource and start listening.

        Raises:
            ValueError: If the store already holds max_sessions sessions.
        """
        source = PushSource()
        session = TranscriptSession(
            source=source,
            settings=settings,
            restart_policy=self._restart_policy,
        )
        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                raise ValueError(
                    "Maximum number of concurrent sessions ({}) reached".format(
                        self.max_sessions
                    )
                )
            now = time.time()
            managed = ManagedSession(
                id=uuid.uuid4().hex,
                session=session,
                source=source,
                created_at=now,
                updated_at=now,
            )
            self._sessions[managed.id] = managed

        session.start()
        logger.info("Created session %s", managed.id)
        return managed

    def get_session(self, session_id: str) -> Optional[ManagedSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def list_sessions(self) -> List[ManagedSession]:
        """Return all sessions, oldest first."""
        with self._lock:
            return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def touch(self, session_id: str) -> Optional[ManagedSession]:
        """Mark a session as used now, postponing its expiry."""
        with self._lock:
            managed = self._sessions.get(session_id)
            if managed is not None:
                managed.updated_at = time.time()
            return managed

    def delete_session(self, session_id: str) -> bool:
        """Stop (if needed) and remove a session.

        Returns True if the session existed.
        """
        with self._lock:
            managed = self._sessions.pop(session_id, None)
        if managed is None:
            return False
        managed.session.stop()
        logger.info("Deleted session %s", session_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove every session untouched for longer than the TTL.

        Returns the count of removed sessions.
        """
        now = time.time()
        expired: List[ManagedSession] = []
        with self._lock:
            for session_id, managed in list(self._sessions.items()):
                if now - managed.updated_at > self._ttl_seconds:
                    expired.append(self._sessions.pop(session_id))

        for managed in expired:
            if managed.session.status is SessionStatus.LISTENING:
                managed.session.stop()
            logger.info(
                "Expired session %s (idle %.0fs)", managed.id, now - managed.updated_at,
            )
        return len(expired)
