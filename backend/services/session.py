"""
Anonymous session tracking and per-session image quotas.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class SessionData:
    session_id: str
    images_processed: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    last_activity: float = field(default_factory=time.monotonic)


class SessionService:
    """In-memory store of anonymous sessions"""

    def __init__(self,
                 image_limit: int = 10,
                 expiry_seconds: float = 60 * 60,
                 cleanup_interval_seconds: float = 10 * 60):
        self.image_limit = image_limit
        self.expiry_seconds = expiry_seconds
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self._sessions: Dict[str, SessionData] = {}
        self._cleanup_task: Optional[asyncio.Task] = None

    def create_session(self) -> str:
        session_id = str(uuid.uuid4())
        self._sessions[session_id] = SessionData(session_id=session_id)
        logger.debug(f"New session created: {session_id}")
        return session_id

    def get_session(self, session_id: str) -> Optional[SessionData]:
        """Return the session, or None if unknown or expired"""
        session = self._sessions.get(session_id)
        if session is None:
            return None

        if self.is_session_expired(session_id):
            del self._sessions[session_id]
            logger.debug(f"Session {session_id} expired and removed")
            return None

        return session

    def touch(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session:
            session.last_activity = time.monotonic()

    def get_session_usage(self, session_id: str) -> int:
        session = self.get_session(session_id)
        return session.images_processed if session else 0

    def get_remaining_images(self, session_id: str) -> int:
        return max(0, self.image_limit - self.get_session_usage(session_id))

    def increment_usage(self, session_id: str, count: int = 1) -> None:
        session = self._sessions.get(session_id)
        if not session:
            logger.warning(f"Attempted to increment non-existent session {session_id}")
            return

        session.images_processed += count
        session.last_activity = time.monotonic()
        logger.debug(f"Session {session_id} usage now {session.images_processed}")

    def has_reached_limit(self, session_id: str) -> bool:
        session = self.get_session(session_id)
        if not session:
            return False
        return session.images_processed >= self.image_limit

    def is_session_expired(self, session_id: str) -> bool:
        session = self._sessions.get(session_id)
        if not session:
            return True
        return time.monotonic() - session.last_activity > self.expiry_seconds

    def usage_message(self, session_id: str) -> str:
        return f"{self.get_session_usage(session_id)} of {self.image_limit} free images used"

    def delete_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def active_session_count(self) -> int:
        return len(self._sessions)

    def clear_all(self) -> None:
        self._sessions.clear()

    def cleanup_expired_sessions(self) -> int:
        expired = [sid for sid in self._sessions if self.is_session_expired(sid)]
        for session_id in expired:
            del self._sessions[session_id]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions ({len(self._sessions)} remaining)")
        return len(expired)

    def start_cleanup_job(self) -> None:
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.info(f"Session cleanup job started (interval: {self.cleanup_interval_seconds}s)")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval_seconds)
            self.cleanup_expired_sessions()

    async def stop_cleanup_job(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            await asyncio.gather(self._cleanup_task, return_exceptions=True)
            self._cleanup_task = None
            logger.info("Session cleanup job stopped")
