"""In-memory store for preview sessions awaiting confirmation."""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from catalog.cache import utc_now
from provisioning.models import InstalledSkill, Match, PendingChange, SessionNotFoundError

logger = structlog.get_logger().bind(source="sync_sessions")

SESSION_TTL = timedelta(minutes=5)


@dataclass
class SyncSession:
    id: str
    created_at: datetime
    pending_changes: list[PendingChange]
    matches: list[Match]
    installed: list[InstalledSkill]
    manual_names: list[str] = field(default_factory=list)
    discovered_names: list[str] = field(default_factory=list)

    def match_for(self, name: str) -> Optional[Match]:
        return next((m for m in self.matches if m.name == name), None)


class SessionStore:
    """Sessions keyed by id. Each session can be taken exactly once."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None, ttl: timedelta = SESSION_TTL):
        self.clock = clock or utc_now
        self.ttl = ttl
        self._sessions: dict[str, SyncSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def new_id(self) -> str:
        return f"sync_{int(self.clock().timestamp() * 1000)}_{secrets.token_hex(4)}"

    def create(self, **fields) -> SyncSession:
        session = SyncSession(id=self.new_id(), created_at=self.clock(), **fields)
        self._sessions[session.id] = session
        logger.debug("session_created", session_id=session.id, changes=len(session.pending_changes))
        return session

    def is_expired(self, session: SyncSession) -> bool:
        return self.clock() - session.created_at >= self.ttl

    def sweep(self) -> int:
        """Drop expired sessions. Returns how many were removed."""
        expired = [sid for sid, s in self._sessions.items() if self.is_expired(s)]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.debug("sessions_swept", count=len(expired))
        return len(expired)

    def pop(self, session_id: str) -> SyncSession:
        """Remove and return a live session, or raise ``SessionNotFoundError``."""
        session = self._sessions.pop(session_id, None)
        if session is None or self.is_expired(session):
            raise SessionNotFoundError(session_id)
        return session
