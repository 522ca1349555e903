"""
Conversation history storage.

The router depends only on the :class:`SessionStore` protocol. The default
:class:`InMemorySessionStore` keeps history in process memory, lost on
restart, capped to the newest ``max_messages`` entries and expired after a
period of inactivity.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Protocol, Sequence, runtime_checkable

from ..config import Settings
from ..models import HistoryMessage

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 20
DEFAULT_MAX_AGE = timedelta(hours=1)


@runtime_checkable
class SessionStore(Protocol):
    def get(self, session_id: str) -> List[HistoryMessage]:
        ...

    def put(self, session_id: str, messages: Sequence[HistoryMessage]) -> None:
        ...

    def evict(self, session_id: str) -> None:
        ...


@dataclass
class _Session:
    messages: List[HistoryMessage] = field(default_factory=list)
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class InMemorySessionStore:
    def __init__(self, max_messages: int = DEFAULT_MAX_MESSAGES, max_age: timedelta = DEFAULT_MAX_AGE) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.max_messages = max_messages
        self.max_age = max_age
        self._sessions: Dict[str, _Session] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "InMemorySessionStore":
        return cls(
            max_messages=settings.history_max_messages,
            max_age=timedelta(minutes=settings.session_max_age_minutes),
        )

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _is_expired(self, session: _Session, now: Optional[datetime] = None) -> bool:
        # Measured from last activity so active sessions do not expire mid-conversation.
        return (now or self._now()) - session.updated_at > self.max_age

    def get(self, session_id: str) -> List[HistoryMessage]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return []
            if self._is_expired(session):
                self._sessions.pop(session_id, None)
                logger.info("Session %s expired; starting with empty history", session_id)
                return []
            return list(session.messages)

    def put(self, session_id: str, messages: Sequence[HistoryMessage]) -> None:
        """Store a session's history, dropping other sessions that have gone idle."""
        trimmed = list(messages)[-self.max_messages:]
        with self._lock:
            now = self._now()
            expired = self._purge_expired(now)
            self._sessions[session_id] = _Session(messages=trimmed, updated_at=now)
        if expired:
            logger.info("Evicted %s expired session(s)", expired)

    def append(self, session_id: str, *messages: HistoryMessage) -> List[HistoryMessage]:
        """Append ``messages`` to a session's history and return the capped result."""
        history = self.get(session_id)
        history.extend(messages)
        self.put(session_id, history)
        return history[-self.max_messages:]

    def evict(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def _purge_expired(self, now: datetime) -> int:
        # Caller holds the lock.
        expired = [sid for sid, session in self._sessions.items() if self._is_expired(session, now)]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def cleanup(self) -> int:
        """Drop expired sessions; return how many were removed."""
        with self._lock:
            expired = self._purge_expired(self._now())
        if expired:
            logger.info("Evicted %s expired session(s)", expired)
        return expired

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
