"""
In-memory session store.

A dict keyed by session id behind one lock that covers the whole map for
the duration of every operation. Sessions are cloned on the way in and
on the way out.
"""

import threading
from datetime import datetime
from typing import Dict, List

from ..errors import InvalidRequestError, SessionAlreadyExistsError, SessionNotFoundError
from ..models import Session
from .base import SessionStore, is_expired


class InMemorySessionStore(SessionStore):
    """Process-local store; contents are lost on restart."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.RLock()

    def save(self, session: Session) -> None:
        if session is None:
            raise InvalidRequestError("session is required")
        with self._lock:
            if session.id in self._sessions:
                raise SessionAlreadyExistsError(session.id)
            self._sessions[session.id] = session.clone()

    def get(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            return session.clone()

    def update(self, session: Session) -> None:
        if session is None:
            raise InvalidRequestError("session is required")
        with self._lock:
            if session.id not in self._sessions:
                raise SessionNotFoundError(session.id)
            self._sessions[session.id] = session.clone()

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def get_by_user_id(self, user_id: str) -> List[Session]:
        with self._lock:
            return [s.clone() for s in self._sessions.values() if s.user_id == user_id]

    def get_expired_sessions(self, before: datetime) -> List[Session]:
        with self._lock:
            return [s.clone() for s in self._sessions.values() if is_expired(s, before)]

    def ping(self, timeout: float = SessionStore.DEFAULT_PING_TIMEOUT) -> None:
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
