"""
SESSION_MANAGER
===============

Facade over a SessionStore with a read-through, write-through cache.

Cache
-----
``session_id → Session`` holding the last state known to be persisted.
Entries are written only after the store call succeeds, and every
Session handed out is a clone, so a cache entry never diverges from the
stored state.

The cache lock guards the dict only. It is never held across a store
call, so one slow disk write does not serialize unrelated sessions.

Concurrent updates to the same session are last-writer-wins: each caller
works on its own clone and the later ``update_session`` overwrites the
earlier one in both store and cache.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from ..errors import InvalidRequestError, MindCoreError, StoreUnavailableError
from ..models import Session, SessionMetadata, Thought, ThoughtUpdate, utc_now
from ..storage import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_HOURS = 24
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class SessionManager:
    """Session lifecycle and tree edits on top of a store."""

    def __init__(self, store: SessionStore, session_ttl_hours: int = DEFAULT_SESSION_TTL_HOURS):
        self.store = store
        self.session_ttl = timedelta(hours=session_ttl_hours)
        self._cache: Dict[str, Session] = {}
        self._lock = threading.Lock()

    # ========================================================================
    # CACHE
    # ========================================================================

    def _cache_get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            cached = self._cache.get(session_id)
        return cached.clone() if cached is not None else None

    def _cache_put(self, session: Session) -> None:
        snapshot = session.clone()
        with self._lock:
            self._cache[session.id] = snapshot

    def _cache_evict(self, session_id: str) -> None:
        with self._lock:
            self._cache.pop(session_id, None)

    def cached_session_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._cache)

    # ========================================================================
    # SESSION LIFECYCLE
    # ========================================================================

    def create_session(self, user_id: str, concept: str) -> Session:
        """Create and persist a session seeded with ``concept``."""
        if not (concept or "").strip():
            raise InvalidRequestError("concept is required")

        session = Session.new(user_id, concept)
        self.store.save(session)
        self._cache_put(session)

        logger.info(f"Created session {session.id} for user '{user_id}'")
        return session.clone()

    def get_session(self, session_id: str) -> Session:
        """
        Load a session, from cache if possible.

        Raises:
            InvalidRequestError: Empty id.
            SessionNotFoundError: No such session in the store.
        """
        if not session_id:
            raise InvalidRequestError("session_id is required")

        cached = self._cache_get(session_id)
        if cached is not None:
            return cached

        session = self.store.get(session_id)
        self._cache_put(session)
        return session

    def update_session(self, session: Session) -> Session:
        """Stamp updated_at, persist, and refresh the cache entry."""
        if session is None:
            raise InvalidRequestError("session is required")

        session.touch()
        self.store.update(session)
        self._cache_put(session)
        return session

    def delete_session(self, session_id: str) -> None:
        """Delete from store, then evict. Idempotent."""
        if not session_id:
            raise InvalidRequestError("session_id is required")

        self.store.delete(session_id)
        self._cache_evict(session_id)
        logger.info(f"Deleted session {session_id}")

    def close_session(self, session_id: str) -> Session:
        session = self.get_session(session_id)
        session.close()
        return self.update_session(session)

    def add_context(self, session_id: str, value: str) -> Session:
        session = self.get_session(session_id)
        session.add_context(value)
        return self.update_session(session)

    def get_metadata(self, session_id: str) -> SessionMetadata:
        return self.get_session(session_id).get_metadata()

    # ========================================================================
    # THOUGHT EDITS
    # ========================================================================

    def add_thought_to_session(self, session_id: str, thought: Thought) -> Session:
        """
        Attach a thought to a session's tree and persist.

        An empty tree takes the thought as its root. Otherwise the thought
        goes under ``thought.parent_id`` when that id exists in the tree,
        and under the root when it does not.
        """
        if thought is None:
            raise InvalidRequestError("thought is required")

        session = self.get_session(session_id)
        thought.session_id = session.id

        if session.root_thought is None:
            thought.parent_id = None
            session.root_thought = thought
        else:
            parent = session.root_thought
            if thought.parent_id:
                parent = session.get_thought_tree().get(thought.parent_id, parent)
            parent.add_child(thought)

        session.normalize_tree()
        return self.update_session(session)

    def update_thought(self, session_id: str, thought_id: str, update: ThoughtUpdate) -> Thought:
        """Apply a partial update to one thought and persist. Returns the updated thought."""
        if update is None:
            raise InvalidRequestError("update payload is required")

        session = self.get_session(session_id)
        thought = session.apply_thought_update(thought_id, update)
        self.update_session(session)
        return thought

    def delete_thought(self, session_id: str, thought_id: str) -> Session:
        """Remove a thought and its subtree and persist. Returns the updated session."""
        session = self.get_session(session_id)
        session.remove_thought(thought_id)
        return self.update_session(session)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def list_sessions(self, user_id: str) -> List[Session]:
        """A user's sessions, most recently created first."""
        if not user_id:
            raise InvalidRequestError("user_id is required")

        sessions = self.store.get_by_user_id(user_id)
        return sorted(sessions, key=lambda s: s.created_at or _EPOCH, reverse=True)

    def get_active_sessions_by_user(self, user_id: str) -> List[Session]:
        return [s for s in self.store.get_by_user_id(user_id) if s.is_active]

    # ========================================================================
    # MAINTENANCE
    # ========================================================================

    def cleanup_expired_sessions(self, now: Optional[datetime] = None) -> int:
        """
        Delete every session not updated within the TTL.

        Best-effort: a failed delete does not stop the sweep. After the
        sweep the first failure is re-raised.

        Returns:
            Number of sessions deleted.
        """
        threshold = (now or utc_now()) - self.session_ttl
        expired = self.store.get_expired_sessions(threshold)

        deleted = 0
        errors: List[MindCoreError] = []
        for session in expired:
            try:
                self.delete_session(session.id)
                deleted += 1
            except MindCoreError as e:
                logger.warning(f"Failed to delete expired session {session.id}: {e}")
                errors.append(e)

        if deleted or errors:
            logger.info(f"Expiry sweep: {deleted} deleted, {len(errors)} failed (threshold {threshold.isoformat()})")
        if errors:
            raise errors[0]
        return deleted

    def health_check(self, timeout: float = SessionStore.DEFAULT_PING_TIMEOUT) -> None:
        """
        Raises:
            StoreUnavailableError: No store configured, or its ping failed.
        """
        if self.store is None:
            raise StoreUnavailableError("session store is not configured")
        self.store.ping(timeout=timeout)
