"""
STORE_BASE
==========

Persistence contract shared by every session backend.

Contract
--------
- ``save``   fails with SessionAlreadyExistsError when the id is taken.
- ``get``    fails with SessionNotFoundError when the id is unknown.
- ``update`` fails with SessionNotFoundError when the id was never saved
  (both backends are strict).
- ``delete`` is idempotent.
- Every value handed in or out is a deep copy, so callers can never
  mutate stored state without an explicit ``update``.
- Persistence failures surface as StoreUnavailableError.

Concurrent ``update`` calls on the same id are last-writer-wins; there
is no version check.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List

from ..models import Session


class SessionStore(ABC):
    """Abstract session persistence backend."""

    DEFAULT_PING_TIMEOUT = 2.0  # seconds

    @abstractmethod
    def save(self, session: Session) -> None:
        """Persist a new session."""

    @abstractmethod
    def get(self, session_id: str) -> Session:
        """Load a session by id."""

    @abstractmethod
    def update(self, session: Session) -> None:
        """Overwrite an existing session."""

    @abstractmethod
    def delete(self, session_id: str) -> None:
        """Remove a session if present."""

    @abstractmethod
    def get_by_user_id(self, user_id: str) -> List[Session]:
        """All sessions owned by ``user_id``, in no particular order."""

    @abstractmethod
    def get_expired_sessions(self, before: datetime) -> List[Session]:
        """Sessions whose updated_at is strictly before ``before`` (or unknown)."""

    @abstractmethod
    def ping(self, timeout: float = DEFAULT_PING_TIMEOUT) -> None:
        """
        Liveness check of the backing resource.

        Raises:
            StoreUnavailableError: If the resource is missing, broken, or
                the check did not finish within ``timeout`` seconds.
        """

    def close(self) -> None:
        """Release background resources. Safe to call more than once."""


def is_expired(session: Session, before: datetime) -> bool:
    """Unknown updated_at counts as expired."""
    return session.updated_at is None or session.updated_at < before
