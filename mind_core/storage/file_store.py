"""
FILE_STORE
==========

File-backed session store: one JSON file per session.

Storage: ``{data_dir}/{session_id}.json``

Writes go to a temp file in the same directory which is then renamed over
the target with ``os.replace``, so a reader never sees a half-written
session.

Indexes
-------
Two in-memory indexes avoid a directory walk per request:

- ``user_index``:    user_id → {session_id, ...}
- ``session_index``: session_id → last known updated_at (None = unknown)

Both are rebuilt from a full scan at construction and kept current on
every save/update/delete. They are a cache of the files, never
authoritative. A corrupt file found during the scan is logged and
skipped (see ``skipped_files``) rather than stopping the store.

The index lock guards index reads and writes only; file I/O happens
outside it. A first save reserves its id under the lock so a concurrent
save of the same id fails with SessionAlreadyExistsError.
"""

import json
import logging
import os
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Set

from ..errors import (
    InvalidRequestError,
    SessionAlreadyExistsError,
    SessionNotFoundError,
    StoreUnavailableError,
)
from ..models import Session
from .base import SessionStore, is_expired

logger = logging.getLogger(__name__)

SESSION_FILE_SUFFIX = ".json"


class FileSessionStore(SessionStore):
    """Persist sessions as individual JSON files with derived indexes."""

    DEFAULT_DATA_DIR = "data/sessions"

    def __init__(self, data_dir: Optional[str] = None):
        """
        Initialize the store and build its indexes.

        Args:
            data_dir: Directory holding session files (created if missing).

        Raises:
            StoreUnavailableError: If the directory cannot be created.
        """
        self.data_dir = Path(data_dir or self.DEFAULT_DATA_DIR)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreUnavailableError(f"cannot create session directory {self.data_dir}: {e}") from e

        self._lock = threading.RLock()
        self._user_index: Dict[str, Set[str]] = {}
        self._session_index: Dict[str, Optional[datetime]] = {}
        self._reserved: Set[str] = set()  # ids whose first save is in flight
        self._executor: Optional[ThreadPoolExecutor] = None
        self.skipped_files: List[str] = []

        self.rebuild_index()

    # ========================================================================
    # INDEX MAINTENANCE
    # ========================================================================

    def rebuild_index(self) -> None:
        """Rebuild both indexes from a full scan of the data directory."""
        user_index: Dict[str, Set[str]] = {}
        session_index: Dict[str, Optional[datetime]] = {}
        skipped: List[str] = []

        for path in sorted(self.data_dir.glob(f"*{SESSION_FILE_SUFFIX}")):
            if not path.is_file():
                continue
            try:
                session = self._read_session_file(path)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable session file {path.name}: {e}")
                skipped.append(path.name)
                continue
            session_index[session.id] = session.updated_at
            if session.user_id:
                user_index.setdefault(session.user_id, set()).add(session.id)

        with self._lock:
            self._user_index = user_index
            self._session_index = session_index
            self.skipped_files = skipped

        logger.info(
            f"Session index rebuilt from {self.data_dir}: "
            f"{len(session_index)} sessions, {len(skipped)} skipped"
        )

    def _index_session_locked(self, session: Session) -> None:
        # Retract the id from any other user first so it is never indexed twice.
        for user_id in list(self._user_index):
            if user_id != session.user_id:
                self._discard_user_entry_locked(user_id, session.id)

        if session.user_id:
            self._user_index.setdefault(session.user_id, set()).add(session.id)
        self._session_index[session.id] = session.updated_at

    def _remove_from_index_locked(self, session_id: str) -> None:
        for user_id in list(self._user_index):
            self._discard_user_entry_locked(user_id, session_id)
        self._session_index.pop(session_id, None)

    def _discard_user_entry_locked(self, user_id: str, session_id: str) -> None:
        ids = self._user_index.get(user_id)
        if ids is None:
            return
        ids.discard(session_id)
        if not ids:
            del self._user_index[user_id]

    # ========================================================================
    # FILE I/O
    # ========================================================================

    def _session_path(self, session_id: str) -> Path:
        if not session_id or session_id in (".", "..") or "/" in session_id or "\\" in session_id:
            raise InvalidRequestError(f"invalid session id: {session_id!r}")
        return self.data_dir / f"{session_id}{SESSION_FILE_SUFFIX}"

    @staticmethod
    def _read_session_file(path: Path) -> Session:
        """
        Decode one session file. The tree is re-normalized on decode.

        Raises:
            FileNotFoundError: File is gone.
            OSError: File cannot be read.
            ValueError: Content is not a valid session document.
        """
        raw = path.read_text(encoding="utf-8")
        try:
            data = json.loads(raw)
            return Session.from_dict(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"malformed session document: {e}") from e

    def _write_session_file(self, path: Path, session: Session) -> None:
        payload = json.dumps(session.to_dict(), indent=2, ensure_ascii=False)
        fd, temp_path = tempfile.mkstemp(dir=str(self.data_dir), prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except FileNotFoundError:
                pass
            raise StoreUnavailableError(f"failed to write session {session.id}: {e}") from e

    def _load(self, session_id: str) -> Session:
        path = self._session_path(session_id)
        try:
            return self._read_session_file(path)
        except FileNotFoundError:
            raise SessionNotFoundError(session_id)
        except OSError as e:
            raise StoreUnavailableError(f"failed to read session {session_id}: {e}") from e
        except ValueError as e:
            raise StoreUnavailableError(f"corrupt session file for {session_id}: {e}") from e

    def _load_indexed(self, session_ids: List[str]) -> List[Session]:
        """Load sessions named by the index, skipping vanished or corrupt files."""
        sessions = []
        for session_id in session_ids:
            try:
                sessions.append(self._read_session_file(self._session_path(session_id)))
            except FileNotFoundError:
                with self._lock:
                    self._remove_from_index_locked(session_id)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable session {session_id}: {e}")
        return sessions

    # ========================================================================
    # STORE CONTRACT
    # ========================================================================

    def save(self, session: Session) -> None:
        if session is None:
            raise InvalidRequestError("session is required")
        path = self._session_path(session.id)
        with self._lock:
            if session.id in self._session_index or session.id in self._reserved or path.exists():
                raise SessionAlreadyExistsError(session.id)
            self._reserved.add(session.id)

        try:
            self._write_session_file(path, session)
            with self._lock:
                self._index_session_locked(session)
        finally:
            with self._lock:
                self._reserved.discard(session.id)

    def get(self, session_id: str) -> Session:
        return self._load(session_id)

    def update(self, session: Session) -> None:
        if session is None:
            raise InvalidRequestError("session is required")
        path = self._session_path(session.id)
        with self._lock:
            known = session.id in self._session_index
        if not known and not path.exists():
            raise SessionNotFoundError(session.id)

        # Not serialized against delete: a racing update may recreate a deleted session (last writer wins).
        self._write_session_file(path, session)

        with self._lock:
            self._index_session_locked(session)

    def delete(self, session_id: str) -> None:
        path = self._session_path(session_id)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StoreUnavailableError(f"failed to delete session {session_id}: {e}") from e

        with self._lock:
            self._remove_from_index_locked(session_id)

    def get_by_user_id(self, user_id: str) -> List[Session]:
        if not user_id:
            return []
        with self._lock:
            ids = list(self._user_index.get(user_id, ()))
        return [s for s in self._load_indexed(ids) if s.user_id == user_id]

    def get_expired_sessions(self, before: datetime) -> List[Session]:
        with self._lock:
            candidates = [
                session_id for session_id, updated_at in self._session_index.items()
                if updated_at is None or updated_at < before
            ]
        # The file may have been updated since it was indexed.
        return [s for s in self._load_indexed(candidates) if is_expired(s, before)]

    def ping(self, timeout: float = SessionStore.DEFAULT_PING_TIMEOUT) -> None:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="session-store-ping")
            executor = self._executor

        future = executor.submit(self.data_dir.is_dir)
        try:
            exists = future.result(timeout=timeout)
        except FuturesTimeoutError:
            future.cancel()
            raise StoreUnavailableError(f"session store ping timed out after {timeout}s")
        except OSError as e:
            raise StoreUnavailableError(f"session store ping failed: {e}") from e
        if not exists:
            raise StoreUnavailableError(f"session directory missing: {self.data_dir}")

    def close(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)

    # ========================================================================
    # INTROSPECTION
    # ========================================================================

    def indexed_session_ids(self, user_id: Optional[str] = None) -> List[str]:
        """Ids currently in the index, optionally for one user."""
        with self._lock:
            if user_id is None:
                return sorted(self._session_index)
            return sorted(self._user_index.get(user_id, ()))
