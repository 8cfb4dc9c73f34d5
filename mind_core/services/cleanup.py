"""
CLEANUP
=======

Background expiry sweep.

A daemon thread that calls ``SessionManager.cleanup_expired_sessions()``
every ``interval_seconds``. A failed sweep is logged and the loop keeps
going; the next tick retries whatever was left behind.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..errors import MindCoreError
from .session_manager import SessionManager

logger = logging.getLogger(__name__)


class CleanupWorker:
    """Periodic expired-session sweeper."""

    def __init__(self, manager: SessionManager, interval_seconds: float = 3600):
        self.manager = manager
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_run_at: Optional[datetime] = None
        self.last_deleted = 0
        self.last_error: Optional[str] = None
        self.total_deleted = 0

    def start(self) -> None:
        """Start the sweep thread. No-op if running or the interval is <= 0."""
        if self.is_running() or self.interval_seconds <= 0:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="session-cleanup", daemon=True)
        self._thread.start()
        logger.info(f"Cleanup worker started (every {self.interval_seconds}s)")

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
            self._thread = None
            logger.info("Cleanup worker stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> int:
        """
        Run one sweep now. Returns the number of sessions deleted.

        Raises whatever ``cleanup_expired_sessions`` raises.
        """
        self.last_run_at = datetime.now(timezone.utc)
        try:
            deleted = self.manager.cleanup_expired_sessions()
        except MindCoreError as e:
            self.last_error = str(e)
            raise
        self.last_error = None
        self.last_deleted = deleted
        self.total_deleted += deleted
        return deleted

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running(),
            "interval_seconds": self.interval_seconds,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_deleted": self.last_deleted,
            "total_deleted": self.total_deleted,
            "last_error": self.last_error,
        }

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Expiry sweep failed: {e}")
