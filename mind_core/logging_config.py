"""
Logging setup for mindCore.

Handlers are attached once, to the ``mind_core`` parent logger. Module
loggers (``mind_core.storage.file_store``, ``mind_core.services.cleanup``,
...) propagate up to it and need no handlers of their own.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

_configured = False


def _build_handlers(log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file and log_file.lower() != "none":
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8",
        ))
    return handlers


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the ``mind_core`` logger. Later calls are ignored.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown names mean INFO).
        log_file: Rotating log file path; ``None`` or ``"none"`` logs to the console only.
    """
    global _configured
    if _configured:
        return
    _configured = True

    resolved = getattr(logging, (level or "INFO").upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger("mind_core")
    root.setLevel(resolved)
    root.propagate = False
    for handler in _build_handlers(log_file):
        handler.setLevel(resolved)
        handler.setFormatter(formatter)
        root.addHandler(handler)
