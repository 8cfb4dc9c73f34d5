"""
MIND_CORE
=========

Thought-exploration sessions for Python.

Features:
- Sessions holding a tree of thoughts grown from a seed concept
- Exploration directions from an LLM, with a deterministic offline fallback
- In-memory and JSON-file session stores with expiry
- REST and MCP APIs (FastAPI)

Usage:
    from mind_core.storage import InMemorySessionStore
    from mind_core.services import SessionManager

    manager = SessionManager(InMemorySessionStore())
    session = manager.create_session("user-42", "Machine Learning")
"""

__version__ = "1.0.0"

from .errors import (
    MindCoreError,
    InvalidRequestError,
    SessionNotFoundError,
    ThoughtNotFoundError,
    ToolNotFoundError,
    SessionAlreadyExistsError,
    RateLimitExceeded,
    StoreUnavailableError,
)
from .models import Direction, DirectionType, Thought, Session, SessionMetadata, ThoughtUpdate

__all__ = [
    '__version__',
    'MindCoreError',
    'InvalidRequestError',
    'SessionNotFoundError',
    'ThoughtNotFoundError',
    'ToolNotFoundError',
    'SessionAlreadyExistsError',
    'RateLimitExceeded',
    'StoreUnavailableError',
    'Direction',
    'DirectionType',
    'Thought',
    'Session',
    'SessionMetadata',
    'ThoughtUpdate',
]
