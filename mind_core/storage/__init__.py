"""
STORAGE MODULE
==============

Session persistence backends for mindCore.

- ``InMemorySessionStore``: dict behind one lock, for tests and ephemeral servers
- ``FileSessionStore``:     one JSON file per session plus rebuildable indexes
"""

from .base import SessionStore
from .memory_store import InMemorySessionStore
from .file_store import FileSessionStore

__all__ = [
    'SessionStore',
    'InMemorySessionStore',
    'FileSessionStore',
]
