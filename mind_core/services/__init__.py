"""
SERVICES MODULE
===============

Application services for mindCore.

- ``SessionManager``:  cached session lifecycle and tree edits
- ``LLMOrchestrator``: direction generation with an offline fallback
- ``ThoughtExpander``: expansion previews and session exploration
- ``CleanupWorker``:   periodic expiry sweep
"""

from .session_manager import SessionManager
from .llm_orchestrator import LLMOrchestrator, LLMRequestError
from .thought_expander import ExpansionRequest, ExpansionResult, ThoughtExpander
from .cleanup import CleanupWorker

__all__ = [
    'SessionManager',
    'LLMOrchestrator',
    'LLMRequestError',
    'ExpansionRequest',
    'ExpansionResult',
    'ThoughtExpander',
    'CleanupWorker',
]
