"""
CLI MODULE
==========

Command-line interface for mindCore.

Usage:
    python -m mind_core.cli --server
    python -m mind_core.cli sessions <user_id>
    python -m mind_core.cli show <session_id>
    python -m mind_core.cli cleanup
"""

from .main import main, cli_sessions, cli_show, cli_cleanup, cli_health

__all__ = [
    'main',
    'cli_sessions',
    'cli_show',
    'cli_cleanup',
    'cli_health',
]
