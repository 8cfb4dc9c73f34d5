"""
MODELS MODULE
=============

Domain model for mindCore: directions, thoughts and sessions.
"""

from .direction import Direction, DirectionType
from .thought import Thought, utc_now
from .session import Session, SessionMetadata, ThoughtUpdate

__all__ = [
    'Direction',
    'DirectionType',
    'Thought',
    'Session',
    'SessionMetadata',
    'ThoughtUpdate',
    'utc_now',
]
