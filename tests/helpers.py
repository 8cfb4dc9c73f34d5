from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, List, Sequence

from mind_core.models import Direction, DirectionType, Session, Thought


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, 1, hour, minute, tzinfo=timezone.utc)


def deep(title: str = "Learning") -> Direction:
    return Direction(type=DirectionType.DEEP, title=title)


def thought(content: str, session_id: str = "", direction: Direction | None = None) -> Thought:
    return Thought.create(content, session_id, direction)


def three_level_session(user_id: str = "u1", concept: str = "AI") -> Session:
    """root -> (a -> a1), b"""
    session = Session.new(user_id, concept)
    a = thought("Supervised Learning", session.id, deep())
    b = thought("Ethics", session.id)
    a1 = thought("Regression", session.id, deep("Models"))
    session.root_thought.add_child(a)
    session.root_thought.add_child(b)
    a.add_child(a1)
    return session


def stamped(user_id: str, concept: str, created: datetime, updated: datetime | None = None) -> Session:
    session = Session.new(user_id, concept)
    session.created_at = created
    session.updated_at = updated or created
    return session


def run_concurrently(fn: Callable[..., Any], calls: Sequence[tuple]) -> List[Any]:
    """Run fn(*args) for every args tuple on its own thread, released together.

    Returns each call's result, or the exception it raised, in call order.
    """
    barrier = threading.Barrier(len(calls))

    def call(args):
        barrier.wait()
        try:
            return fn(*args)
        except Exception as e:
            return e

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(call, calls))
