"""
THOUGHT_EXPANDER
================

Turns a concept into directions and preview thoughts, and grows a
session's tree along a chosen direction.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import InvalidRequestError
from ..models import Direction, DirectionType, Session, Thought
from .llm_orchestrator import LLMOrchestrator
from .session_manager import SessionManager

logger = logging.getLogger(__name__)

PATH_HINT_LIMIT = 4


@dataclass
class ExpansionRequest:
    concept: str
    context: List[str] = field(default_factory=list)
    expansion_type: Optional[DirectionType] = None
    max_directions: int = 0  # 0 = no limit


@dataclass
class ExpansionResult:
    directions: List[Direction] = field(default_factory=list)
    thoughts: List[Thought] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "directions": [d.to_dict() for d in self.directions],
            "thoughts": [t.to_dict() for t in self.thoughts],
        }


class ThoughtExpander:
    """Direction generation plus session-aware exploration."""

    def __init__(self, llm: LLMOrchestrator, session_manager: Optional[SessionManager] = None):
        self.llm = llm
        self.session_manager = session_manager

    def generate_directions(self, concept: str, context: Optional[List[str]] = None) -> List[Direction]:
        return self.llm.generate_thought_directions(concept, context)

    def expand(self, request: ExpansionRequest) -> ExpansionResult:
        """
        Directions for a concept, each with one preview thought.

        Directions are filtered to ``expansion_type`` when given; if none
        match, all are kept. The list is then cut to ``max_directions``.
        """
        if request is None or not (request.concept or "").strip():
            raise InvalidRequestError("concept is required")

        directions = self.generate_directions(request.concept, request.context)

        filtered = directions
        if request.expansion_type is not None:
            filtered = [d for d in directions if d.type == request.expansion_type] or directions
        if request.max_directions and request.max_directions > 0:
            filtered = filtered[:request.max_directions]

        previews = []
        for direction in filtered:
            thoughts = self.llm.explore_direction(
                direction, 1, build_exploration_input(request.context, direction))
            if thoughts:
                previews.append(thoughts[0])

        return ExpansionResult(directions=filtered, thoughts=previews)

    def deep_dive(self, direction: Direction, depth: int = 1) -> List[Thought]:
        return self.llm.explore_direction(direction, max(depth, 1))

    def explore_direction(self, direction: Direction, session_id: str,
                          parent_id: Optional[str] = None) -> Thought:
        """
        Generate one thought along ``direction`` and attach it to the session.

        The thought goes under ``parent_id`` when that id is in the tree,
        otherwise under the root; an empty tree takes it as root.
        """
        if not session_id:
            raise InvalidRequestError("session_id is required")
        if self.session_manager is None:
            raise InvalidRequestError("session exploration is not available")

        session = self.session_manager.get_session(session_id)
        context = build_session_exploration_context(session, direction)
        thoughts = self.llm.explore_direction(direction, 1, context)
        if not thoughts:
            raise InvalidRequestError("no thoughts generated for direction")

        thought = thoughts[0]
        thought.parent_id = parent_id or None
        self.session_manager.add_thought_to_session(session.id, thought)

        logger.info(f"Explored '{direction.label}' in session {session.id}")
        return thought


# ============================================================================
# CONTEXT BUILDING
# ============================================================================

def build_exploration_input(base: Optional[List[str]], direction: Direction) -> List[str]:
    entries = [item.strip() for item in base or [] if item and item.strip()]

    if direction.title.strip():
        entries.append(f"goal: deepen {direction.title.strip()}")
    if direction.description.strip():
        entries.append(f"background: {direction.description.strip()}")

    keywords = [k.strip() for k in direction.keywords if k.strip()]
    if keywords:
        entries.append(f"keywords: {', '.join(keywords)}")
    return entries


def build_session_exploration_context(session: Session, direction: Direction) -> List[str]:
    base = [entry.strip() for entry in session.context if entry and entry.strip()]
    if session.root_thought is not None:
        root_content = session.root_thought.content.strip()
        if root_content:
            base.append(f"history: root -> {root_content}")
        base.extend(collect_thought_path_hints(session, PATH_HINT_LIMIT))
    return build_exploration_input(base, direction)


def collect_thought_path_hints(session: Session, limit: int) -> List[str]:
    """Paths of the deepest thoughts first, ties broken by content."""
    if limit <= 0:
        return []

    nodes = sorted(session.iter_thoughts(), key=lambda t: (-t.depth, t.content))
    hints: List[str] = []
    seen = set()
    for node in nodes:
        if len(hints) >= limit:
            break
        path = node.get_path()
        if not path:
            continue
        joined = " -> ".join(path)
        if joined in seen:
            continue
        seen.add(joined)
        hints.append(f"history: {joined}")
    return hints
