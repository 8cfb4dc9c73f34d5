"""
SESSION
=======

A user's exploration context: one thought tree plus freeform context.

Tree operations
---------------
Every tree-wide operation walks breadth-first from the root:

- ``find_thought``       → (node, parent) via a parent map built during the walk
- ``normalize_tree``     → re-derive parent_id / depth / path for every node
- ``get_thought_tree``   → flat {id: node} map for O(1) lookups
- ``get_metadata``       → node count, max depth, sorted direction labels

``normalize_tree`` is the single invariant-restoration routine. It runs
after every content or structural edit and after decoding from storage,
so serialized depth/path values are never trusted.

Removing the root clears the whole tree. No child is promoted.
"""

import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..errors import InvalidRequestError, ThoughtNotFoundError
from .direction import Direction, DirectionType
from .thought import Thought, format_timestamp, parse_timestamp, utc_now


ROOT_DIRECTION_TITLE = "Root"
ROOT_DIRECTION_DESCRIPTION = "Initial concept"


@dataclass
class SessionMetadata:
    """Derived tree statistics. Computed on demand, never persisted."""
    total_thoughts: int = 0
    max_depth: int = 0
    directions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_thoughts": self.total_thoughts,
            "max_depth": self.max_depth,
            "directions": list(self.directions),
        }


@dataclass
class ThoughtUpdate:
    """Partial update for a thought. At least one field must be set."""
    content: Optional[str] = None
    direction: Optional[Direction] = None

    def is_empty(self) -> bool:
        return self.content is None and self.direction is None


@dataclass
class Session:
    """Session data structure: the root of one exploration tree."""
    id: str
    user_id: str = ""
    root_thought: Optional[Thought] = None
    context: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_active: bool = True

    @classmethod
    def new(cls, user_id: str, initial_concept: str) -> "Session":
        """Create a session whose root thought is the seed concept."""
        session_id = str(uuid.uuid4())
        now = utc_now()
        direction = Direction(
            type=DirectionType.BROAD,
            title=ROOT_DIRECTION_TITLE,
            description=ROOT_DIRECTION_DESCRIPTION,
        )
        return cls(
            id=session_id,
            user_id=user_id,
            root_thought=Thought.create(initial_concept, session_id, direction),
            context=[initial_concept],
            created_at=now,
            updated_at=now,
            is_active=True,
        )

    def touch(self) -> None:
        self.updated_at = utc_now()

    # ========================================================================
    # TRAVERSAL
    # ========================================================================

    def iter_thoughts(self) -> Iterator[Thought]:
        """Yield every node breadth-first, root first."""
        if self.root_thought is None:
            return
        queue = deque([self.root_thought])
        while queue:
            current = queue.popleft()
            yield current
            queue.extend(current.children)

    def find_thought(self, thought_id: str) -> Tuple[Optional[Thought], Optional[Thought]]:
        """
        Locate a node and its parent.

        Returns:
            (node, parent). parent is None for the root.
            (None, None) if the id is empty, unknown, or there is no tree.
        """
        if self.root_thought is None or not (thought_id or "").strip():
            return None, None

        parents: Dict[str, Optional[Thought]] = {self.root_thought.id: None}
        queue = deque([self.root_thought])
        while queue:
            current = queue.popleft()
            if current.id == thought_id:
                return current, parents[current.id]
            for child in current.children:
                parents[child.id] = current
                queue.append(child)
        return None, None

    def get_thought_tree(self) -> Dict[str, Thought]:
        """Map every node id in the tree to the node itself."""
        return {thought.id: thought for thought in self.iter_thoughts()}

    def normalize_tree(self) -> None:
        """Re-derive parent_id, depth and path for every node from the root down."""
        root = self.root_thought
        if root is None:
            return

        root.parent_id = None
        root.depth = 0
        root.path = [root.content]

        queue = deque([root])
        while queue:
            current = queue.popleft()
            for child in current.children:
                child.parent_id = current.id
                child.depth = current.depth + 1
                child.path = current.path + [child.content]
                queue.append(child)

    # ========================================================================
    # MUTATION
    # ========================================================================

    def apply_thought_update(self, thought_id: str, update: ThoughtUpdate) -> Thought:
        """
        Apply a partial update to one thought.

        Raises:
            InvalidRequestError: Empty id or an update with no fields.
            ThoughtNotFoundError: No node with ``thought_id``.
        """
        if not (thought_id or "").strip() or update is None or update.is_empty():
            raise InvalidRequestError("thought id and at least one update field are required")

        target, _ = self.find_thought(thought_id)
        if target is None:
            raise ThoughtNotFoundError(thought_id)

        content_changed = False
        if update.content is not None:
            content = update.content.strip()
            content_changed = content != target.content
            target.content = content
        if update.direction is not None:
            target.direction = update.direction.clone()

        if content_changed:
            self.normalize_tree()
        self.touch()
        return target

    def remove_thought(self, thought_id: str) -> None:
        """
        Detach a thought and its whole subtree.

        Removing the root clears the tree entirely.

        Raises:
            InvalidRequestError: Empty id.
            ThoughtNotFoundError: No tree, or no node with ``thought_id``.
        """
        if not (thought_id or "").strip():
            raise InvalidRequestError("thought id is required")
        if self.root_thought is None:
            raise ThoughtNotFoundError(thought_id)

        if self.root_thought.id == thought_id:
            self.root_thought = None
            self.touch()
            return

        node, parent = self.find_thought(thought_id)
        if node is None or parent is None or not parent.remove_child_by_id(thought_id):
            raise ThoughtNotFoundError(thought_id)

        self.normalize_tree()
        self.touch()

    def add_context(self, value: str) -> None:
        """Append a context entry. Empty input is ignored."""
        if not value:
            return
        self.context.append(value)
        self.touch()

    def close(self) -> None:
        self.is_active = False
        self.touch()

    # ========================================================================
    # DERIVED
    # ========================================================================

    def get_metadata(self) -> SessionMetadata:
        total = 0
        max_depth = 0
        labels = set()
        for thought in self.iter_thoughts():
            total += 1
            max_depth = max(max_depth, thought.depth)
            labels.add(thought.direction.label)
        return SessionMetadata(
            total_thoughts=total,
            max_depth=max_depth,
            directions=sorted(labels),
        )

    # ========================================================================
    # COPY & SERIALIZATION
    # ========================================================================

    def clone(self) -> "Session":
        """Deep structural copy; shares no mutable state with the original."""
        return Session(
            id=self.id,
            user_id=self.user_id,
            root_thought=self.root_thought.clone() if self.root_thought else None,
            context=list(self.context),
            created_at=self.created_at,
            updated_at=self.updated_at,
            is_active=self.is_active,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "root_thought": self.root_thought.to_dict() if self.root_thought else None,
            "context": list(self.context),
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        """Decode a session and normalize its tree."""
        root_data = data.get("root_thought")
        session = cls(
            id=data["id"],
            user_id=data.get("user_id", ""),
            root_thought=Thought.from_dict(root_data) if root_data else None,
            context=list(data.get("context") or []),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            is_active=data.get("is_active", True),
        )
        session.normalize_tree()
        return session
