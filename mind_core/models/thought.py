"""
THOUGHT
=======

One node of a session's exploration tree.

Nodes own their children exclusively and never hold a reference to their
parent object. The parent is named by ``parent_id`` only and resolved
through the owning session (``Session.find_thought`` or
``Session.get_thought_tree``). ``depth`` and ``path`` are materialized
copies of the ancestor chain, kept correct by ``Session.normalize_tree``.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .direction import Direction


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string; naive values are taken as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Thought:
    """A point the user has reached while exploring."""
    id: str
    content: str
    session_id: str = ""
    direction: Direction = field(default_factory=Direction)
    parent_id: Optional[str] = None
    depth: int = 0
    created_at: Optional[datetime] = None
    children: List["Thought"] = field(default_factory=list)
    path: List[str] = field(default_factory=list)

    @classmethod
    def create(cls, content: str, session_id: str = "",
               direction: Optional[Direction] = None) -> "Thought":
        """Create a detached thought: depth 0, path [content], no children."""
        return cls(
            id=str(uuid.uuid4()),
            content=content,
            session_id=session_id,
            direction=direction if direction is not None else Direction(),
            depth=0,
            created_at=utc_now(),
            path=[content],
        )

    def add_child(self, child: "Thought") -> None:
        """
        Attach ``child`` as the last child of this node.

        Sets the child's parent_id, depth and path from this node. Only the
        child itself is updated; call ``Session.normalize_tree`` when the
        child brings its own subtree along.

        Raises:
            ValueError: If child is None or is this node.
        """
        if child is None:
            raise ValueError("child thought is required")
        if child is self:
            raise ValueError("a thought cannot be its own child")

        child.parent_id = self.id
        child.depth = self.depth + 1
        child.path = self.get_path() + [child.content]
        if child.created_at is None:
            child.created_at = utc_now()

        self.children.append(child)

    def get_path(self) -> List[str]:
        """Contents from the root down to this node (a copy)."""
        if self.path:
            return list(self.path)
        return [self.content]

    def remove_child_by_id(self, thought_id: str) -> bool:
        """Remove the first direct child with ``thought_id``. Grandchildren are not searched."""
        for index, child in enumerate(self.children):
            if child.id == thought_id:
                del self.children[index]
                return True
        return False

    def is_root(self) -> bool:
        return self.parent_id is None

    def clone(self) -> "Thought":
        """Deep structural copy of this node and its subtree."""
        return Thought(
            id=self.id,
            content=self.content,
            session_id=self.session_id,
            direction=self.direction.clone(),
            parent_id=self.parent_id,
            depth=self.depth,
            created_at=self.created_at,
            children=[child.clone() for child in self.children],
            path=list(self.path),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "parent_id": self.parent_id,
            "session_id": self.session_id,
            "direction": self.direction.to_dict(),
            "depth": self.depth,
            "created_at": format_timestamp(self.created_at),
            "children": [child.to_dict() for child in self.children],
            "path": list(self.path),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Thought":
        return cls(
            id=data["id"],
            content=data.get("content", ""),
            session_id=data.get("session_id", ""),
            direction=Direction.from_dict(data.get("direction") or {}),
            parent_id=data.get("parent_id"),
            depth=data.get("depth", 0),
            created_at=parse_timestamp(data.get("created_at")),
            children=[cls.from_dict(child) for child in data.get("children") or []],
            path=list(data.get("path") or []),
        )
