"""
DIRECTION
=========

Value object classifying how a thought relates to its parent.

A direction is sanitized rather than rejected: relevance is clamped to
[0, 1] and keywords are deduplicated by exact match with insertion order
preserved. Rejecting bad input is the job of ``mind_core.validation``.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List


class DirectionType(str, Enum):
    """Kind of expansion a direction represents."""
    BROAD = "broad"        # survey the landscape
    DEEP = "deep"          # drill into mechanics
    LATERAL = "lateral"    # borrow from adjacent domains
    CRITICAL = "critical"  # challenge assumptions

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


@dataclass
class Direction:
    """Direction metadata attached to every thought."""
    type: DirectionType = DirectionType.BROAD
    title: str = ""
    description: str = ""
    keywords: List[str] = field(default_factory=list)
    relevance: float = 0.0

    def __post_init__(self):
        if not isinstance(self.type, DirectionType):
            self.type = DirectionType(str(self.type).strip().lower())
        keywords = self.keywords
        self.keywords = []
        self.add_keywords(keywords)
        self.set_relevance(self.relevance)

    def add_keyword(self, keyword: str) -> None:
        """Append a keyword unless it is empty or already present."""
        if not keyword or keyword in self.keywords:
            return
        self.keywords.append(keyword)

    def add_keywords(self, keywords: Iterable[str]) -> None:
        for keyword in keywords or []:
            self.add_keyword(keyword)

    def set_relevance(self, score: float) -> None:
        """Set relevance, clamped to [0, 1]. NaN counts as 0."""
        score = float(score or 0.0)
        if math.isnan(score) or score < 0:
            self.relevance = 0.0
        elif score > 1:
            self.relevance = 1.0
        else:
            self.relevance = score

    @property
    def label(self) -> str:
        """Title if present, else the type name."""
        return self.title or self.type.value

    def clone(self) -> "Direction":
        return Direction(
            type=self.type,
            title=self.title,
            description=self.description,
            keywords=list(self.keywords),
            relevance=self.relevance,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "keywords": list(self.keywords),
            "relevance": self.relevance,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Direction":
        return cls(
            type=data.get("type") or DirectionType.BROAD,
            title=data.get("title", ""),
            description=data.get("description", ""),
            keywords=data.get("keywords") or [],
            relevance=data.get("relevance", 0.0),
        )
