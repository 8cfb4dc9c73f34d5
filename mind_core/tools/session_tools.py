"""
Session and expansion tools exposed over MCP.

- expand_thought:    directions + preview thoughts for a concept
- explore_direction: grow a session's tree along a direction
- create_session:    start a session from a concept
- get_session:       fetch a session by id
"""

from typing import Any, Dict, List, Optional

from ..errors import InvalidRequestError
from ..models import DirectionType
from ..services import ExpansionRequest, SessionManager, ThoughtExpander
from ..validation import (
    build_direction,
    normalize_context,
    parse_direction_type,
    validate_concept,
    validate_session_id,
    validate_user_id,
)
from .base import BaseTool, ToolDefinition, ToolParameter, ToolResult

DEFAULT_MAX_DIRECTIONS = 4
MAX_GENERATED_DIRECTIONS = 12

_DIRECTION_ITEMS = {
    "type": "object",
    "properties": {
        "type": {"type": "string", "enum": DirectionType.values()},
        "title": {"type": "string"},
        "description": {"type": "string"},
        "keywords": {"type": "array", "items": {"type": "string"}},
        "relevance": {"type": "number"},
    },
}


def _as_string(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidRequestError(f"{name} must be a string")
    return value


class ExpandThoughtTool(BaseTool):
    """Generate multiple directions of thought for a concept."""

    def __init__(self, expander: ThoughtExpander):
        self.expander = expander

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="expand_thought",
            description="Generate multiple directions of thought for a given concept",
            parameters=[
                ToolParameter(name="concept", type="string", description="Concept to expand"),
                ToolParameter(name="context", type="array", description="Background notes such as 'goal: ...'",
                              required=False, items={"type": "string"}),
                ToolParameter(name="expansion_type", type="string", description="Only return this kind of direction",
                              required=False, enum=DirectionType.values()),
                ToolParameter(name="max_directions", type="integer", description="Maximum directions to return",
                              required=False, default=DEFAULT_MAX_DIRECTIONS),
            ]
        )

    def execute(self, concept: str = "", context: Optional[List[str]] = None,
                expansion_type: Optional[str] = None,
                max_directions: Optional[int] = None) -> ToolResult:
        concept = validate_concept(_as_string(concept, "concept"))
        if context is not None and not isinstance(context, list):
            raise InvalidRequestError("context must be an array of strings")
        context = normalize_context(context)

        direction_type = None
        if expansion_type:
            direction_type = parse_direction_type(_as_string(expansion_type, "expansion_type"))

        if isinstance(max_directions, bool) or not isinstance(max_directions, (int, float, type(None))):
            raise InvalidRequestError("max_directions must be a number")
        limit = int(max_directions or 0)
        if limit <= 0:
            limit = DEFAULT_MAX_DIRECTIONS
        if limit > MAX_GENERATED_DIRECTIONS:
            raise InvalidRequestError("max_directions is too large")

        result = self.expander.expand(ExpansionRequest(
            concept=concept,
            context=context,
            expansion_type=direction_type,
            max_directions=limit,
        ))
        return ToolResult(
            success=True,
            output=f"Generated {len(result.directions)} directions for '{concept}'",
            data=result.to_dict(),
        )


class ExploreDirectionTool(BaseTool):
    """Explore a direction inside an existing session."""

    def __init__(self, expander: ThoughtExpander):
        self.expander = expander

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="explore_direction",
            description="Deeply explore a selected direction within an existing session",
            parameters=[
                ToolParameter(name="session_id", type="string", description="Target session id"),
                ToolParameter(name="direction", type="object", description="Direction to explore"),
                ToolParameter(name="parent_id", type="string", description="Thought to attach under (default: root)",
                              required=False),
            ]
        )

    def get_schema(self) -> Dict:
        schema = super().get_schema()
        schema["input_schema"]["properties"]["direction"].update(_DIRECTION_ITEMS)
        return schema

    def execute(self, session_id: str = "", direction: Optional[Dict] = None,
                parent_id: Optional[str] = None) -> ToolResult:
        session_id = validate_session_id(_as_string(session_id, "session_id"))
        if not isinstance(direction, dict):
            raise InvalidRequestError("direction payload is required")
        parsed = build_direction(direction)

        thought = self.expander.explore_direction(parsed, session_id, parent_id=_as_string(parent_id, "parent_id"))
        return ToolResult(
            success=True,
            output=f"Added thought {thought.id} to session {session_id}",
            data=thought.to_dict(),
        )


class CreateSessionTool(BaseTool):
    """Create a new thought session for a user."""

    def __init__(self, manager: SessionManager):
        self.manager = manager

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="create_session",
            description="Create a new thought session for a user",
            parameters=[
                ToolParameter(name="user_id", type="string", description="Owner id (no whitespace)",
                              required=False),
                ToolParameter(name="concept", type="string", description="Seed concept for the root thought"),
            ]
        )

    def execute(self, user_id: str = "", concept: str = "") -> ToolResult:
        user_id = validate_user_id(_as_string(user_id, "user_id"))
        concept = validate_concept(_as_string(concept, "concept"))

        session = self.manager.create_session(user_id, concept)
        return ToolResult(
            success=True,
            output=f"Created session {session.id}",
            data=session.to_dict(),
        )


class GetSessionTool(BaseTool):
    """Retrieve an existing session by id."""

    def __init__(self, manager: SessionManager):
        self.manager = manager

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="get_session",
            description="Retrieve an existing session by ID",
            parameters=[
                ToolParameter(name="session_id", type="string", description="Session id"),
            ]
        )

    def execute(self, session_id: str = "") -> ToolResult:
        session_id = validate_session_id(_as_string(session_id, "session_id"))
        session = self.manager.get_session(session_id)
        return ToolResult(
            success=True,
            output=f"Session {session.id} ({session.get_metadata().total_thoughts} thoughts)",
            data=session.to_dict(),
        )
