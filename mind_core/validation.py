"""
VALIDATION
==========

Boundary checks for input arriving over HTTP or MCP.

Every function here raises ``InvalidRequestError`` with a message naming
the offending field. Tree-mutation code in ``mind_core.models`` never
calls into this module; by the time a value reaches a Session it has
already been accepted here.
"""

import math
from typing import Any, Dict, Iterable, List, Optional

from .errors import InvalidRequestError
from .models import Direction, DirectionType, ThoughtUpdate


MAX_CONCEPT_LENGTH = 200
MAX_USER_ID_LENGTH = 64
MAX_SESSION_ID_LENGTH = 64
MAX_CONTEXT_ITEMS = 20
MAX_CONTEXT_ITEM_LENGTH = 120
MAX_DIRECTION_TITLE_LENGTH = 120
MAX_DIRECTION_DESC_LENGTH = 600
MAX_KEYWORD_LENGTH = 50
MAX_DIRECTION_KEYWORDS = 16
MAX_THOUGHT_CONTENT_LENGTH = 400

_WHITESPACE = (" ", "\t", "\r", "\n")


def _has_whitespace(value: str) -> bool:
    return any(ch in value for ch in _WHITESPACE)


def validate_concept(concept: Optional[str]) -> str:
    """Return the trimmed concept."""
    concept = (concept or "").strip()
    if not concept:
        raise InvalidRequestError("concept is required")
    if len(concept) > MAX_CONCEPT_LENGTH:
        raise InvalidRequestError("concept is too long")
    return concept


def validate_user_id(user_id: Optional[str]) -> str:
    """User ids are optional; an empty id is returned as ''."""
    user_id = (user_id or "").strip()
    if not user_id:
        return ""
    if _has_whitespace(user_id):
        raise InvalidRequestError("user_id must not contain whitespace")
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise InvalidRequestError("user_id is too long")
    return user_id


def validate_session_id(session_id: Optional[str]) -> str:
    session_id = (session_id or "").strip()
    if not session_id:
        raise InvalidRequestError("session_id is required")
    if _has_whitespace(session_id):
        raise InvalidRequestError("session_id must not contain whitespace")
    if len(session_id) > MAX_SESSION_ID_LENGTH:
        raise InvalidRequestError("session_id is too long")
    return session_id


def normalize_context(items: Optional[Iterable[str]]) -> List[str]:
    """Trim entries and drop empties, enforcing count and length limits."""
    items = list(items or [])
    if len(items) > MAX_CONTEXT_ITEMS:
        raise InvalidRequestError("context has too many entries")

    normalized = []
    for item in items:
        if not isinstance(item, str):
            raise InvalidRequestError("context entries must be strings")
        trimmed = item.strip()
        if not trimmed:
            continue
        if len(trimmed) > MAX_CONTEXT_ITEM_LENGTH:
            raise InvalidRequestError("context item is too long")
        normalized.append(trimmed)
    return normalized


def normalize_keywords(items: Optional[Iterable[str]]) -> List[str]:
    cleaned = []
    for item in items or []:
        if not isinstance(item, str):
            raise InvalidRequestError("direction.keywords entries must be strings")
        trimmed = item.strip()
        if not trimmed:
            continue
        if len(trimmed) > MAX_KEYWORD_LENGTH:
            raise InvalidRequestError("direction.keywords contains an entry that is too long")
        cleaned.append(trimmed)
        if len(cleaned) > MAX_DIRECTION_KEYWORDS:
            raise InvalidRequestError("direction.keywords has too many entries")
    return cleaned


def parse_direction_type(value: Any) -> DirectionType:
    if isinstance(value, DirectionType):
        return value
    normalized = str(value or "").strip().lower()
    if not normalized:
        raise InvalidRequestError("direction.type is required")
    try:
        return DirectionType(normalized)
    except ValueError:
        raise InvalidRequestError(
            f"direction.type is invalid (expected one of {', '.join(DirectionType.values())})"
        )


def build_direction(payload: Optional[Dict[str, Any]]) -> Direction:
    """
    Validate a raw direction payload and build a Direction from it.

    Unlike ``Direction`` itself, which clamps relevance, an out-of-range
    relevance is rejected here.
    """
    if not payload:
        raise InvalidRequestError("direction is required")
    if not isinstance(payload, dict):
        raise InvalidRequestError("direction must be an object")

    direction_type = parse_direction_type(payload.get("type"))

    title = str(payload.get("title") or "").strip()
    if not title:
        raise InvalidRequestError("direction.title is required")
    if len(title) > MAX_DIRECTION_TITLE_LENGTH:
        raise InvalidRequestError("direction.title is too long")

    description = str(payload.get("description") or "").strip()
    if len(description) > MAX_DIRECTION_DESC_LENGTH:
        raise InvalidRequestError("direction.description is too long")

    keywords = normalize_keywords(payload.get("keywords"))

    relevance = payload.get("relevance", 0.0)
    if relevance is None:
        relevance = 0.0
    if isinstance(relevance, bool) or not isinstance(relevance, (int, float)):
        raise InvalidRequestError("direction.relevance must be a number")
    if not math.isfinite(relevance) or relevance < 0 or relevance > 1:
        raise InvalidRequestError("direction.relevance must be between 0 and 1")

    return Direction(
        type=direction_type,
        title=title,
        description=description,
        keywords=keywords,
        relevance=float(relevance),
    )


def validate_thought_content(content: Optional[str]) -> str:
    trimmed = (content or "").strip()
    if not trimmed:
        raise InvalidRequestError("content must not be empty")
    if len(trimmed) > MAX_THOUGHT_CONTENT_LENGTH:
        raise InvalidRequestError("content is too long")
    return trimmed


def validate_thought_update(payload: Optional[Dict[str, Any]]) -> ThoughtUpdate:
    """
    Build a ThoughtUpdate from a raw payload with ``content`` and/or
    ``direction`` keys. At least one must be present.
    """
    if payload is None:
        raise InvalidRequestError("update payload is required")

    content = payload.get("content")
    direction = payload.get("direction")
    if content is None and direction is None:
        raise InvalidRequestError("at least one field must be provided")

    update = ThoughtUpdate()
    if content is not None:
        update.content = validate_thought_content(content)
    if direction is not None:
        update.direction = build_direction(direction)
    return update
