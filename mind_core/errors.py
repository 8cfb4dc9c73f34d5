"""
ERRORS
======

Exception hierarchy for mindCore.

Every error raised across a public boundary derives from ``MindCoreError``
and carries a ``status_code`` so the API and tool layers can translate it
without inspecting the message:

    MindCoreError
    ├── InvalidRequestError        400  bad input, caller can fix it
    ├── SessionNotFoundError       404  no stored record for the id
    ├── ThoughtNotFoundError       404  id not present in the session tree
    ├── ToolNotFoundError          404  unknown MCP tool name
    ├── SessionAlreadyExistsError  409  save() on an id that exists
    ├── RateLimitExceeded          429  client over its request budget
    └── StoreUnavailableError      503  persistence medium failed
"""

from typing import Optional


class MindCoreError(Exception):
    """Base class for all mindCore errors."""

    status_code = 500

    def __init__(self, message: str = ""):
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return "internal error"


class InvalidRequestError(MindCoreError):
    status_code = 400

    @classmethod
    def default_message(cls) -> str:
        return "invalid request"


class SessionNotFoundError(MindCoreError):
    status_code = 404

    def __init__(self, session_id: str = ""):
        self.session_id = session_id
        message = f"session not found: {session_id}" if session_id else ""
        super().__init__(message)

    @classmethod
    def default_message(cls) -> str:
        return "session not found"


class ThoughtNotFoundError(MindCoreError):
    status_code = 404

    def __init__(self, thought_id: str = ""):
        self.thought_id = thought_id
        message = f"thought not found: {thought_id}" if thought_id else ""
        super().__init__(message)

    @classmethod
    def default_message(cls) -> str:
        return "thought not found"


class ToolNotFoundError(MindCoreError):
    status_code = 404

    @classmethod
    def default_message(cls) -> str:
        return "mcp tool not found"


class SessionAlreadyExistsError(MindCoreError):
    status_code = 409

    def __init__(self, session_id: str = ""):
        self.session_id = session_id
        message = f"session already exists: {session_id}" if session_id else ""
        super().__init__(message)

    @classmethod
    def default_message(cls) -> str:
        return "session already exists"


class RateLimitExceeded(MindCoreError):
    """Rate limit has been exceeded."""

    status_code = 429

    def __init__(self, message: str = "", retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message)

    @classmethod
    def default_message(cls) -> str:
        return "rate limit exceeded"


class StoreUnavailableError(MindCoreError):
    status_code = 503

    @classmethod
    def default_message(cls) -> str:
        return "session store unavailable"
