"""
TOOL_BASE
=========

MCP tool surface: what a tool declares, what it returns, and the registry
that dispatches ``POST /mcp`` calls.

A client sends ``{"method": <tool name>, "params": {...}}``. The registry
looks the tool up, keeps only the params the tool declares, and runs it
on a small worker pool with a timeout.

::

    BaseTool
    ├── definition  → ToolDefinition (name, description, parameters)
    └── execute()   → ToolResult (success, output, data, error, metadata)

    ToolRegistry
    ├── register(tool)
    ├── execute(name, params, timeout)
    └── get_schemas()

Failures never raise out of ``ToolRegistry.execute``. They come back as
``ToolResult(success=False)`` with ``metadata["status_code"]``:

- MindCoreError: its own status_code
- unknown tool: 404
- bad params: 400
- timeout: 504
- anything else: 500
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import InvalidRequestError, MindCoreError, ToolNotFoundError

logger = logging.getLogger(__name__)


# ============================================================================
# SCHEMA
# ============================================================================

@dataclass
class ToolParameter:
    """One named argument of a tool, published as JSON Schema."""
    name: str
    type: str  # JSON Schema type name
    description: str
    required: bool = True
    enum: Optional[List[str]] = None
    default: Optional[Any] = None
    items: Optional[Dict] = None  # element schema, arrays only

    def to_schema(self) -> Dict:
        optional = {
            "enum": self.enum or None,
            "default": self.default,
            "items": self.items if self.type == "array" else None,
        }
        schema = {"type": self.type, "description": self.description}
        schema.update({key: value for key, value in optional.items() if value is not None})
        return schema


@dataclass
class ToolDefinition:
    name: str
    description: str
    parameters: List[ToolParameter] = field(default_factory=list)

    @property
    def parameter_names(self) -> List[str]:
        return [p.name for p in self.parameters]

    def to_schema(self) -> Dict:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": {
                "type": "object",
                "properties": {p.name: p.to_schema() for p in self.parameters},
                "required": [p.name for p in self.parameters if p.required],
            },
        }


# ============================================================================
# RESULT
# ============================================================================

@dataclass
class ToolResult:
    """Outcome of one tool call. ``data`` is what MCP clients receive."""
    success: bool
    output: str = ""
    data: Optional[Any] = None
    error: Optional[str] = None
    metadata: Optional[Dict] = None

    @classmethod
    def failure(cls, error: str, status_code: int) -> "ToolResult":
        return cls(success=False, error=error, metadata={"status_code": status_code})

    @property
    def status_code(self) -> int:
        if self.success:
            return 200
        return (self.metadata or {}).get("status_code", 500)

    def to_dict(self) -> Dict:
        payload = {"success": self.success, "output": self.output}
        for key in ("data", "error", "metadata"):
            value = getattr(self, key)
            if value:
                payload[key] = value
        return payload

    def __str__(self) -> str:
        return self.output if self.success else f"tool failed ({self.status_code}): {self.error}"


# ============================================================================
# TOOLS
# ============================================================================

class BaseTool(ABC):
    """
    A named MCP operation.

    Subclasses provide ``definition`` and ``execute``. Bad input is
    reported by raising a MindCoreError; the registry turns it into a
    failed result.
    """

    @property
    @abstractmethod
    def definition(self) -> ToolDefinition:
        """Name, description and parameters."""

    @abstractmethod
    def execute(self, **kwargs) -> ToolResult:
        """Run with the declared parameters as keyword arguments."""

    @property
    def name(self) -> str:
        return self.definition.name

    def get_schema(self) -> Dict:
        return self.definition.to_schema()


class ToolRegistry:
    """Name → tool map plus a bounded worker pool for calls."""

    DEFAULT_TIMEOUT = 30  # seconds

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT):
        self.default_timeout = default_timeout
        self._by_name: Dict[str, BaseTool] = {}
        self._pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="mcp-tool")

    def register(self, tool: BaseTool) -> None:
        self._by_name[tool.name] = tool

    def list_tools(self) -> List[str]:
        return sorted(self._by_name)

    def get_schemas(self) -> List[Dict]:
        return [self._by_name[name].get_schema() for name in self.list_tools()]

    def execute(self, tool_name: str, parameters: Optional[Dict] = None,
                timeout: Optional[float] = None) -> ToolResult:
        """Run ``tool_name``; never raises."""
        tool = self._by_name.get(tool_name)
        if tool is None:
            return ToolResult.failure(f"mcp tool not found: {tool_name}", ToolNotFoundError.status_code)
        if parameters is not None and not isinstance(parameters, dict):
            return ToolResult.failure("params must be an object", InvalidRequestError.status_code)

        declared = set(tool.definition.parameter_names)
        kwargs = {key: value for key, value in (parameters or {}).items() if key in declared}
        limit = timeout or self.default_timeout

        try:
            return self._pool.submit(tool.execute, **kwargs).result(timeout=limit)
        except MindCoreError as e:
            return ToolResult.failure(e.message, e.status_code)
        except FuturesTimeoutError:
            return ToolResult.failure(f"{tool_name} did not finish within {limit}s", 504)
        except TypeError as e:
            return ToolResult.failure(f"bad parameters for {tool_name}: {e}", InvalidRequestError.status_code)
        except Exception as e:
            logger.exception(f"Tool {tool_name} crashed")
            return ToolResult.failure(f"{tool_name} failed: {e}", 500)

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False)
