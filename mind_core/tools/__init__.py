"""
TOOLS MODULE
============

MCP tool surface for mindCore.
"""

from .base import BaseTool, ToolDefinition, ToolParameter, ToolRegistry, ToolResult
from .session_tools import CreateSessionTool, ExpandThoughtTool, ExploreDirectionTool, GetSessionTool


def build_tool_registry(manager, expander, default_timeout: float = ToolRegistry.DEFAULT_TIMEOUT) -> ToolRegistry:
    """Registry with every mindCore tool registered."""
    registry = ToolRegistry(default_timeout=default_timeout)
    registry.register(ExpandThoughtTool(expander))
    registry.register(ExploreDirectionTool(expander))
    registry.register(CreateSessionTool(manager))
    registry.register(GetSessionTool(manager))
    return registry


__all__ = [
    'BaseTool',
    'ToolDefinition',
    'ToolParameter',
    'ToolRegistry',
    'ToolResult',
    'ExpandThoughtTool',
    'ExploreDirectionTool',
    'CreateSessionTool',
    'GetSessionTool',
    'build_tool_registry',
]
