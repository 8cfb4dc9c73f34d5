import threading

import pytest

from mind_core.errors import SessionNotFoundError
from mind_core.tools import (
    BaseTool,
    ToolDefinition,
    ToolParameter,
    ToolRegistry,
    ToolResult,
    build_tool_registry,
)


class SlowTool(BaseTool):
    def __init__(self):
        self.release = threading.Event()

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(name="slow", description="Waits to be released")

    def execute(self) -> ToolResult:
        self.release.wait(2.0)
        return ToolResult(success=True, output="done")


class ExplodingTool(BaseTool):
    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name="explode",
            description="Always fails",
            parameters=[ToolParameter(name="kind", type="string", description="Failure kind")],
        )

    def execute(self, kind: str) -> ToolResult:
        if kind == "missing":
            raise SessionNotFoundError("abc")
        raise RuntimeError("kaboom")


@pytest.fixture
def registry(manager, expander):
    registry = build_tool_registry(manager, expander)
    yield registry
    registry.shutdown()


def test_registry_lists_all_tools(registry):
    assert registry.list_tools() == ["create_session", "expand_thought", "explore_direction", "get_session"]

    schemas = {s["name"]: s for s in registry.get_schemas()}
    expand = schemas["expand_thought"]["input_schema"]
    assert expand["required"] == ["concept"]
    assert expand["properties"]["expansion_type"]["enum"] == ["broad", "deep", "lateral", "critical"]
    assert schemas["explore_direction"]["input_schema"]["properties"]["direction"]["properties"]["type"]["enum"]


def test_unknown_tool_is_404(registry):
    result = registry.execute("no_such_tool", {})
    assert not result.success
    assert result.status_code == 404


def test_params_must_be_an_object(registry):
    result = registry.execute("get_session", ["not", "a", "dict"])
    assert result.status_code == 400


def test_create_then_get_session(registry):
    created = registry.execute("create_session", {"user_id": "user-42", "concept": "AI", "extra": "ignored"})
    assert created.success
    session_id = created.data["id"]
    assert created.data["root_thought"]["content"] == "AI"

    fetched = registry.execute("get_session", {"session_id": session_id})
    assert fetched.success
    assert fetched.data["user_id"] == "user-42"


def test_get_missing_session_maps_to_404(registry):
    result = registry.execute("get_session", {"session_id": "missing"})
    assert result.status_code == 404
    assert "missing" in result.error


def test_create_session_validates_input(registry):
    assert registry.execute("create_session", {"user_id": "has space", "concept": "AI"}).status_code == 400
    assert registry.execute("create_session", {"concept": 42}).status_code == 400


def test_expand_thought(registry):
    result = registry.execute("expand_thought", {"concept": "AI", "context": ["goal: learn"]})
    assert result.success
    assert len(result.data["directions"]) == 3
    assert len(result.data["thoughts"]) == 3

    filtered = registry.execute("expand_thought", {"concept": "AI", "expansion_type": "lateral"})
    assert [d["type"] for d in filtered.data["directions"]] == ["lateral"]


@pytest.mark.parametrize("params", [
    {"concept": ""},
    {"concept": "AI", "max_directions": 13},
    {"concept": "AI", "max_directions": "four"},
    {"concept": "AI", "expansion_type": "sideways"},
    {"concept": "AI", "context": "not a list"},
])
def test_expand_thought_rejects(registry, params):
    assert registry.execute("expand_thought", params).status_code == 400


def test_explore_direction_tool(registry, manager):
    session = manager.create_session("u1", "AI")
    result = registry.execute("explore_direction", {
        "session_id": session.id,
        "direction": {"type": "deep", "title": "Mechanics"},
    })

    assert result.success
    assert result.data["depth"] == 1
    assert manager.get_metadata(session.id).total_thoughts == 2

    bad = registry.execute("explore_direction", {"session_id": session.id, "direction": {"type": "deep"}})
    assert bad.status_code == 400


def test_error_mapping():
    registry = ToolRegistry(default_timeout=0.05)
    slow = SlowTool()
    registry.register(slow)
    registry.register(ExplodingTool())

    assert registry.execute("explode", {"kind": "missing"}).status_code == 404
    crashed = registry.execute("explode", {"kind": "other"})
    assert crashed.status_code == 500
    assert "kaboom" in crashed.error
    assert registry.execute("explode", {}).status_code == 400

    timed_out = registry.execute("slow")
    assert timed_out.status_code == 504
    slow.release.set()
    registry.shutdown()


def test_tool_result_to_dict():
    assert ToolResult(success=True, output="ok", data={"a": 1}).to_dict() == {
        "success": True, "output": "ok", "data": {"a": 1},
    }
    failure = ToolResult.failure("nope", 409)
    assert failure.to_dict()["metadata"] == {"status_code": 409}
    assert str(failure) == "tool failed (409): nope"
