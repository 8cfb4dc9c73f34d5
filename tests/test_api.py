import pytest
from fastapi.testclient import TestClient

from mind_core.api import create_app
from mind_core.config import AppConfig
from mind_core.storage import FileSessionStore


def make_client(manager, expander, **overrides) -> TestClient:
    config = AppConfig()
    for section, values in overrides.items():
        for key, value in values.items():
            setattr(getattr(config, section), key, value)
    return TestClient(create_app(manager, expander, config))


@pytest.fixture
def client(manager, expander):
    return make_client(manager, expander)


def create(client, concept="AI", user_id="user-42"):
    resp = client.post("/api/sessions", json={"user_id": user_id, "concept": concept})
    assert resp.status_code == 200, resp.text
    return resp.json()


# ----------------------------------------------------------------------------
# System
# ----------------------------------------------------------------------------

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["llm"]["backend"] == "fallback"


def test_health_reports_unavailable_store(tmp_path, expander):
    from mind_core.services import SessionManager

    store = FileSessionStore(str(tmp_path / "sessions"))
    client = make_client(SessionManager(store), expander)
    (tmp_path / "sessions").rmdir()

    resp = client.get("/health")
    assert resp.status_code == 503
    assert resp.json()["status"] == "unavailable"
    store.close()


# ----------------------------------------------------------------------------
# Sessions
# ----------------------------------------------------------------------------

def test_create_and_get_session(client):
    session = create(client)
    assert session["root_thought"]["content"] == "AI"
    assert session["context"] == ["AI"]

    resp = client.get(f"/api/sessions/{session['id']}")
    assert resp.status_code == 200
    assert resp.json()["id"] == session["id"]


def test_create_session_validation(client):
    assert client.post("/api/sessions", json={"user_id": "a b", "concept": "AI"}).status_code == 400
    assert client.post("/api/sessions", json={"concept": "   "}).status_code == 400

    resp = client.post("/api/sessions", json={"user_id": "u1"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "invalid request body"


def test_missing_session_is_404(client):
    resp = client.get("/api/sessions/nope")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "session not found: nope"}


def test_list_sessions(client):
    first = create(client, "first")
    second = create(client, "second")
    client.post(f"/api/sessions/{first['id']}/close")

    resp = client.get("/api/sessions", params={"user_id": "user-42"})
    ids = {s["id"] for s in resp.json()["sessions"]}
    assert ids == {first["id"], second["id"]}
    assert resp.json()["total"] == 2

    active = client.get("/api/sessions", params={"user_id": "user-42", "active_only": True}).json()
    assert [s["id"] for s in active["sessions"]] == [second["id"]]

    assert client.get("/api/sessions").status_code == 400


def test_delete_session(client):
    session = create(client)
    assert client.delete(f"/api/sessions/{session['id']}").status_code == 200
    assert client.get(f"/api/sessions/{session['id']}").status_code == 404
    assert client.delete(f"/api/sessions/{session['id']}").status_code == 200


def test_context_and_metadata(client):
    session = create(client)
    resp = client.post(f"/api/sessions/{session['id']}/context", json={"value": " goal: learn "})
    assert resp.json()["context"] == ["AI", "goal: learn"]
    assert client.post(f"/api/sessions/{session['id']}/context", json={"value": " "}).status_code == 400

    metadata = client.get(f"/api/sessions/{session['id']}/metadata").json()
    assert metadata == {"total_thoughts": 1, "max_depth": 0, "directions": ["Root"]}


# ----------------------------------------------------------------------------
# Thoughts
# ----------------------------------------------------------------------------

def test_thought_lifecycle(client):
    session = create(client)
    sid = session["id"]

    resp = client.post(f"/api/sessions/{sid}/thoughts", json={
        "content": "Supervised Learning",
        "direction": {"type": "deep", "title": "Learning"},
    })
    assert resp.status_code == 200
    thought_id = resp.json()["thought_id"]

    metadata = client.get(f"/api/sessions/{sid}/metadata").json()
    assert metadata["total_thoughts"] == 2
    assert metadata["max_depth"] == 1
    assert metadata["directions"] == ["Learning", "Root"]

    nested = client.post(f"/api/sessions/{sid}/thoughts", json={"content": "Regression", "parent_id": thought_id})
    nested_id = nested.json()["thought_id"]

    patched = client.patch(f"/api/sessions/{sid}/thoughts/{thought_id}", json={"content": "Deep Learning"})
    assert patched.status_code == 200
    assert patched.json()["path"] == ["AI", "Deep Learning"]
    assert patched.json()["children"][0]["path"] == ["AI", "Deep Learning", "Regression"]

    removed = client.delete(f"/api/sessions/{sid}/thoughts/{thought_id}")
    assert removed.status_code == 200
    assert removed.json()["root_thought"]["children"] == []

    assert client.delete(f"/api/sessions/{sid}/thoughts/{nested_id}").status_code == 404


def test_thought_validation(client):
    sid = create(client)["id"]
    assert client.post(f"/api/sessions/{sid}/thoughts", json={"content": ""}).status_code == 400
    bad_direction = {"content": "x", "direction": {"type": "deep", "title": "t", "relevance": 2}}
    assert client.post(f"/api/sessions/{sid}/thoughts", json=bad_direction).status_code == 400
    assert client.patch(f"/api/sessions/{sid}/thoughts/whatever", json={}).status_code == 400
    assert client.patch(f"/api/sessions/{sid}/thoughts/whatever", json={"content": "x"}).status_code == 404


def test_nan_relevance_is_rejected_before_storage(client):
    sid = create(client)["id"]
    body = '{"content": "x", "direction": {"type": "deep", "title": "T", "relevance": NaN}}'
    resp = client.post(f"/api/sessions/{sid}/thoughts", content=body, headers={"Content-Type": "application/json"})
    assert resp.status_code == 400

    fetched = client.get(f"/api/sessions/{sid}")
    assert fetched.status_code == 200
    assert fetched.json()["root_thought"]["children"] == []


# ----------------------------------------------------------------------------
# Expansion
# ----------------------------------------------------------------------------

def test_expand(client):
    resp = client.post("/api/expand", json={"concept": "AI", "expansion_type": "deep"})
    assert resp.status_code == 200
    assert [d["type"] for d in resp.json()["directions"]] == ["deep"]

    assert client.post("/api/expand", json={"concept": "AI", "expansion_type": "sideways"}).status_code == 400


def test_explore(client):
    sid = create(client)["id"]
    resp = client.post("/api/explore", json={
        "session_id": sid,
        "direction": {"type": "lateral", "title": "Biology"},
    })
    assert resp.status_code == 200
    assert resp.json()["content"] == "Biology - depth level 1"
    assert client.get(f"/api/sessions/{sid}/metadata").json()["total_thoughts"] == 2


# ----------------------------------------------------------------------------
# MCP
# ----------------------------------------------------------------------------

def test_mcp_tools_and_invoke(client):
    listing = client.get("/mcp/tools").json()
    assert "expand_thought" in listing["result"]
    assert len(listing["tools"]) == 4

    created = client.post("/mcp", json={"method": "create_session", "params": {"concept": "AI"}})
    assert created.status_code == 200
    session_id = created.json()["result"]["id"]

    fetched = client.post("/mcp", json={"method": "get_session", "params": {"session_id": session_id}})
    assert fetched.json()["result"]["root_thought"]["content"] == "AI"


def test_mcp_errors(client):
    resp = client.post("/mcp", json={"method": "nope"})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == 404

    resp = client.post("/mcp", json={"method": "get_session", "params": {"session_id": "missing"}})
    assert resp.status_code == 404
    assert "missing" in resp.json()["error"]["message"]


# ----------------------------------------------------------------------------
# Auth and rate limits
# ----------------------------------------------------------------------------

def test_token_required_when_configured(manager, expander):
    client = make_client(manager, expander, server={"api_token": "secret"})

    assert client.get("/health").status_code == 200
    assert client.get("/api/sessions", params={"user_id": "u1"}).status_code == 401
    assert client.get("/mcp/tools", headers={"Authorization": "Bearer wrong"}).status_code == 401

    ok = client.get("/api/sessions", params={"user_id": "u1"}, headers={"Authorization": "Bearer secret"})
    assert ok.status_code == 200
    via_query = client.get("/api/sessions", params={"user_id": "u1", "access_token": "secret"})
    assert via_query.status_code == 200


def test_rate_limit(manager, expander):
    client = make_client(manager, expander, rate_limits={"http_requests_per_minute": 2})

    for _ in range(2):
        assert client.get("/api/sessions", params={"user_id": "u1"}).status_code == 200
    limited = client.get("/api/sessions", params={"user_id": "u1"})
    assert limited.status_code == 429
    assert int(limited.headers["Retry-After"]) >= 1
    assert client.get("/mcp/tools").status_code == 200
