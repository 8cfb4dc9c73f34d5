from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mind_core.services import LLMOrchestrator, SessionManager, ThoughtExpander  # noqa: E402
from mind_core.storage import FileSessionStore, InMemorySessionStore  # noqa: E402


@pytest.fixture
def memory_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def file_store(tmp_path):
    store = FileSessionStore(str(tmp_path / "sessions"))
    yield store
    store.close()


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        yield InMemorySessionStore()
        return
    backend = FileSessionStore(str(tmp_path / "sessions"))
    yield backend
    backend.close()


@pytest.fixture
def manager(memory_store) -> SessionManager:
    return SessionManager(memory_store)


@pytest.fixture
def offline_llm() -> LLMOrchestrator:
    return LLMOrchestrator()


@pytest.fixture
def expander(offline_llm, manager) -> ThoughtExpander:
    return ThoughtExpander(offline_llm, manager)
