from datetime import timedelta

import pytest

from mind_core.errors import (
    InvalidRequestError,
    SessionNotFoundError,
    StoreUnavailableError,
    ThoughtNotFoundError,
)
from mind_core.models import Direction, DirectionType, Thought, ThoughtUpdate, utc_now
from mind_core.services import SessionManager
from mind_core.storage import FileSessionStore, InMemorySessionStore

from tests.helpers import at, run_concurrently, stamped


class FlakyDeleteStore(InMemorySessionStore):
    """Refuses to delete the ids it is told to."""

    def __init__(self, failing_ids):
        super().__init__()
        self.failing_ids = set(failing_ids)

    def delete(self, session_id: str) -> None:
        if session_id in self.failing_ids:
            raise StoreUnavailableError(f"disk refused {session_id}")
        super().delete(session_id)


def test_user_42_scenario(manager):
    session = manager.create_session("user-42", "AI")
    assert session.root_thought.content == "AI"
    assert session.root_thought.depth == 0

    child = Thought.create("Supervised Learning", direction=Direction(type=DirectionType.DEEP, title="Learning"))
    updated = manager.add_thought_to_session(session.id, child)

    metadata = updated.get_metadata()
    assert metadata.total_thoughts == 2
    assert metadata.max_depth == 1
    assert manager.get_metadata(session.id).to_dict() == metadata.to_dict()


def test_create_session_requires_concept(manager):
    with pytest.raises(InvalidRequestError):
        manager.create_session("u1", "   ")


def test_get_session_errors(manager):
    with pytest.raises(InvalidRequestError):
        manager.get_session("")
    with pytest.raises(SessionNotFoundError):
        manager.get_session("missing")


def test_get_session_reads_through_and_caches(memory_store):
    session = stamped("u1", "AI", at(9))
    memory_store.save(session)
    manager = SessionManager(memory_store)

    assert manager.cached_session_ids() == []
    assert manager.get_session(session.id).id == session.id
    assert manager.cached_session_ids() == [session.id]


def test_returned_sessions_are_isolated_from_cache(manager):
    session = manager.create_session("u1", "AI")
    session.context.append("local edit")

    loaded = manager.get_session(session.id)
    assert loaded.context == ["AI"]
    loaded.root_thought.content = "another local edit"
    assert manager.get_session(session.id).root_thought.content == "AI"


def test_update_session_stamps_and_persists(manager, memory_store):
    session = manager.create_session("u1", "AI")
    session.updated_at = at(1)
    session.add_context("goal: explore")

    manager.update_session(session)

    stored = memory_store.get(session.id)
    assert stored.context == ["AI", "goal: explore"]
    assert stored.updated_at > at(1)
    assert manager.get_session(session.id).to_dict() == stored.to_dict()


def test_failed_update_leaves_cache_untouched(manager, memory_store):
    session = manager.create_session("u1", "AI")
    memory_store.delete(session.id)

    session.add_context("lost")
    with pytest.raises(SessionNotFoundError):
        manager.update_session(session)
    assert manager.get_session(session.id).context == ["AI"]


def test_delete_session_evicts(manager):
    session = manager.create_session("u1", "AI")
    manager.delete_session(session.id)
    manager.delete_session(session.id)

    assert manager.cached_session_ids() == []
    with pytest.raises(SessionNotFoundError):
        manager.get_session(session.id)


def test_add_thought_to_explicit_parent(manager):
    session = manager.create_session("u1", "AI")
    first = Thought.create("Learning")
    session = manager.add_thought_to_session(session.id, first)

    nested = Thought.create("Regression")
    nested.parent_id = first.id
    session = manager.add_thought_to_session(session.id, nested)

    node, parent = session.find_thought(nested.id)
    assert parent.id == first.id
    assert node.path == ["AI", "Learning", "Regression"]
    assert node.session_id == session.id


def test_add_thought_with_unknown_parent_goes_under_root(manager):
    session = manager.create_session("u1", "AI")
    orphan = Thought.create("Ethics")
    orphan.parent_id = "nope"

    session = manager.add_thought_to_session(session.id, orphan)

    assert session.root_thought.children[0].id == orphan.id
    assert session.root_thought.children[0].depth == 1


def test_add_thought_to_empty_tree_becomes_root(manager):
    session = manager.create_session("u1", "AI")
    manager.delete_thought(session.id, session.root_thought.id)

    replacement = Thought.create("Fresh start")
    replacement.parent_id = "stale"
    session = manager.add_thought_to_session(session.id, replacement)

    assert session.root_thought.id == replacement.id
    assert session.root_thought.parent_id is None
    assert session.root_thought.depth == 0


def test_update_and_delete_thought(manager):
    session = manager.create_session("u1", "AI")
    child = Thought.create("Learning")
    manager.add_thought_to_session(session.id, child)

    updated = manager.update_thought(session.id, child.id, ThoughtUpdate(content="Deep Learning"))
    assert updated.path == ["AI", "Deep Learning"]
    assert manager.get_session(session.id).root_thought.children[0].content == "Deep Learning"

    remaining = manager.delete_thought(session.id, child.id)
    assert remaining.get_metadata().total_thoughts == 1
    with pytest.raises(ThoughtNotFoundError):
        manager.delete_thought(session.id, child.id)


def test_close_and_context(manager):
    session = manager.create_session("u1", "AI")
    manager.add_context(session.id, "goal: teach")
    closed = manager.close_session(session.id)

    assert closed.is_active is False
    assert closed.context == ["AI", "goal: teach"]


def test_list_sessions_newest_first(memory_store):
    older = stamped("u1", "first", at(9))
    newer = stamped("u1", "second", at(10))
    memory_store.save(older)
    memory_store.save(newer)
    manager = SessionManager(memory_store)

    assert [s.id for s in manager.list_sessions("u1")] == [newer.id, older.id]
    with pytest.raises(InvalidRequestError):
        manager.list_sessions("")


def test_active_sessions_filter(manager):
    keep = manager.create_session("u1", "AI")
    gone = manager.create_session("u1", "ML")
    manager.close_session(gone.id)

    assert [s.id for s in manager.get_active_sessions_by_user("u1")] == [keep.id]


def test_cleanup_deletes_stale_sessions(manager):
    stale = manager.create_session("u1", "AI")
    later = utc_now() + timedelta(hours=25)

    assert manager.cleanup_expired_sessions(now=later) == 1
    assert manager.cached_session_ids() == []
    with pytest.raises(SessionNotFoundError):
        manager.get_session(stale.id)


def test_cleanup_keeps_recent_sessions(manager):
    manager.create_session("u1", "AI")
    assert manager.cleanup_expired_sessions() == 0


def test_cleanup_is_best_effort():
    store = FlakyDeleteStore(failing_ids=[])
    manager = SessionManager(store)
    failing = manager.create_session("u1", "stuck")
    other = manager.create_session("u1", "fine")
    store.failing_ids.add(failing.id)

    with pytest.raises(StoreUnavailableError):
        manager.cleanup_expired_sessions(now=utc_now() + timedelta(days=2))

    with pytest.raises(SessionNotFoundError):
        store.get(other.id)
    assert store.get(failing.id).id == failing.id


def test_health_check(tmp_path):
    store = FileSessionStore(str(tmp_path / "sessions"))
    manager = SessionManager(store)
    manager.health_check(timeout=1.0)

    (tmp_path / "sessions").rmdir()
    with pytest.raises(StoreUnavailableError):
        manager.health_check(timeout=1.0)
    store.close()

    with pytest.raises(StoreUnavailableError):
        SessionManager(None).health_check()


def test_parallel_edits_on_distinct_sessions_keep_cache_and_store_in_step(store):
    manager = SessionManager(store)
    ids = [manager.create_session("u1", f"concept {i}").id for i in range(6)]

    def annotate(session_id):
        for n in range(5):
            manager.add_context(session_id, f"note {n}")
        manager.add_thought_to_session(session_id, Thought.create("child", session_id))
        return session_id

    outcomes = run_concurrently(annotate, [(sid,) for sid in ids])
    assert outcomes == ids

    for sid in ids:
        cached = manager.get_session(sid)
        assert cached.to_dict() == store.get(sid).to_dict()
        assert cached.context[1:] == [f"note {n}" for n in range(5)]
        assert cached.get_metadata().total_thoughts == 2
    assert manager.cached_session_ids() == sorted(ids)
