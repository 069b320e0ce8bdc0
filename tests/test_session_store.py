"""Tests for the file-backed session store."""

from datetime import timedelta

import pytest

from ideagen.errors import SessionConflictError, SessionNotFoundError
from ideagen.schemas.models import SessionStatus, utcnow

from conftest import OWNER


def test_create_starts_pending(session_store):
    s = session_store.create(OWNER, "preview", "https://example.com")
    assert s.id.startswith("sess_")
    assert s.status == SessionStatus.PENDING
    assert s.current_step == 0
    assert s.total_steps == 6
    assert s.version == 0
    assert session_store.get(s.id, OWNER) == s


def test_get_is_owner_scoped(session_store):
    s = session_store.create(OWNER, "preview", "")
    assert session_store.get(s.id, "mallory") is None
    with pytest.raises(SessionNotFoundError):
        session_store.update(s.id, "mallory", {"status": SessionStatus.EXTRACTING})
    assert session_store.delete(s.id, "mallory") is False


def test_update_bumps_version_and_timestamp(session_store):
    s = session_store.create(OWNER, "preview", "")
    updated = session_store.update(s.id, OWNER, {"status": SessionStatus.EXTRACTING, "current_step": 2})
    assert updated.version == 1
    assert updated.status == SessionStatus.EXTRACTING
    assert updated.last_updated_at >= s.last_updated_at


def test_update_with_stale_version_conflicts(session_store):
    s = session_store.create(OWNER, "preview", "")
    session_store.update(s.id, OWNER, {"current_step": 1}, expected_version=0)
    with pytest.raises(SessionConflictError):
        session_store.update(s.id, OWNER, {"current_step": 2}, expected_version=0)
    assert session_store.get(s.id, OWNER).current_step == 1


def test_update_rejects_unknown_fields(session_store):
    s = session_store.create(OWNER, "preview", "")
    with pytest.raises(ValueError):
        session_store.update(s.id, OWNER, {"owner_id": "mallory"})


def test_get_active_returns_newest_non_terminal(session_store):
    older = session_store.create(OWNER, "first", "")
    newer = session_store.create(OWNER, "second", "")
    session_store.mark_failed(newer.id, OWNER, "boom")
    assert session_store.get_active(OWNER).id == older.id

    session_store.mark_completed(older.id, OWNER, "idea_1")
    assert session_store.get_active(OWNER) is None


def test_mark_helpers(session_store):
    s = session_store.create(OWNER, "preview", "")
    failed = session_store.mark_failed(s.id, OWNER, "Rate limit")
    assert failed.status == SessionStatus.FAILED
    assert failed.error_message == "Rate limit"
    assert failed.completed_at is not None

    other = session_store.create(OWNER, "preview", "")
    done = session_store.mark_completed(other.id, OWNER, "idea_abc")
    assert done.status == SessionStatus.COMPLETED
    assert done.idea_id == "idea_abc"


def test_list_newest_first(session_store):
    a = session_store.create(OWNER, "a", "")
    b = session_store.create(OWNER, "b", "")
    session_store.create("someone-else", "c", "")
    assert [s.id for s in session_store.list(OWNER)] == [b.id, a.id]


def test_sweep_removes_old_terminal_sessions_only(session_store):
    old_done = session_store.create(OWNER, "a", "")
    old_live = session_store.create(OWNER, "b", "")
    new_done = session_store.create(OWNER, "c", "")
    session_store.mark_completed(old_done.id, OWNER, "idea_1")
    session_store.mark_completed(new_done.id, OWNER, "idea_2")

    # Age two sessions by rewriting their files
    for sid in (old_done.id, old_live.id):
        s = session_store.get(sid, OWNER)
        session_store._write(s.model_copy(update={"started_at": utcnow() - timedelta(days=5)}))

    assert session_store.sweep(OWNER, older_than_days=3) == 1
    assert session_store.get(old_done.id, OWNER) is None
    assert session_store.get(old_live.id, OWNER) is not None
    assert session_store.get(new_done.id, OWNER) is not None


def test_delete(session_store):
    s = session_store.create(OWNER, "preview", "")
    assert session_store.delete(s.id, OWNER) is True
    assert session_store.get(s.id, OWNER) is None
    assert session_store.delete(s.id, OWNER) is False


def test_sweep_leaves_other_owners_alone(session_store):
    mine = session_store.create(OWNER, "a", "")
    theirs = session_store.create("alice", "b", "")
    session_store.mark_failed(mine.id, OWNER, "boom")
    session_store.mark_failed(theirs.id, "alice", "boom")
    for s in (session_store.get(mine.id, OWNER), session_store.get(theirs.id, "alice")):
        session_store._write(s.model_copy(update={"started_at": utcnow() - timedelta(days=5)}))

    assert session_store.sweep(OWNER) == 1
    assert session_store.get(mine.id, OWNER) is None
    assert session_store.get(theirs.id, "alice") is not None
