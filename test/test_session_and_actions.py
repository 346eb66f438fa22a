import json
from pathlib import Path

import pytest

from backoffice.application.actions import ActionGuard, ActionInProgress, ResponseTracker
from backoffice.application.session import AppSession
from backoffice.domain.status import UserRole

from conftest import ADMIN_AUTH


def test_session_round_trips_through_store(tmp_path: Path):
    store = tmp_path / "session.json"
    first = AppSession(store)
    first.start(dict(ADMIN_AUTH))

    saved = json.loads(store.read_text(encoding="utf-8"))
    assert saved["accessToken"] == "access-1"
    assert saved["user"]["role"] == "ADMIN"

    second = AppSession(store)
    assert second.hydrate() is True
    assert second.actor_name == "maria"
    assert second.has_role(UserRole.ADMIN)


def test_clear_removes_store_and_notifies(tmp_path: Path):
    store = tmp_path / "session.json"
    session = AppSession(store)
    session.start(dict(ADMIN_AUTH))
    cleared = []
    session.on_clear(lambda: cleared.append(True))

    session.clear()

    assert not store.exists()
    assert not session.is_authenticated
    assert session.actor_name == "system"
    assert cleared == [True]


def test_hydrate_tolerates_corrupt_store(tmp_path: Path):
    store = tmp_path / "session.json"
    store.write_text("{not json", encoding="utf-8")
    assert AppSession(store).hydrate() is False


def test_actor_name_falls_back_to_email():
    session = AppSession()
    session.start({"accessToken": "t", "user": {"id": 1, "name": "Ana", "email": "ana@x.co", "role": "VENDEDOR"}})
    assert session.actor_name == "ana@x.co"


def test_guard_refuses_second_call_with_same_key():
    busy = []
    guard = ActionGuard(on_busy=lambda key, state: busy.append((key, state)))
    inner = []

    def outer():
        inner.append(guard.run("approve-1", lambda: "second"))
        return "first"

    assert guard.run("approve-1", outer) == "first"
    assert inner == [None]
    assert busy == [("approve-1", True), ("approve-1", False)]
    assert not guard.is_running("approve-1")


def test_guard_different_keys_do_not_block():
    guard = ActionGuard()
    with guard.hold("a"):
        assert guard.run("b", lambda: 42) == 42
        with pytest.raises(ActionInProgress):
            with guard.hold("a"):
                pass


def test_guard_releases_key_when_call_fails():
    guard = ActionGuard()

    def fails():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        guard.run("save", fails)
    assert not guard.is_running("save")


def test_stale_responses_are_dropped():
    tracker = ResponseTracker()
    applied = []

    old = tracker.begin("approvals")
    new = tracker.begin("approvals")

    assert tracker.deliver("approvals", old, lambda: applied.append("old")) is False
    assert tracker.deliver("approvals", new, lambda: applied.append("new")) is True
    assert applied == ["new"]


def test_trackers_are_per_view():
    tracker = ResponseTracker()
    sales = tracker.begin("sales")
    tracker.begin("purchases")
    assert tracker.is_current("sales", sales)
