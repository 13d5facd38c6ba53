"""
Tests for the live roster and selected-child pointer.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from datetime import date, datetime


TODAY = date(2024, 6, 1)


def _child(child_id, created_at=None, parent_id="p1", **overrides):
    from src.models import Child

    data = dict(
        id=child_id,
        parent_id=parent_id,
        name=f"Child {child_id}",
        date_of_birth=date(2021, 3, 4),
        gender="female",
        created_at=created_at,
    )
    data.update(overrides)
    return Child(**data)


def _roster(children=(), auto_publish=True, user="parent"):
    from src.auth import AuthenticatedUser
    from src.roster import InMemoryChildStore, RosterStore

    remote = InMemoryChildStore(children, auto_publish=auto_publish)
    if user == "parent":
        user = AuthenticatedUser(id="p1", email="parent@example.com")
    store = RosterStore(remote, user, today=lambda: TODAY)
    return remote, store.start()


def _draft(**overrides):
    data = {"name": "Noah", "date_of_birth": "2023-02-10", "gender": "male"}
    data.update(overrides)
    return data


class TestSnapshotOrdering:
    """Test snapshot sorting and deduplication."""

    def test_newest_first(self):
        from src.roster import sort_snapshot

        a = _child("a", datetime(2024, 1, 1))
        b = _child("b", datetime(2024, 3, 1))
        assert [c.id for c in sort_snapshot([a, b])] == ["b", "a"]

    def test_undated_children_last(self):
        from src.roster import sort_snapshot

        a = _child("a")
        b = _child("b", datetime(2024, 3, 1))
        c = _child("c")
        assert [x.id for x in sort_snapshot([a, b, c])] == ["b", "a", "c"]

    def test_duplicate_ids_collapse(self):
        _, store = _roster()
        store.apply_snapshot([_child("a", name="First"), _child("a", name="Second")])

        assert len(store.children) == 1
        assert store.children[0].name == "First"


class TestSelection:
    """Test the selection rules applied on every snapshot."""

    def test_first_child_selected_on_load(self):
        from src.roster import RosterStatus

        _, store = _roster([_child("a", datetime(2024, 1, 1)), _child("b", datetime(2024, 2, 1))])

        assert store.status == RosterStatus.READY
        assert [c.id for c in store.children] == ["b", "a"]
        assert store.selected_id == "b"
        assert store.selected_child.id == "b"

    def test_selection_kept_while_present(self):
        _, store = _roster([_child("a", datetime(2024, 1, 1)), _child("b", datetime(2024, 2, 1))])
        store.select("a")

        store.apply_snapshot([_child("c", datetime(2024, 5, 1)), _child("b"), _child("a")])
        assert store.selected_id == "a"

    def test_selection_moves_when_child_disappears(self):
        _, store = _roster()
        store.apply_snapshot([_child("b"), _child("a")])
        store.select("a")

        store.apply_snapshot([_child("b")])
        assert store.selected_id == "b"

    def test_empty_roster_has_no_selection(self):
        _, store = _roster()

        assert store.children == ()
        assert store.selected_id is None
        assert store.is_empty

        store.apply_snapshot([_child("a")])
        store.apply_snapshot([])
        assert store.selected_id is None

    def test_unknown_id_ignored(self):
        _, store = _roster([_child("a")])
        store.select("missing")
        assert store.selected_id == "a"

    def test_clear_selection(self):
        _, store = _roster([_child("a")])
        store.select(None)
        assert store.selected_id is None
        assert store.selected_child is None

    def test_signed_out_roster_is_empty(self):
        from src.roster import RosterStatus

        _, store = _roster([_child("a")], user=None)
        assert store.status == RosterStatus.READY
        assert store.is_empty


class TestWrites:
    """Test that writes only show up through snapshots."""

    def test_add_visible_after_snapshot(self):
        remote, store = _roster([_child("a", datetime(2024, 1, 1))], auto_publish=False)

        child_id = store.add(_draft())
        assert store.get(child_id) is None
        assert store.selected_id == "a"

        remote.publish()
        added = store.get(child_id)
        assert added.name == "Noah"
        assert added.parent_id == "p1"
        # Newer child goes first, selection stays put
        assert store.children[0].id == child_id
        assert store.selected_id == "a"

    def test_add_to_empty_roster_selects_child(self):
        _, store = _roster()
        child_id = store.add(_draft())
        assert store.selected_id == child_id

    def test_add_missing_fields(self):
        from src.errors import ValidationError

        remote, store = _roster()
        with pytest.raises(ValidationError) as exc:
            store.add(_draft(date_of_birth=None, name="  "))

        assert "date_of_birth" in exc.value.user_message
        assert "name" in exc.value.user_message
        assert remote.snapshot("p1") == []

    def test_add_future_birth_date(self):
        from src.errors import ValidationError

        _, store = _roster()
        with pytest.raises(ValidationError, match="cannot be in the future"):
            store.add(_draft(date_of_birth="2024-06-02"))

    def test_add_eighteen_year_old(self):
        from src.errors import ValidationError

        _, store = _roster()
        with pytest.raises(ValidationError, match="under 18"):
            store.add(_draft(date_of_birth="2006-06-01"))

        # One day younger is accepted
        assert store.add(_draft(date_of_birth="2006-06-02"))

    def test_add_bad_gender(self):
        from src.errors import ValidationError

        _, store = _roster()
        with pytest.raises(ValidationError, match="gender"):
            store.add(_draft(gender="other"))

    def test_add_requires_parent_role(self):
        from src.auth import AuthenticatedUser
        from src.errors import ValidationError

        _, store = _roster(user=AuthenticatedUser(id="p1", role="admin"))
        with pytest.raises(ValidationError, match="Only parents"):
            store.add(_draft())

    def test_add_requires_user(self):
        from src.errors import Unauthenticated

        _, store = _roster(user=None)
        with pytest.raises(Unauthenticated):
            store.add(_draft())

    def test_remote_rejection_surfaces(self):
        from src.errors import PermissionDenied

        remote, store = _roster()
        remote.fail_next("permission-denied")
        with pytest.raises(PermissionDenied) as exc:
            store.add(_draft())
        assert "logged in as a parent" in exc.value.user_message

    def test_update_rejection_names_update(self):
        from src.errors import PermissionDenied, Unknown

        remote, store = _roster([_child("a")])
        remote.fail_next("permission-denied")
        with pytest.raises(PermissionDenied) as exc:
            store.update("a", {"name": "Renamed"})
        assert exc.value.user_message == "Permission denied. Unable to update child profile."

        remote.fail_next("unknown", "write timed out")
        with pytest.raises(Unknown) as exc:
            store.update("a", {"name": "Renamed"})
        assert exc.value.user_message == "Failed to update child profile"
        assert exc.value.detail == "write timed out"

    def test_remove_rejection_names_delete(self):
        from src.errors import PermissionDenied, Unknown

        remote, store = _roster([_child("a")])
        remote.fail_next("permission-denied")
        with pytest.raises(PermissionDenied) as exc:
            store.remove("a")
        assert exc.value.user_message == "Permission denied. Unable to delete child profile."

        remote.fail_next("unknown")
        with pytest.raises(Unknown) as exc:
            store.remove("a")
        assert exc.value.user_message == "Failed to delete child profile"
        assert [c.id for c in store.children] == ["a"]

    def test_update(self):
        remote, store = _roster([_child("a")], auto_publish=False)

        store.update("a", {"name": "Renamed", "allergies": ["peanuts"]})
        assert store.get("a").name == "Child a"

        remote.publish()
        updated = store.get("a")
        assert updated.name == "Renamed"
        assert updated.allergies == ["peanuts"]
        assert updated.updated_at is not None

    def test_update_unknown_child(self):
        from src.errors import NotFound

        _, store = _roster([_child("a")])
        with pytest.raises(NotFound):
            store.update("zzz", {"name": "X"})

    def test_update_cannot_blank_required_field(self):
        from src.errors import ValidationError

        _, store = _roster([_child("a")])
        with pytest.raises(ValidationError):
            store.update("a", {"name": ""})

    def test_remove_moves_selection(self):
        _, store = _roster([_child("a", datetime(2024, 1, 1)), _child("b", datetime(2024, 2, 1))])
        assert store.selected_id == "b"

        store.remove("b")
        assert [c.id for c in store.children] == ["a"]
        assert store.selected_id == "a"

    def test_remove_unknown_child(self):
        from src.errors import NotFound

        _, store = _roster()
        with pytest.raises(NotFound):
            store.remove("a")


class TestLifecycle:
    """Test listener errors, listeners and shutdown."""

    def test_listener_error_keeps_children(self):
        from src.errors import Unknown
        from src.roster import RosterStatus

        remote, store = _roster([_child("a")])
        remote.fail_listeners(Unknown("socket closed", "Failed to load children data"))

        assert store.status == RosterStatus.ERROR
        assert store.error.user_message == "Failed to load children data"
        assert [c.id for c in store.children] == ["a"]

        store.refresh()
        assert store.status == RosterStatus.READY
        assert store.error is None

    def test_snapshot_after_error_recovers(self):
        from src.errors import Unknown
        from src.roster import RosterStatus

        remote, store = _roster([_child("a")])
        remote.fail_listeners(Unknown("boom"))
        remote.publish()

        assert store.status == RosterStatus.READY
        assert store.error is None

    def test_listeners_notified(self):
        _, store = _roster()
        seen = []
        remove = store.add_listener(lambda state: seen.append(state.selected_id))

        store.apply_snapshot([_child("a")])
        store.select(None)
        remove()
        store.apply_snapshot([_child("b")])

        assert seen == ["a", None]

    def test_failing_listener_does_not_break_store(self):
        _, store = _roster()

        def broken(state):
            raise RuntimeError("listener bug")

        store.add_listener(broken)
        store.apply_snapshot([_child("a")])
        assert store.selected_id == "a"

    def test_snapshots_after_close_are_discarded(self):
        remote, store = _roster([_child("a")])
        store.close()

        store.apply_snapshot([_child("b")])
        assert [c.id for c in store.children] == ["a"]

        remote.publish()
        assert [c.id for c in store.children] == ["a"]

    def test_context_manager(self):
        from src.auth import AuthenticatedUser
        from src.roster import InMemoryChildStore, RosterStore

        remote = InMemoryChildStore([_child("a")])
        with RosterStore(remote, AuthenticatedUser(id="p1")) as store:
            assert store.selected_id == "a"

        with pytest.raises(RuntimeError):
            store.start()

    def test_other_parents_children_not_delivered(self):
        _, store = _roster([_child("a"), _child("x", parent_id="p2")])
        assert [c.id for c in store.children] == ["a"]

    def test_identical_snapshot_does_not_notify(self):
        _, store = _roster()
        seen = []
        store.apply_snapshot([_child("a")])
        store.add_listener(seen.append)

        store.apply_snapshot([_child("a")])
        store.select("a")
        assert seen == []

        store.apply_snapshot([_child("a"), _child("b")])
        assert len(seen) == 1

    def test_close_during_slow_snapshot_discards_it(self):
        import threading

        _, store = _roster()
        entered = threading.Event()
        release = threading.Event()

        def slow_snapshot():
            entered.set()
            release.wait(5)
            yield _child("b")

        worker = threading.Thread(target=store.apply_snapshot, args=(slow_snapshot(),))
        worker.start()
        assert entered.wait(5)

        store.close()
        release.set()
        worker.join(5)

        assert not worker.is_alive()
        assert store.children == ()
        assert store.selected_id is None

    def test_no_notifications_after_close(self):
        from src.errors import Unknown

        remote, store = _roster([_child("a")])
        seen = []
        store.add_listener(seen.append)
        store.close()

        store.apply_snapshot([_child("b")])
        store._on_listener_error(Unknown("late"))
        store.refresh()

        assert seen == []
        assert store.error is None
