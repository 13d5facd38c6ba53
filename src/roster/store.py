"""
Live roster of a parent's children and the selected-child pointer.

One RosterStore exists per session. Snapshots from the remote store are the
only way the roster changes: writes (add, update, remove) are forwarded to
the remote store and become visible when the next snapshot arrives.

Selection rules, re-applied on every snapshot:
- the current selection is kept while the child is still in the roster
- otherwise the first child (newest) is selected
- an empty roster has no selection
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Iterable, Optional

import pydantic
from dateutil.relativedelta import relativedelta

from src.auth.identity import AuthenticatedUser
from src.errors import NotFound, PermissionDenied, TrackerError, Unauthenticated, Unknown, ValidationError
from src.models.child import Child, ChildDraft, ChildPatch
from src.roster.remote import ChildStore, Subscription

logger = logging.getLogger(__name__)

MAX_CHILD_AGE_YEARS = 18


class RosterStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class RosterState:
    """Consistent view of roster and selection at one point in time."""
    children: tuple[Child, ...] = ()
    selected_id: Optional[str] = None
    status: RosterStatus = RosterStatus.LOADING
    error: Optional[TrackerError] = None

    @property
    def selected_child(self) -> Optional[Child]:
        for child in self.children:
            if child.id == self.selected_id:
                return child
        return None

    @property
    def is_empty(self) -> bool:
        """Loaded, and the parent has no children (not the same as loading)."""
        return self.status == RosterStatus.READY and not self.children


Listener = Callable[[RosterState], None]


def _dedupe(children: Iterable[Child]) -> tuple[Child, ...]:
    seen: set[str] = set()
    unique = []
    for child in children:
        if child.id in seen:
            logger.warning("Duplicate child id %s in snapshot, keeping first", child.id)
            continue
        seen.add(child.id)
        unique.append(child)
    return tuple(unique)


def _resolve_selection(children: tuple[Child, ...], current: Optional[str]) -> Optional[str]:
    if current is not None and any(c.id == current for c in children):
        return current
    return children[0].id if children else None


def validate_birth_date(date_of_birth: date, today: date) -> None:
    """Birth date must not be in the future and must make the child under 18."""
    if date_of_birth > today:
        raise ValidationError("Date of birth cannot be in the future")
    if date_of_birth <= today - relativedelta(years=MAX_CHILD_AGE_YEARS):
        raise ValidationError("Child must be under 18 years old")


class RosterStore:
    """
    Per-session owner of the roster and the selection pointer.

    Readers get immutable snapshots of state; writers replace the state
    object as a whole, so roster and selection are always seen together.
    State changes and the listener calls they trigger happen under one
    re-entrant lock, so listeners see changes in the order they were made.
    """

    def __init__(
        self,
        remote: ChildStore,
        user: Optional[AuthenticatedUser],
        today: Callable[[], date] = date.today,
    ):
        self._remote = remote
        self._user = user
        self._today = today
        self._state = RosterState()
        self._write_lock = threading.RLock()
        self._listeners: list[Listener] = []
        self._subscription: Optional[Subscription] = None
        self._received_snapshot = False
        self._closed = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> "RosterStore":
        """Subscribe to the remote roster for the session's user."""
        if self._closed:
            raise RuntimeError("RosterStore has been closed")
        if self._subscription is not None:
            return self

        if self._user is None:
            # Signed out: nothing to load
            self._set_state(RosterState(status=RosterStatus.READY))
            return self

        logger.info("Subscribing to roster for parent %s", self._user.id)
        self._subscription = self._remote.subscribe(
            self._user.id,
            on_snapshot=self.apply_snapshot,
            on_error=self._on_listener_error,
        )
        return self

    def close(self) -> None:
        """Cancel the subscription. Snapshots not yet applied are discarded."""
        with self._write_lock:
            self._closed = True
            subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.cancel()
            logger.info("Roster subscription cancelled")

    def __enter__(self) -> "RosterStore":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    @property
    def state(self) -> RosterState:
        return self._state

    @property
    def children(self) -> tuple[Child, ...]:
        return self._state.children

    @property
    def selected_id(self) -> Optional[str]:
        return self._state.selected_id

    @property
    def selected_child(self) -> Optional[Child]:
        return self._state.selected_child

    @property
    def status(self) -> RosterStatus:
        return self._state.status

    @property
    def error(self) -> Optional[TrackerError]:
        return self._state.error

    @property
    def is_empty(self) -> bool:
        return self._state.is_empty

    def get(self, child_id: str) -> Optional[Child]:
        for child in self._state.children:
            if child.id == child_id:
                return child
        return None

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with the new state after every change. Returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # -------------------------------------------------------------------------
    # Snapshot channel
    # -------------------------------------------------------------------------

    def apply_snapshot(self, children: Iterable[Child]) -> None:
        """
        Replace the roster with a full snapshot and re-resolve the selection.

        Expects the snapshot already ordered newest first (see sort_snapshot).
        """
        roster = _dedupe(children)
        with self._write_lock:
            if self._closed:
                logger.debug("Discarding roster snapshot delivered after close")
                return
            selected = _resolve_selection(roster, self._state.selected_id)
            self._received_snapshot = True
            logger.debug("Roster snapshot applied: %d children, selected=%s", len(roster), selected)
            self._commit(RosterState(children=roster, selected_id=selected, status=RosterStatus.READY))

    def _on_listener_error(self, error: TrackerError) -> None:
        with self._write_lock:
            if self._closed:
                return
            logger.error("Roster listener failed: %s", error.detail)
            self._commit(replace(self._state, status=RosterStatus.ERROR, error=error))

    def refresh(self) -> None:
        """Clear a listener error; the subscription keeps delivering data."""
        with self._write_lock:
            if self._closed:
                return
            status = RosterStatus.READY if self._received_snapshot else RosterStatus.LOADING
            self._commit(replace(self._state, status=status, error=None))

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select(self, child_id: Optional[str]) -> None:
        """Select a child by id. Ids not in the roster are ignored; None clears."""
        with self._write_lock:
            if child_id is not None and not any(c.id == child_id for c in self._state.children):
                logger.debug("Ignoring selection of unknown child %s", child_id)
                return
            self._commit(replace(self._state, selected_id=child_id))

    # -------------------------------------------------------------------------
    # Writes (visible after the next snapshot)
    # -------------------------------------------------------------------------

    def add(self, draft: ChildDraft | dict[str, Any]) -> str:
        """
        Create a child profile for the session's parent.

        Returns the id assigned by the remote store. The roster is not
        changed until the corresponding snapshot arrives.
        """
        user = self._require_user()
        if not user.is_parent:
            raise ValidationError("Only parents can create child profiles")

        draft = self._parse(ChildDraft, draft)
        missing = draft.missing_fields()
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        validate_birth_date(draft.date_of_birth, self._today())

        now = datetime.now().isoformat()
        data = draft.model_dump(mode="json")
        data.update(created_at=now, updated_at=now)

        child_id = self._call_remote("create", self._remote.create, user.id, data)
        logger.info("Created child %s for parent %s", child_id, user.id)
        return child_id

    def update(self, child_id: str, patch: ChildPatch | dict[str, Any]) -> None:
        self._require_user()
        self._require_child(child_id)

        patch = self._parse(ChildPatch, patch)
        changes = patch.changes()
        for required in ("name", "date_of_birth", "gender"):
            if required in changes and not str(changes[required] or "").strip():
                raise ValidationError(f"{required} cannot be empty")
        if patch.date_of_birth is not None:
            validate_birth_date(patch.date_of_birth, self._today())
        changes["updated_at"] = datetime.now().isoformat()

        self._call_remote("update", self._remote.update, child_id, changes)
        logger.info("Updated child %s", child_id)

    def remove(self, child_id: str) -> None:
        self._require_user()
        self._require_child(child_id)
        self._call_remote("delete", self._remote.delete, child_id)
        logger.info("Deleted child %s", child_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require_user(self) -> AuthenticatedUser:
        if self._user is None:
            raise Unauthenticated("User not authenticated")
        return self._user

    def _require_child(self, child_id: str) -> Child:
        child = self.get(child_id)
        if child is None:
            raise NotFound(f"No child with id {child_id} in the roster")
        return child

    @staticmethod
    def _parse(model, value):
        if isinstance(value, model):
            return value
        try:
            return model.model_validate(value)
        except pydantic.ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise ValidationError(f"Invalid value for: {', '.join(fields) or 'input'}") from e

    @staticmethod
    def _call_remote(operation: str, fn, *args):
        try:
            return fn(*args)
        except PermissionDenied as e:
            logger.warning("Remote %s failed (%s): %s", operation, e.code, e.detail)
            if operation == "create":
                raise
            raise PermissionDenied(
                e.detail, f"Permission denied. Unable to {operation} child profile."
            ) from e
        except Unknown as e:
            logger.warning("Remote %s failed (%s): %s", operation, e.code, e.detail)
            if operation == "create":
                raise
            raise Unknown(e.detail, f"Failed to {operation} child profile") from e
        except TrackerError as e:
            logger.warning("Remote %s failed (%s): %s", operation, e.code, e.detail)
            raise
        except Exception as e:
            logger.exception("Remote %s failed unexpectedly", operation)
            if operation == "create":
                raise Unknown(str(e), f"Failed to create child profile: {e}") from e
            raise Unknown(str(e), f"Failed to {operation} child profile") from e

    def _set_state(self, state: RosterState) -> None:
        with self._write_lock:
            self._commit(state)

    def _commit(self, state: RosterState) -> None:
        # Caller holds _write_lock
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Roster listener callback raised")
