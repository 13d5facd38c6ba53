"""
Remote child store contract.

The roster never reads the remote store directly: it subscribes and receives
full snapshots, and submits writes that only become visible through a later
snapshot.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Iterable, Optional
from uuid import uuid4

from src.errors import ERRORS_BY_CODE, NotFound, TrackerError, Unknown
from src.models.child import Child

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[Child]], None]
ErrorCallback = Callable[[TrackerError], None]


def sort_snapshot(children: Iterable[Child]) -> list[Child]:
    """
    Order a snapshot by creation time, newest first.

    The sort is stable; children without a creation time keep their
    relative order and go after the ones that have one.
    """
    children = list(children)
    dated = [c for c in children if c.created_at is not None]
    undated = [c for c in children if c.created_at is None]
    dated.sort(key=lambda c: c.created_at.timestamp(), reverse=True)
    return dated + undated


class Subscription(ABC):
    """Handle for a live snapshot feed."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop delivery. Safe to call more than once."""

    @property
    @abstractmethod
    def active(self) -> bool:
        ...


class ChildStore(ABC):
    """Remote store for child profiles."""

    @abstractmethod
    def subscribe(
        self,
        parent_id: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        """Deliver full, sorted roster snapshots for a parent until cancelled."""

    @abstractmethod
    def create(self, parent_id: str, data: dict[str, Any]) -> str:
        """Create a child and return the id assigned by the store."""

    @abstractmethod
    def update(self, child_id: str, changes: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete(self, child_id: str) -> None:
        ...


# =============================================================================
# IN-MEMORY STORE
# =============================================================================


class _MemorySubscription(Subscription):

    def __init__(self, store: "InMemoryChildStore", parent_id: str,
                 on_snapshot: SnapshotCallback, on_error: ErrorCallback):
        self._store = store
        self.parent_id = parent_id
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self._active = True

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._store._subscriptions.remove(self)

    @property
    def active(self) -> bool:
        return self._active


class InMemoryChildStore(ChildStore):
    """
    Child store held in process memory.

    With auto_publish (the default) every write is followed by a snapshot to
    the affected parent's subscribers, like a live backend. Tests that need
    to observe the gap between a write and its snapshot turn it off and call
    publish() themselves.
    """

    def __init__(self, children: Iterable[Child] = (), auto_publish: bool = True):
        self._rows: dict[str, Child] = {c.id: c for c in children}
        self._subscriptions: list[_MemorySubscription] = []
        self._pending_failure: Optional[TrackerError] = None
        self.auto_publish = auto_publish

    def snapshot(self, parent_id: str) -> list[Child]:
        return sort_snapshot(c for c in self._rows.values() if c.parent_id == parent_id)

    def subscribe(self, parent_id, on_snapshot, on_error) -> Subscription:
        subscription = _MemorySubscription(self, parent_id, on_snapshot, on_error)
        self._subscriptions.append(subscription)
        on_snapshot(self.snapshot(parent_id))
        return subscription

    def publish(self, parent_id: Optional[str] = None) -> None:
        """Push current snapshots to subscribers (of one parent, or all)."""
        for subscription in list(self._subscriptions):
            if parent_id is None or subscription.parent_id == parent_id:
                subscription.on_snapshot(self.snapshot(subscription.parent_id))

    def fail_listeners(self, error: TrackerError) -> None:
        """Report a listener failure to every subscriber."""
        for subscription in list(self._subscriptions):
            subscription.on_error(error)

    def fail_next(self, code: str, detail: Optional[str] = None) -> None:
        """Make the next write fail with the error registered for `code`."""
        error_cls = ERRORS_BY_CODE.get(code, Unknown)
        self._pending_failure = error_cls(detail)

    def _check_failure(self) -> None:
        if self._pending_failure is not None:
            error, self._pending_failure = self._pending_failure, None
            raise error

    def create(self, parent_id, data) -> str:
        self._check_failure()
        now = datetime.now()
        child = Child(
            id=str(uuid4())[:8],
            parent_id=parent_id,
            created_at=data.get("created_at") or now,
            updated_at=data.get("updated_at") or now,
            **{k: v for k, v in data.items() if k not in ("created_at", "updated_at", "parent_id")},
        )
        self._rows[child.id] = child
        logger.debug("Stored child %s for parent %s", child.id, parent_id)
        if self.auto_publish:
            self.publish(parent_id)
        return child.id

    def update(self, child_id, changes) -> None:
        self._check_failure()
        current = self._rows.get(child_id)
        if current is None:
            raise NotFound(f"No child with id {child_id}")
        self._rows[child_id] = Child.model_validate({**current.model_dump(), **changes})
        if self.auto_publish:
            self.publish(current.parent_id)

    def delete(self, child_id) -> None:
        self._check_failure()
        removed = self._rows.pop(child_id, None)
        if removed is None:
            raise NotFound(f"No child with id {child_id}")
        if self.auto_publish:
            self.publish(removed.parent_id)
