"""
Supabase-backed implementations of the engine's storage contracts.

Roster snapshots are produced by a background thread that re-reads the
parent's children on an interval and delivers the full list whenever it
differs from the last one delivered.
"""

import logging
import threading
from typing import Any, Optional

from src.db.repositories import ChildRepository, GrowthRecordRepository
from src.errors import NotFound, TrackerError, Unknown
from src.growth.service import GrowthRecordSink
from src.models.child import Child
from src.models.growth import GrowthRecord
from src.roster.remote import ChildStore, Subscription, sort_snapshot

logger = logging.getLogger(__name__)


class PollingSubscription(Subscription):
  """Background poller delivering roster snapshots until cancelled."""

  def __init__(self, repository: ChildRepository, parent_id: str,
               on_snapshot, on_error, interval: float):
    self._repository = repository
    self._parent_id = parent_id
    self._on_snapshot = on_snapshot
    self._on_error = on_error
    self._interval = interval
    self._stop = threading.Event()
    self._last: Optional[list[Child]] = None
    self._thread = threading.Thread(
      target=self._run,
      name=f"roster-{parent_id}",
      daemon=True,
    )

  def start(self) -> "PollingSubscription":
    self._thread.start()
    return self

  def cancel(self) -> None:
    self._stop.set()

  @property
  def active(self) -> bool:
    return not self._stop.is_set()

  def poll_once(self) -> None:
    """Fetch the roster and deliver it if it changed."""
    try:
      rows = self._repository.get_by_parent(self._parent_id)
      children = sort_snapshot(Child.from_db(row) for row in rows)
    except TrackerError as e:
      if not self._stop.is_set():
        self._on_error(e)
      return
    except Exception as e:
      logger.exception("Roster poll for parent %s failed", self._parent_id)
      if not self._stop.is_set():
        self._on_error(Unknown(str(e), "Failed to load children data"))
      return

    if children != self._last and not self._stop.is_set():
      self._last = children
      self._on_snapshot(children)

  def _run(self) -> None:
    while not self._stop.is_set():
      self.poll_once()
      self._stop.wait(self._interval)
    logger.debug("Roster poller for parent %s stopped", self._parent_id)


class SupabaseChildStore(ChildStore):
  """Child profiles in the Supabase `children` table."""

  def __init__(self, repository: Optional[ChildRepository] = None, poll_interval: float = 5.0):
    self._repository = repository or ChildRepository()
    self._poll_interval = poll_interval

  def subscribe(self, parent_id, on_snapshot, on_error) -> Subscription:
    return PollingSubscription(
      self._repository, parent_id, on_snapshot, on_error, self._poll_interval
    ).start()

  def create(self, parent_id: str, data: dict[str, Any]) -> str:
    row = self._repository.create(parent_id, data)
    if not row:
      raise Unknown("Insert returned no row", "Failed to create child profile")
    return str(row["id"])

  def update(self, child_id: str, changes: dict[str, Any]) -> None:
    if self._repository.update(child_id, changes) is None:
      raise NotFound(f"No child with id {child_id}")

  def delete(self, child_id: str) -> None:
    if not self._repository.delete(child_id):
      raise NotFound(f"No child with id {child_id}")


class SupabaseGrowthRecordSink(GrowthRecordSink):
  """Growth records in the Supabase `growth_records` table."""

  def __init__(self, repository: Optional[GrowthRecordRepository] = None):
    self._repository = repository or GrowthRecordRepository()

  def save(self, record: GrowthRecord) -> GrowthRecord:
    row = self._repository.create(record)
    if not row:
      raise Unknown("Insert returned no row", "Failed to add growth record")
    return GrowthRecord.from_db(row)

  def list_for_child(self, child_id: str) -> list[GrowthRecord]:
    return [GrowthRecord.from_db(row) for row in self._repository.get_by_child(child_id)]
