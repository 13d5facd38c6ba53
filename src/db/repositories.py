"""
Repository classes for database operations.

Each repository handles CRUD operations for a specific table. PostgREST
failures are translated into the engine's error types so callers never see
driver exceptions.
"""

import functools
import logging
from datetime import datetime
from typing import Optional, Any
from uuid import UUID

from postgrest.exceptions import APIError

from src.db.client import get_client, get_admin_client, SupabaseClient
from src.errors import (
  InvalidArgument,
  NotFound,
  PermissionDenied,
  TrackerError,
  Unauthenticated,
  Unknown,
)

logger = logging.getLogger(__name__)


def translate_error(error: Exception) -> TrackerError:
  """Map a PostgREST error to the matching engine error."""
  if isinstance(error, TrackerError):
    return error

  code = str(getattr(error, "code", "") or "")
  message = getattr(error, "message", None) or str(error)

  if code == "42501":
    return PermissionDenied(message)
  if code in ("PGRST301", "PGRST302", "401"):
    return Unauthenticated(message)
  if code == "PGRST116":
    return NotFound(message)
  if code.startswith("22") or code.startswith("23") or code.startswith("PGRST1"):
    return InvalidArgument(message)
  return Unknown(message, f"Something went wrong: {message}")


def translated(method):
  """Re-raise PostgREST failures as engine errors."""

  @functools.wraps(method)
  def wrapper(*args, **kwargs):
    try:
      return method(*args, **kwargs)
    except APIError as e:
      error = translate_error(e)
      logger.warning("%s failed with %s: %s", method.__qualname__, error.code, error.detail)
      raise error from e

  return wrapper


class BaseRepository:
  """Base class for all repositories."""

  table_name: str = ""

  def __init__(self, client: Optional[SupabaseClient] = None, use_admin: bool = False):
    """
    Initialize repository with optional client.

    Args:
      client: Supabase client to use. If None, gets default client.
      use_admin: If True and no client provided, use admin client.
    """
    if client:
      self._client = client
    elif use_admin:
      self._client = get_admin_client()
    else:
      self._client = get_client()

  @property
  def table(self):
    """Get the table reference."""
    return self._client.table(self.table_name)

  def _to_dict(self, obj: Any) -> dict:
    """Convert object to dict for storage."""
    if hasattr(obj, "model_dump"):
      return obj.model_dump(mode="json", exclude_none=True)
    elif isinstance(obj, dict):
      return obj
    else:
      raise ValueError(f"Cannot convert {type(obj)} to dict")

  def _first(self, response) -> Optional[dict]:
    return response.data[0] if response.data else None


class UserRepository(BaseRepository):
  """Repository for user profiles."""

  table_name = "users"

  @translated
  def get_by_id(self, user_id: str | UUID) -> Optional[dict]:
    """Get user by ID."""
    response = self.table.select("*").eq("id", str(user_id)).limit(1).execute()
    return self._first(response)


class ChildRepository(BaseRepository):
  """Repository for child profiles."""

  table_name = "children"

  @translated
  def get_by_id(self, child_id: str | UUID) -> Optional[dict]:
    """Get child by ID."""
    response = self.table.select("*").eq("id", str(child_id)).limit(1).execute()
    return self._first(response)

  @translated
  def get_by_parent(self, parent_id: str | UUID) -> list[dict]:
    """Get all children of a parent, newest first."""
    response = (
      self.table.select("*")
      .eq("parent_id", str(parent_id))
      .order("created_at", desc=True)
      .execute()
    )
    return response.data or []

  @translated
  def create(self, parent_id: str | UUID, data: dict) -> Optional[dict]:
    """Create a new child profile."""
    row = {
      **self._to_dict(data),
      "parent_id": str(parent_id),
    }
    response = self.table.insert(row).execute()
    return self._first(response)

  @translated
  def update(self, child_id: str | UUID, changes: dict) -> Optional[dict]:
    """Update child profile."""
    response = self.table.update(changes).eq("id", str(child_id)).execute()
    return self._first(response)

  @translated
  def delete(self, child_id: str | UUID) -> bool:
    """Delete a child profile."""
    response = self.table.delete().eq("id", str(child_id)).execute()
    return len(response.data) > 0 if response.data else False


class GrowthRecordRepository(BaseRepository):
  """Repository for growth records (append-only)."""

  table_name = "growth_records"

  @translated
  def create(self, record: Any) -> Optional[dict]:
    """Insert a growth record."""
    row = self._to_dict(record)
    row.pop("id", None)
    response = self.table.insert(row).execute()
    return self._first(response)

  @translated
  def get_by_child(self, child_id: str | UUID) -> list[dict]:
    """Get all growth records for a child, oldest first."""
    response = self.table.select("*").eq("child_id", str(child_id)).order("date").execute()
    return response.data or []


class TimelineEventRepository(BaseRepository):
  """Repository for health timeline events."""

  table_name = "health_timeline"

  @translated
  def get_by_child(self, child_id: str | UUID, parent_id: str | UUID) -> list[dict]:
    """Get all timeline events for a child."""
    response = (
      self.table.select("*")
      .eq("child_id", str(child_id))
      .eq("parent_id", str(parent_id))
      .order("date", desc=True)
      .execute()
    )
    return response.data or []

  @translated
  def get_by_id(self, event_id: str | UUID) -> Optional[dict]:
    """Get timeline event by ID."""
    response = self.table.select("*").eq("id", str(event_id)).limit(1).execute()
    return self._first(response)

  @translated
  def create(self, child_id: str | UUID, parent_id: str | UUID, data: Any) -> Optional[dict]:
    """Add an event to a child's timeline."""
    now = datetime.now().isoformat()
    row = {
      **self._to_dict(data),
      "child_id": str(child_id),
      "parent_id": str(parent_id),
      "created_at": now,
      "updated_at": now,
    }
    row.pop("id", None)
    response = self.table.insert(row).execute()
    return self._first(response)

  @translated
  def update(self, event_id: str | UUID, changes: dict) -> Optional[dict]:
    """Update a timeline event."""
    row = {**changes, "updated_at": datetime.now().isoformat()}
    response = self.table.update(row).eq("id", str(event_id)).execute()
    return self._first(response)

  @translated
  def delete(self, event_id: str | UUID) -> bool:
    """Delete a timeline event."""
    response = self.table.delete().eq("id", str(event_id)).execute()
    return len(response.data) > 0 if response.data else False
