"""
Database module for Sprout.

Provides the Supabase client, repositories and the storage implementations
the engine runs against in production.
"""

from src.db.client import get_client, get_admin_client, is_configured, SupabaseClient
from src.db.repositories import (
  UserRepository,
  ChildRepository,
  GrowthRecordRepository,
  TimelineEventRepository,
  translate_error,
)
from src.db.stores import SupabaseChildStore, SupabaseGrowthRecordSink, PollingSubscription

__all__ = [
  "get_client",
  "get_admin_client",
  "is_configured",
  "SupabaseClient",
  "UserRepository",
  "ChildRepository",
  "GrowthRecordRepository",
  "TimelineEventRepository",
  "translate_error",
  "SupabaseChildStore",
  "SupabaseGrowthRecordSink",
  "PollingSubscription",
]
