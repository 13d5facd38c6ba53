"""
User models for Sprout.

These models represent the authenticated account that owns child profiles.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Any
from uuid import UUID

from pydantic import BaseModel, Field, EmailStr


class UserRole(str, Enum):
  """User roles for access control."""

  PARENT = "parent"
  ADMIN = "admin"


class User(BaseModel):
  """
  User profile for authenticated users.

  Links to Supabase auth.users and stores additional profile data.
  """

  id: UUID
  email: EmailStr
  display_name: Optional[str] = None
  role: UserRole = UserRole.PARENT
  phone_number: Optional[str] = None
  language: str = "en"
  is_active: bool = True
  created_at: datetime = Field(default_factory=datetime.utcnow)
  updated_at: datetime = Field(default_factory=datetime.utcnow)

  model_config = {"from_attributes": True}

  @property
  def is_admin(self) -> bool:
    """Check if user is an admin."""
    return self.role == UserRole.ADMIN

  @property
  def is_parent(self) -> bool:
    """Only parents may create child profiles."""
    return self.role == UserRole.PARENT

  @classmethod
  def from_db(cls, data: dict[str, Any]) -> "User":
    """Create User from database row."""
    return cls(
      id=UUID(data["id"]) if isinstance(data["id"], str) else data["id"],
      email=data["email"],
      display_name=data.get("display_name"),
      role=data.get("role", UserRole.PARENT),
      phone_number=data.get("phone_number"),
      language=data.get("language", "en"),
      is_active=data.get("is_active", True),
      created_at=data.get("created_at", datetime.utcnow()),
      updated_at=data.get("updated_at", datetime.utcnow()),
    )
