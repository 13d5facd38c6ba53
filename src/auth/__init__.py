"""
Authentication module for Sprout.

Provides the session identity and JWT verification for FastAPI.
"""

from src.auth.identity import AuthenticatedUser, PARENT_ROLE
from src.auth.middleware import (
  get_current_user,
  get_current_user_optional,
)

__all__ = [
  "AuthenticatedUser",
  "PARENT_ROLE",
  "get_current_user",
  "get_current_user_optional",
]
