"""
Identity of the user a session acts for.
"""

from dataclasses import dataclass
from typing import Optional


PARENT_ROLE = "parent"


@dataclass(frozen=True)
class AuthenticatedUser:
  """Represents an authenticated user."""
  id: str
  email: Optional[str] = None
  role: str = PARENT_ROLE

  @property
  def is_parent(self) -> bool:
    return self.role == PARENT_ROLE
