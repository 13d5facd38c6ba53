"""
Roster synchronization: the live child list and the selected child.
"""

from .remote import ChildStore, InMemoryChildStore, Subscription, sort_snapshot
from .store import RosterState, RosterStatus, RosterStore, validate_birth_date

__all__ = [
    "ChildStore",
    "InMemoryChildStore",
    "Subscription",
    "sort_snapshot",
    "RosterState",
    "RosterStatus",
    "RosterStore",
    "validate_birth_date",
]
