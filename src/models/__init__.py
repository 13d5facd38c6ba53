"""
Data models for Sprout.
"""

from .child import Child, ChildDraft, ChildPatch, EmergencyContact, Gender
from .growth import GrowthPercentiles, GrowthRecord, MeasurementInput
from .timeline import (
    EVENT_TYPE_STYLES,
    RESOLVABLE_TYPES,
    SEVERITY_COLORS,
    EventSeverity,
    EventType,
    EventTypeStyle,
    TimelineEvent,
    TimelineEventDraft,
    TimelineEventPatch,
)
from .user import User, UserRole

__all__ = [
    "Child",
    "ChildDraft",
    "ChildPatch",
    "EmergencyContact",
    "Gender",
    "GrowthPercentiles",
    "GrowthRecord",
    "MeasurementInput",
    "EVENT_TYPE_STYLES",
    "RESOLVABLE_TYPES",
    "SEVERITY_COLORS",
    "EventSeverity",
    "EventType",
    "EventTypeStyle",
    "TimelineEvent",
    "TimelineEventDraft",
    "TimelineEventPatch",
    "User",
    "UserRole",
]
