"""
Health timeline models.

A timeline event is a single dated health occurrence in a child's history.
Display metadata for event types and severities is a closed mapping keyed
by the enums below, so every type has exactly one label, icon and color.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    VACCINATION = "vaccination"
    ILLNESS = "illness"
    CHECKUP = "checkup"
    MEDICATION = "medication"
    INJURY = "injury"
    ALLERGY = "allergy"
    MILESTONE = "milestone"
    GROWTH = "growth"
    APPOINTMENT = "appointment"
    NOTE = "note"


class EventSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Only these types track resolution
RESOLVABLE_TYPES = frozenset({EventType.ILLNESS, EventType.INJURY})


@dataclass(frozen=True)
class EventTypeStyle:
    label: str
    icon: str
    color: str


EVENT_TYPE_STYLES: dict[EventType, EventTypeStyle] = {
    EventType.VACCINATION: EventTypeStyle("Vaccination", "shield", "green"),
    EventType.ILLNESS: EventTypeStyle("Illness", "thermometer", "red"),
    EventType.CHECKUP: EventTypeStyle("Check-up", "stethoscope", "blue"),
    EventType.MEDICATION: EventTypeStyle("Medication", "pill", "purple"),
    EventType.INJURY: EventTypeStyle("Injury", "bandage", "orange"),
    EventType.ALLERGY: EventTypeStyle("Allergy", "alert-triangle", "yellow"),
    EventType.MILESTONE: EventTypeStyle("Milestone", "check-circle", "indigo"),
    EventType.GROWTH: EventTypeStyle("Growth", "activity", "cyan"),
    EventType.APPOINTMENT: EventTypeStyle("Appointment", "calendar", "pink"),
    EventType.NOTE: EventTypeStyle("Note", "file-text", "gray"),
}

SEVERITY_COLORS: dict[EventSeverity, str] = {
    EventSeverity.HIGH: "red",
    EventSeverity.MEDIUM: "yellow",
    EventSeverity.LOW: "green",
}


class TimelineEvent(BaseModel):
    """A dated health event for one child."""
    id: str
    child_id: str
    parent_id: str
    type: EventType
    title: str
    description: str | None = None
    date: datetime
    location: str | None = None
    provider: str | None = None
    medications: list[str] = Field(default_factory=list)
    symptoms: list[str] = Field(default_factory=list)
    notes: str | None = None
    severity: EventSeverity = EventSeverity.LOW
    is_resolved: bool = False
    follow_up_date: datetime | None = None

    model_config = {"frozen": True}

    @property
    def style(self) -> EventTypeStyle:
        return EVENT_TYPE_STYLES[self.type]

    @property
    def severity_color(self) -> str:
        return SEVERITY_COLORS[self.severity]

    @property
    def tracks_resolution(self) -> bool:
        return self.type in RESOLVABLE_TYPES

    @classmethod
    def from_db(cls, data: dict[str, Any]) -> "TimelineEvent":
        """Create TimelineEvent from database row."""
        return cls(
            id=str(data["id"]),
            child_id=str(data["child_id"]),
            parent_id=str(data["parent_id"]),
            type=data["type"],
            title=data["title"],
            description=data.get("description"),
            date=data["date"],
            location=data.get("location"),
            provider=data.get("provider"),
            medications=data.get("medications") or [],
            symptoms=data.get("symptoms") or [],
            notes=data.get("notes"),
            severity=data.get("severity") or EventSeverity.LOW,
            is_resolved=bool(data.get("is_resolved", False)),
            follow_up_date=data.get("follow_up_date"),
        )


class TimelineEventDraft(BaseModel):
    """Payload for adding an event to a child's timeline."""
    type: EventType
    title: str = Field(min_length=1)
    date: datetime
    description: str | None = None
    location: str | None = None
    provider: str | None = None
    medications: list[str] = Field(default_factory=list)
    symptoms: list[str] = Field(default_factory=list)
    notes: str | None = None
    severity: EventSeverity = EventSeverity.LOW
    is_resolved: bool = False
    follow_up_date: datetime | None = None


class TimelineEventPatch(BaseModel):
    """Partial update of a timeline event. Unset fields are left alone."""
    type: EventType | None = None
    title: str | None = Field(default=None, min_length=1)
    date: datetime | None = None
    description: str | None = None
    location: str | None = None
    provider: str | None = None
    medications: list[str] | None = None
    symptoms: list[str] | None = None
    notes: str | None = None
    severity: EventSeverity | None = None
    is_resolved: bool | None = None
    follow_up_date: datetime | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)
