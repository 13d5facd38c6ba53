"""
Child profile models.

A child belongs to exactly one parent account and is the unit the roster
and selection pointer work with.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class EmergencyContact(BaseModel):
    name: str
    phone: str
    relationship: str


class Child(BaseModel):
    """A child profile as stored by the remote store."""
    id: str
    parent_id: str
    name: str
    date_of_birth: date
    gender: Gender
    blood_type: str | None = None
    allergies: list[str] = Field(default_factory=list)
    medical_conditions: list[str] = Field(default_factory=list)
    emergency_contact: EmergencyContact | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"frozen": True}

    def age_years(self, on: date | None = None) -> int:
        on = on or date.today()
        return on.year - self.date_of_birth.year - (
            (on.month, on.day) < (self.date_of_birth.month, self.date_of_birth.day)
        )

    @classmethod
    def from_db(cls, data: dict[str, Any]) -> "Child":
        """Create Child from database row."""
        return cls(
            id=str(data["id"]),
            parent_id=str(data["parent_id"]),
            name=data["name"],
            date_of_birth=data["date_of_birth"],
            gender=data["gender"],
            blood_type=data.get("blood_type"),
            allergies=data.get("allergies") or [],
            medical_conditions=data.get("medical_conditions") or [],
            emergency_contact=data.get("emergency_contact"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class ChildDraft(BaseModel):
    """
    Payload for creating a child.

    Required fields are optional here so that missing values can be
    reported together by the roster store instead of failing on the first.
    """
    name: str | None = None
    date_of_birth: date | None = None
    gender: Gender | None = None
    blood_type: str | None = None
    allergies: list[str] = Field(default_factory=list)
    medical_conditions: list[str] = Field(default_factory=list)
    emergency_contact: EmergencyContact | None = None

    def missing_fields(self) -> list[str]:
        missing = []
        if not self.name or not self.name.strip():
            missing.append("name")
        if self.date_of_birth is None:
            missing.append("date_of_birth")
        if self.gender is None:
            missing.append("gender")
        return missing


class ChildPatch(BaseModel):
    """Partial update of a child profile. Unset fields are left alone."""
    name: str | None = None
    date_of_birth: date | None = None
    gender: Gender | None = None
    blood_type: str | None = None
    allergies: list[str] | None = None
    medical_conditions: list[str] | None = None
    emergency_contact: EmergencyContact | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)
