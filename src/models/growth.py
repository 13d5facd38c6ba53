"""
Growth measurement models.
"""

from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Any

from pydantic import BaseModel, Field


class GrowthPercentiles(BaseModel):
    """Percentiles computed for one measurement."""
    height_percentile: float
    weight_percentile: float


class MeasurementInput(BaseModel):
    """
    A measurement as submitted by a parent.

    Height and weight are kept loose here (form values arrive as strings);
    GrowthRecordService does the numeric validation.
    """
    date: date_type = Field(default_factory=date_type.today)
    height: Any = None
    weight: Any = None
    head_circumference: float | None = None
    notes: str | None = None


class GrowthRecord(BaseModel):
    """A percentile-annotated growth measurement. Append-only."""
    id: str | None = None
    child_id: str
    parent_id: str
    date: date_type
    height: float = Field(gt=0, description="Height in cm")
    weight: float = Field(gt=0, description="Weight in kg")
    head_circumference: float | None = Field(default=None, description="Head circumference in cm")
    notes: str | None = None
    percentiles: GrowthPercentiles
    created_at: datetime = Field(default_factory=datetime.now)

    model_config = {"frozen": True}

    @classmethod
    def from_db(cls, data: dict[str, Any]) -> "GrowthRecord":
        """Create GrowthRecord from database row."""
        return cls(
            id=str(data["id"]) if data.get("id") is not None else None,
            child_id=str(data["child_id"]),
            parent_id=str(data["parent_id"]),
            date=data["date"],
            height=data["height"],
            weight=data["weight"],
            head_circumference=data.get("head_circumference"),
            notes=data.get("notes"),
            percentiles=GrowthPercentiles(**data["percentiles"]),
            created_at=data.get("created_at") or datetime.now(),
        )
