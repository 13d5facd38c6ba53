"""
Growth record service.

Turns a child and a raw measurement into a percentile-annotated growth
record and hands it to a sink for persistence. Records are append-only.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Optional
from uuid import uuid4

import pydantic

from knowledge.growth import GrowthAssessment, GrowthStandardTable, classify, load_table
from src.config import get_settings
from src.errors import TrackerError, Unknown, ValidationError
from src.models.child import Child
from src.models.growth import GrowthPercentiles, GrowthRecord, MeasurementInput

logger = logging.getLogger(__name__)


def age_in_months(date_of_birth: date, on: date) -> int:
    """Whole months between birth and `on` (never negative)."""
    months = (on.year - date_of_birth.year) * 12
    months += on.month - date_of_birth.month
    if on.day < date_of_birth.day:
        months -= 1
    return max(0, months)


def _positive_number(value: Any, name: str) -> float:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name.capitalize()} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name.capitalize()} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{name.capitalize()} must be a number")
    if number <= 0:
        raise ValidationError(f"{name.capitalize()} must be greater than zero")
    return number


# =============================================================================
# SINKS
# =============================================================================


class GrowthRecordSink(ABC):
    """Where annotated records are persisted."""

    @abstractmethod
    def save(self, record: GrowthRecord) -> GrowthRecord:
        """Persist a record and return it as stored (with its id)."""

    @abstractmethod
    def list_for_child(self, child_id: str) -> list[GrowthRecord]:
        ...


class InMemoryGrowthRecordSink(GrowthRecordSink):

    def __init__(self):
        self._records: list[GrowthRecord] = []

    def save(self, record: GrowthRecord) -> GrowthRecord:
        stored = record.model_copy(update={"id": record.id or str(uuid4())[:8]})
        self._records.append(stored)
        return stored

    def list_for_child(self, child_id: str) -> list[GrowthRecord]:
        return [r for r in self._records if r.child_id == child_id]


# =============================================================================
# SERVICE
# =============================================================================


@dataclass(frozen=True)
class GrowthSummary:
    """Latest measurement, change since the previous one, and its assessment."""
    latest: Optional[GrowthRecord]
    previous: Optional[GrowthRecord]
    height_change: float
    weight_change: float
    assessment: Optional[GrowthAssessment]


class GrowthRecordService:
    """Scores measurements against a growth standard table."""

    def __init__(self, sink: GrowthRecordSink, table: Optional[GrowthStandardTable] = None):
        self.sink = sink
        self.table = table if table is not None else load_table(get_settings().growth_reference)

    def record(self, child: Child, measurement: MeasurementInput | dict[str, Any]) -> GrowthRecord:
        """
        Score and store a measurement for a child.

        Raises ValidationError when height or weight is not a positive
        number, or when the measurement predates the child's birth.
        """
        if not isinstance(measurement, MeasurementInput):
            try:
                measurement = MeasurementInput.model_validate(measurement)
            except pydantic.ValidationError as e:
                raise ValidationError("Invalid measurement") from e

        height = _positive_number(measurement.height, "height")
        weight = _positive_number(measurement.weight, "weight")
        head = None
        if measurement.head_circumference is not None:
            head = _positive_number(measurement.head_circumference, "head circumference")

        if measurement.date < child.date_of_birth:
            raise ValidationError("Measurement date cannot be before the date of birth")

        age = age_in_months(child.date_of_birth, measurement.date)
        gender = child.gender.value
        percentiles = GrowthPercentiles(
            height_percentile=self.table.percentile(height, age, gender, "height"),
            weight_percentile=self.table.percentile(weight, age, gender, "weight"),
        )

        record = GrowthRecord(
            child_id=child.id,
            parent_id=child.parent_id,
            date=measurement.date,
            height=height,
            weight=weight,
            head_circumference=head,
            notes=measurement.notes or None,
            percentiles=percentiles,
        )

        try:
            stored = self.sink.save(record)
        except TrackerError:
            raise
        except Exception as e:
            logger.exception("Saving growth record for child %s failed", child.id)
            raise Unknown(str(e), f"Failed to add growth record: {e}") from e

        logger.info(
            "Growth record for child %s at %d months: height P%.1f, weight P%.1f",
            child.id, age, percentiles.height_percentile, percentiles.weight_percentile,
        )
        return stored

    def assess(self, record: GrowthRecord) -> GrowthAssessment:
        return classify(record.percentiles.height_percentile, record.percentiles.weight_percentile)

    def history(self, child_id: str) -> list[GrowthRecord]:
        """A child's records in date order, oldest first."""
        return sorted(self.sink.list_for_child(child_id), key=lambda r: (r.date, r.created_at))

    def summarize(self, records: Iterable[GrowthRecord]) -> GrowthSummary:
        ordered = sorted(records, key=lambda r: (r.date, r.created_at))
        latest = ordered[-1] if ordered else None
        previous = ordered[-2] if len(ordered) > 1 else None

        height_change = weight_change = 0.0
        if latest and previous:
            height_change = round(latest.height - previous.height, 2)
            weight_change = round(latest.weight - previous.weight, 2)

        return GrowthSummary(
            latest=latest,
            previous=previous,
            height_change=height_change,
            weight_change=weight_change,
            assessment=self.assess(latest) if latest else None,
        )
