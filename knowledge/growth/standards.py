"""
Growth standard reference table and percentile lookup.

Each entry holds the P3..P97 lines for one (age in months, gender) pair.
A measurement is placed between the two lines that bracket it and the
percentile is read off by linear interpolation:

    percentile = y1 + (value - x1) / (x2 - x1) * (y2 - y1)

Values at or below P3 report 3, values above P97 report 97. Ages with no
entry report the neutral 50th percentile.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Literal

import yaml

Measurement = Literal["height", "weight"]

PERCENTILE_LINES: tuple[int, ...] = (3, 10, 25, 50, 75, 90, 97)
FALLBACK_PERCENTILE = 50.0
MIN_PERCENTILE = 3.0
MAX_PERCENTILE = 97.0

SAMPLE_DATA_PATH = Path(__file__).parent / "who_sample.yaml"


@dataclass(frozen=True)
class PercentileBands:
    """Measurement values on the P3..P97 lines."""
    p3: float
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float
    p97: float

    def __post_init__(self):
        values = self.values()
        if any(b < a for a, b in zip(values, values[1:])):
            raise ValueError(f"Percentile bands must be non-decreasing: {values}")

    def values(self) -> tuple[float, ...]:
        return (self.p3, self.p10, self.p25, self.p50, self.p75, self.p90, self.p97)

    def points(self) -> list[tuple[float, float]]:
        """(measurement value, percentile) pairs in ascending order."""
        return list(zip(self.values(), (float(p) for p in PERCENTILE_LINES)))

    @classmethod
    def from_mapping(cls, data: dict) -> "PercentileBands":
        """Build from a {"P3": .., "P10": .., ...} mapping."""
        return cls(*(float(data[f"P{p}"]) for p in PERCENTILE_LINES))


@dataclass(frozen=True)
class GrowthStandardEntry:
    """Reference lines for one age and gender."""
    age_in_months: int
    gender: str
    height_percentiles: PercentileBands
    weight_percentiles: PercentileBands

    def bands(self, measurement: Measurement) -> PercentileBands:
        if measurement == "height":
            return self.height_percentiles
        return self.weight_percentiles


def _plain(value) -> str:
    """Accept both str enums and plain strings."""
    return str(getattr(value, "value", value))


def _interpolate(value: float, x1: float, x2: float, y1: float, y2: float) -> float:
    if x2 == x1:
        return y1
    return y1 + ((value - x1) / (x2 - x1)) * (y2 - y1)


class GrowthStandardTable:
    """
    Immutable set of growth standard entries keyed by (age, gender).

    Lookup is exact: there is no interpolation across ages. Use from_lms()
    for a table with an entry for every month.
    """

    def __init__(self, entries: Iterable[GrowthStandardEntry]):
        self._entries: dict[tuple[int, str], GrowthStandardEntry] = {}
        for entry in entries:
            self._entries[(entry.age_in_months, _plain(entry.gender))] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, age_in_months: int, gender) -> GrowthStandardEntry | None:
        return self._entries.get((age_in_months, _plain(gender)))

    def ages(self, gender) -> list[int]:
        """Ages covered for a gender, ascending."""
        gender = _plain(gender)
        return sorted(age for age, g in self._entries if g == gender)

    def percentile(
        self,
        value: float,
        age_in_months: int,
        gender,
        measurement: Measurement,
    ) -> float:
        """
        Population percentile of a measurement.

        Args:
            value: Height in cm or weight in kg
            age_in_months: Whole months of age
            gender: "male" or "female"
            measurement: "height" or "weight"

        Returns:
            Percentile in [3, 97], or 50 when the table has no entry
            for this age and gender or the value is not a finite number.
        """
        if not math.isfinite(value):
            return FALLBACK_PERCENTILE

        entry = self.entry(age_in_months, gender)
        if entry is None:
            return FALLBACK_PERCENTILE

        points = entry.bands(_plain(measurement)).points()

        if value <= points[0][0]:
            return MIN_PERCENTILE

        for (x1, y1), (x2, y2) in zip(points, points[1:]):
            if value <= x2:
                return _interpolate(value, x1, x2, y1, y2)

        return MAX_PERCENTILE

    # -------------------------------------------------------------------------
    # Reference data
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, path: Path) -> "GrowthStandardTable":
        """Load entries from a YAML file with a top-level `standards` list."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        entries = []
        for row in data.get("standards", []):
            entries.append(GrowthStandardEntry(
                age_in_months=int(row["age_in_months"]),
                gender=row["gender"],
                height_percentiles=PercentileBands.from_mapping(row["height"]),
                weight_percentiles=PercentileBands.from_mapping(row["weight"]),
            ))
        return cls(entries)

    @classmethod
    def sample(cls) -> "GrowthStandardTable":
        """The packaged WHO sample (24 months, both genders)."""
        return cls.from_yaml(SAMPLE_DATA_PATH)

    @classmethod
    def from_lms(cls, ages: Iterable[int] | None = None) -> "GrowthStandardTable":
        """
        Build an entry for every requested month from CDC 2000 LMS data.

        Defaults to every month from 0 to 240.
        """
        from .lms import MAX_AGE_MONTHS, MIN_AGE_MONTHS, bands_at

        if ages is None:
            ages = range(MIN_AGE_MONTHS, MAX_AGE_MONTHS + 1)

        entries = []
        for age in ages:
            for gender in ("male", "female"):
                height = bands_at(age, gender, "height", PERCENTILE_LINES)
                weight = bands_at(age, gender, "weight", PERCENTILE_LINES)
                entries.append(GrowthStandardEntry(
                    age_in_months=age,
                    gender=gender,
                    height_percentiles=PercentileBands(*(height[p] for p in PERCENTILE_LINES)),
                    weight_percentiles=PercentileBands(*(weight[p] for p in PERCENTILE_LINES)),
                ))
        return cls(entries)


@lru_cache(maxsize=None)
def load_table(reference: str = "sample") -> GrowthStandardTable:
    """
    Get a reference table by name (cached).

    "sample" is the WHO sample table, "cdc" the table densified from LMS data.
    """
    if reference == "sample":
        return GrowthStandardTable.sample()
    if reference == "cdc":
        return GrowthStandardTable.from_lms()
    raise ValueError(f"Unknown growth reference: {reference}")
