"""
Qualitative growth assessment from height and weight percentiles.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class GrowthStatus(str, Enum):
    NORMAL = "Normal"
    MONITOR = "Monitor"
    CONCERN = "Concern"


class SeverityColor(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


@dataclass(frozen=True)
class GrowthAssessment:
    """Result of a growth assessment."""
    status: GrowthStatus
    message: str
    severity_color: SeverityColor


CONCERN_BELOW = 3
MONITOR_BELOW = 10
MONITOR_ABOVE = 97


def classify(height_percentile: float, weight_percentile: float) -> GrowthAssessment:
    """
    Classify a pair of percentiles. The first matching rule wins:

    1. either below 3rd   -> Concern
    2. either below 10th  -> Monitor
    3. either above 97th  -> Monitor
    4. otherwise          -> Normal
    """
    lowest = min(height_percentile, weight_percentile)
    highest = max(height_percentile, weight_percentile)

    if lowest < CONCERN_BELOW:
        return GrowthAssessment(
            status=GrowthStatus.CONCERN,
            message="Growth is below the 3rd percentile. Consider consulting a pediatrician.",
            severity_color=SeverityColor.RED,
        )
    if lowest < MONITOR_BELOW:
        return GrowthAssessment(
            status=GrowthStatus.MONITOR,
            message="Growth is below the 10th percentile. Continue monitoring closely.",
            severity_color=SeverityColor.YELLOW,
        )
    if highest > MONITOR_ABOVE:
        return GrowthAssessment(
            status=GrowthStatus.MONITOR,
            message="Growth is above the 97th percentile. Monitor for any concerns.",
            severity_color=SeverityColor.YELLOW,
        )
    return GrowthAssessment(
        status=GrowthStatus.NORMAL,
        message="Growth is within normal range.",
        severity_color=SeverityColor.GREEN,
    )


def describe_percentile(percentile: float, measure: str) -> str:
    """Interpret a single growth percentile."""
    if percentile < 3:
        return f"Very low {measure} (<3rd percentile)"
    elif percentile < 10:
        return f"Low {measure} (3rd-10th percentile)"
    elif percentile < 25:
        return f"Low-normal {measure} (10th-25th percentile)"
    elif percentile <= 75:
        return f"Normal {measure} (25th-75th percentile)"
    elif percentile <= 90:
        return f"High-normal {measure} (75th-90th percentile)"
    elif percentile <= 97:
        return f"High {measure} (90th-97th percentile)"
    else:
        return f"Very high {measure} (>97th percentile)"
