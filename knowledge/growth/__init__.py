"""
Growth reference data and percentile calculations.
"""

from .assessment import (
    GrowthAssessment,
    GrowthStatus,
    SeverityColor,
    classify,
    describe_percentile,
)
from .standards import (
    FALLBACK_PERCENTILE,
    PERCENTILE_LINES,
    GrowthStandardEntry,
    GrowthStandardTable,
    PercentileBands,
    load_table,
)

__all__ = [
    "GrowthAssessment",
    "GrowthStatus",
    "SeverityColor",
    "classify",
    "describe_percentile",
    "FALLBACK_PERCENTILE",
    "PERCENTILE_LINES",
    "GrowthStandardEntry",
    "GrowthStandardTable",
    "PercentileBands",
    "load_table",
]
