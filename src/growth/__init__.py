"""
Growth record scoring and persistence.
"""

from .service import (
    GrowthRecordService,
    GrowthRecordSink,
    GrowthSummary,
    InMemoryGrowthRecordSink,
    age_in_months,
)

__all__ = [
    "GrowthRecordService",
    "GrowthRecordSink",
    "GrowthSummary",
    "InMemoryGrowthRecordSink",
    "age_in_months",
]
