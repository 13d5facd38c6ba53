"""
Timeline filtering and aggregation.
"""

from .engine import (
    DateRange,
    TimelineCriteria,
    TimelineView,
    build_view,
    date_label,
    end_of_day,
    events_by_type,
    filter_events,
    group_by_day,
    resolve_window,
    start_of_day,
    unresolved,
    upcoming_follow_ups,
)

__all__ = [
    "DateRange",
    "TimelineCriteria",
    "TimelineView",
    "build_view",
    "date_label",
    "end_of_day",
    "events_by_type",
    "filter_events",
    "group_by_day",
    "resolve_window",
    "start_of_day",
    "unresolved",
    "upcoming_follow_ups",
]
