"""
Timeline filtering and aggregation.

Pure functions over a caller-supplied collection of TimelineEvent. The
filtered list is ordered most recent first and that order is the one every
other projection (grouping by day, display) builds on; follow-ups are the
one view with its own order (soonest first).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, Literal

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel

from src.models.timeline import EventSeverity, EventType, RESOLVABLE_TYPES, TimelineEvent


class DateRange(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    THREE_MONTHS = "3months"
    YEAR = "year"
    CUSTOM = "custom"


class TimelineCriteria(BaseModel):
    """Filter criteria. Every field defaults to "match everything"."""
    search_text: str = ""
    type: EventType | Literal["all"] = "all"
    severity: EventSeverity | Literal["all"] = "all"
    date_range: DateRange = DateRange.ALL
    custom_start: date | None = None
    custom_end: date | None = None


DayGroup = tuple[str, list[TimelineEvent]]


@dataclass
class TimelineView:
    """Everything a timeline screen shows for one set of criteria."""
    events: list[TimelineEvent]
    groups: list[DayGroup]
    total: int
    unresolved: list[TimelineEvent] = field(default_factory=list)
    follow_ups: list[TimelineEvent] = field(default_factory=list)


# =============================================================================
# DATE HELPERS
# =============================================================================


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def _align(moment: datetime, reference: datetime) -> datetime:
    """Make `moment` comparable with `reference` (naive vs aware)."""
    if moment.tzinfo is None and reference.tzinfo is not None:
        return moment.replace(tzinfo=reference.tzinfo)
    if moment.tzinfo is not None and reference.tzinfo is None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def resolve_window(
    criteria: TimelineCriteria,
    now: datetime,
) -> tuple[datetime, datetime] | None:
    """
    Inclusive [start, end] window for the criteria's date range.

    Returns None when no date filtering applies: "all", or "custom"
    without both bounds.
    """
    end = end_of_day(now)
    today = start_of_day(now)

    if criteria.date_range == DateRange.TODAY:
        return today, end
    if criteria.date_range == DateRange.WEEK:
        return today - relativedelta(weeks=1), end
    if criteria.date_range == DateRange.MONTH:
        return today - relativedelta(months=1), end
    if criteria.date_range == DateRange.THREE_MONTHS:
        return today - relativedelta(months=3), end
    if criteria.date_range == DateRange.YEAR:
        return today.replace(month=1, day=1), end
    if criteria.date_range == DateRange.CUSTOM:
        if criteria.custom_start is None or criteria.custom_end is None:
            return None
        return (
            datetime.combine(criteria.custom_start, time.min, tzinfo=now.tzinfo),
            datetime.combine(criteria.custom_end, time.max, tzinfo=now.tzinfo),
        )
    return None


# =============================================================================
# FILTERING
# =============================================================================


def _matches_search(event: TimelineEvent, needle: str) -> bool:
    for text in (event.title, event.description, event.provider):
        if text and needle in text.lower():
            return True
    return False


def _matches(event: TimelineEvent, criteria: TimelineCriteria, needle: str) -> bool:
    if needle and not _matches_search(event, needle):
        return False
    if criteria.type != "all" and event.type != criteria.type:
        return False
    if criteria.severity != "all" and event.severity != criteria.severity:
        return False
    return True


def filter_events(
    events: Iterable[TimelineEvent],
    criteria: TimelineCriteria | None = None,
    now: datetime | None = None,
) -> list[TimelineEvent]:
    """
    Apply criteria and sort most recent first.

    The sort is stable, so events with identical timestamps keep their
    input order. Callers should not re-sort the result.
    """
    criteria = criteria or TimelineCriteria()
    now = now or datetime.now()
    needle = criteria.search_text.lower()

    matched = [e for e in events if _matches(e, criteria, needle)]

    window = resolve_window(criteria, now)
    if window is not None:
        start, end = window
        matched = [e for e in matched if start <= _align(e.date, now) <= end]

    return sorted(matched, key=lambda e: _align(e.date, now), reverse=True)


def group_by_day(events: Iterable[TimelineEvent]) -> list[DayGroup]:
    """
    Group events by calendar day (YYYY-MM-DD), newest day first.

    Events inside a group keep the order they arrive in, so pass the output
    of filter_events.
    """
    groups: dict[str, list[TimelineEvent]] = {}
    for event in events:
        groups.setdefault(event.date.strftime("%Y-%m-%d"), []).append(event)
    # ISO day keys sort correctly as strings
    return sorted(groups.items(), key=lambda item: item[0], reverse=True)


def unresolved(events: Iterable[TimelineEvent]) -> list[TimelineEvent]:
    """Illnesses and injuries not yet marked resolved."""
    return [e for e in events if e.type in RESOLVABLE_TYPES and not e.is_resolved]


def upcoming_follow_ups(
    events: Iterable[TimelineEvent],
    now: datetime | None = None,
    horizon_days: int | None = None,
) -> list[TimelineEvent]:
    """
    Events with a follow-up at or after `now`, soonest first.

    With `horizon_days`, follow-ups further out than that are left out.
    """
    now = now or datetime.now()
    latest = now + timedelta(days=horizon_days) if horizon_days is not None else None

    upcoming = []
    for event in events:
        if event.follow_up_date is None:
            continue
        follow_up = _align(event.follow_up_date, now)
        if follow_up < now:
            continue
        if latest is not None and follow_up > latest:
            continue
        upcoming.append(event)

    return sorted(upcoming, key=lambda e: _align(e.follow_up_date, now))


def events_by_type(events: Iterable[TimelineEvent], event_type: EventType) -> list[TimelineEvent]:
    return [e for e in events if e.type == event_type]


def build_view(
    events: Iterable[TimelineEvent],
    criteria: TimelineCriteria | None = None,
    now: datetime | None = None,
    horizon_days: int | None = None,
) -> TimelineView:
    """Filter, group and summarize a child's events in one pass."""
    now = now or datetime.now()
    events = list(events)
    filtered = filter_events(events, criteria, now)
    return TimelineView(
        events=filtered,
        groups=group_by_day(filtered),
        total=len(events),
        unresolved=unresolved(events),
        follow_ups=upcoming_follow_ups(events, now, horizon_days),
    )


# =============================================================================
# DISPLAY
# =============================================================================


def date_label(day: date, today: date | None = None) -> str:
    """
    Short heading for a day group.

    Today, Yesterday, the weekday name within the current (Sunday-start)
    week, "Mon DD" within the current month, otherwise "Mon DD, YYYY".
    """
    today = today or date.today()
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"

    week_start = today - timedelta(days=(today.weekday() + 1) % 7)
    if week_start <= day < week_start + timedelta(days=7):
        return day.strftime("%A")
    if (day.year, day.month) == (today.year, today.month):
        return day.strftime("%b %d")
    return day.strftime("%b %d, %Y")
