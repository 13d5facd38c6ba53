"""
Tests for timeline filtering, grouping and follow-ups.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from datetime import date, datetime


NOW = datetime(2024, 3, 15, 12, 0)


def _event(event_id, when, type="note", **overrides):
    from src.models import TimelineEvent

    data = dict(
        id=event_id,
        child_id="c1",
        parent_id="p1",
        type=type,
        title=f"Event {event_id}",
        date=when,
    )
    data.update(overrides)
    return TimelineEvent(**data)


def _ids(events):
    return [e.id for e in events]


class TestEventModel:
    """Test display metadata on events."""

    def test_every_type_has_a_style(self):
        from src.models import EVENT_TYPE_STYLES, EventType

        assert set(EVENT_TYPE_STYLES) == set(EventType)

    def test_style_and_severity_color(self):
        event = _event("1", NOW, type="illness", severity="high")

        assert event.style.label == "Illness"
        assert event.severity_color == "red"
        assert event.tracks_resolution

    def test_from_db_defaults(self):
        from src.models import EventSeverity, TimelineEvent

        event = TimelineEvent.from_db({
            "id": 7,
            "child_id": "c1",
            "parent_id": "p1",
            "type": "checkup",
            "title": "Annual physical",
            "date": "2024-01-01T09:00:00",
            "medications": None,
        })

        assert event.id == "7"
        assert event.severity == EventSeverity.LOW
        assert event.medications == []
        assert not event.is_resolved


class TestFiltering:
    """Test criteria matching and ordering."""

    def test_type_filter(self):
        from src.timeline import TimelineCriteria, filter_events

        events = [
            _event("1", datetime(2024, 1, 1), type="vaccination"),
            _event("2", datetime(2024, 1, 2), type="illness"),
            _event("3", datetime(2024, 1, 3), type="vaccination"),
        ]
        result = filter_events(events, TimelineCriteria(type="vaccination"), NOW)

        assert _ids(result) == ["3", "1"]

    def test_default_criteria_match_everything(self):
        from src.timeline import filter_events

        events = [_event("1", datetime(2020, 1, 1)), _event("2", datetime(2030, 1, 1))]
        assert _ids(filter_events(events, now=NOW)) == ["2", "1"]

    def test_search_is_case_insensitive(self):
        from src.timeline import TimelineCriteria, filter_events

        events = [
            _event("1", NOW, title="Ear infection"),
            _event("2", NOW, description="Follow-up for EAR pain"),
            _event("3", NOW, provider="Dr. Earnshaw"),
            _event("4", NOW, title="Flu shot"),
        ]
        result = filter_events(events, TimelineCriteria(search_text="ear"), NOW)

        assert _ids(result) == ["1", "2", "3"]

    def test_severity_filter(self):
        from src.timeline import TimelineCriteria, filter_events

        events = [_event("1", NOW, severity="high"), _event("2", NOW)]
        assert _ids(filter_events(events, TimelineCriteria(severity="high"), NOW)) == ["1"]

    def test_equal_timestamps_keep_input_order(self):
        from src.timeline import filter_events

        events = [_event(str(i), datetime(2024, 1, 1, 8)) for i in range(5)]
        assert _ids(filter_events(events, now=NOW)) == ["0", "1", "2", "3", "4"]

    def test_filtering_twice_is_stable(self):
        from src.timeline import TimelineCriteria, filter_events

        criteria = TimelineCriteria(search_text="event")
        events = [_event(str(i), datetime(2024, 1, i + 1)) for i in range(5)]
        once = filter_events(events, criteria, NOW)
        assert filter_events(once, criteria, NOW) == once


class TestDateWindows:
    """Test the preset and custom date ranges."""

    @pytest.mark.parametrize("date_range,inside,outside", [
        ("today", datetime(2024, 3, 15, 0, 0), datetime(2024, 3, 14, 23, 59)),
        ("week", datetime(2024, 3, 8, 0, 0), datetime(2024, 3, 7, 23, 59)),
        ("month", datetime(2024, 2, 15, 0, 0), datetime(2024, 2, 14, 23, 59)),
        ("3months", datetime(2023, 12, 15, 0, 0), datetime(2023, 12, 14, 23, 59)),
        ("year", datetime(2024, 1, 1, 0, 0), datetime(2023, 12, 31, 23, 59)),
    ])
    def test_preset_windows(self, date_range, inside, outside):
        from src.timeline import TimelineCriteria, filter_events

        events = [_event("in", inside), _event("out", outside)]
        result = filter_events(events, TimelineCriteria(date_range=date_range), NOW)

        assert _ids(result) == ["in"]

    def test_window_ends_today(self):
        from src.timeline import TimelineCriteria, filter_events

        events = [_event("late", datetime(2024, 3, 15, 23, 59)), _event("tomorrow", datetime(2024, 3, 16, 0, 1))]
        result = filter_events(events, TimelineCriteria(date_range="week"), NOW)

        assert _ids(result) == ["late"]

    def test_custom_range_is_inclusive(self):
        from src.timeline import TimelineCriteria, filter_events

        events = [
            _event("1", datetime(2024, 1, 1, 0, 0)),
            _event("2", datetime(2024, 1, 31, 23, 0)),
            _event("3", datetime(2024, 2, 1, 0, 0)),
        ]
        criteria = TimelineCriteria(date_range="custom", custom_start=date(2024, 1, 1), custom_end=date(2024, 1, 31))

        assert _ids(filter_events(events, criteria, NOW)) == ["2", "1"]

    def test_custom_range_without_both_bounds(self):
        from src.timeline import TimelineCriteria, filter_events

        events = [_event("1", datetime(2020, 1, 1)), _event("2", datetime(2024, 1, 1))]
        criteria = TimelineCriteria(date_range="custom", custom_start=date(2023, 1, 1))

        assert _ids(filter_events(events, criteria, NOW)) == ["2", "1"]


class TestGrouping:
    """Test grouping by day and the derived views."""

    def test_group_by_day(self):
        from src.timeline import filter_events, group_by_day

        events = [
            _event("vacc", datetime(2023, 12, 31, 10, 0), type="vaccination"),
            _event("checkup", datetime(2024, 1, 1, 9, 0), type="checkup"),
            _event("illness", datetime(2024, 1, 1, 14, 0), type="illness"),
        ]
        groups = group_by_day(filter_events(events, now=NOW))

        assert [day for day, _ in groups] == ["2024-01-01", "2023-12-31"]
        assert _ids(groups[0][1]) == ["illness", "checkup"]
        assert _ids(groups[1][1]) == ["vacc"]

    def test_unresolved(self):
        from src.timeline import unresolved

        events = [
            _event("sick", NOW, type="illness"),
            _event("healed", NOW, type="injury", is_resolved=True),
            _event("hurt", NOW, type="injury"),
            _event("shot", NOW, type="vaccination"),
        ]
        assert _ids(unresolved(events)) == ["sick", "hurt"]

    def test_follow_ups_soonest_first(self):
        from src.timeline import upcoming_follow_ups

        events = [
            _event("later", NOW, follow_up_date=datetime(2024, 4, 20)),
            _event("past", NOW, follow_up_date=datetime(2024, 3, 1)),
            _event("soon", NOW, follow_up_date=datetime(2024, 3, 18)),
            _event("none", NOW),
        ]
        assert _ids(upcoming_follow_ups(events, NOW)) == ["soon", "later"]
        assert _ids(upcoming_follow_ups(events, NOW, horizon_days=30)) == ["soon"]

    def test_events_by_type(self):
        from src.models import EventType
        from src.timeline import events_by_type

        events = [_event("1", NOW, type="growth"), _event("2", NOW, type="note")]
        assert _ids(events_by_type(events, EventType.GROWTH)) == ["1"]

    def test_build_view(self):
        from src.timeline import TimelineCriteria, build_view

        events = [
            _event("old", datetime(2023, 6, 1), type="illness"),
            _event("new", datetime(2024, 3, 14), type="checkup", follow_up_date=datetime(2024, 3, 20)),
        ]
        view = build_view(events, TimelineCriteria(date_range="month"), now=NOW)

        assert view.total == 2
        assert _ids(view.events) == ["new"]
        assert [day for day, _ in view.groups] == ["2024-03-14"]
        # Derived lists look at every event, not only the filtered ones
        assert _ids(view.unresolved) == ["old"]
        assert _ids(view.follow_ups) == ["new"]


class TestDateLabel:
    """Test day group headings (week starts on Sunday)."""

    TODAY = date(2024, 3, 13)  # a Wednesday

    @pytest.mark.parametrize("day,label", [
        (date(2024, 3, 13), "Today"),
        (date(2024, 3, 12), "Yesterday"),
        (date(2024, 3, 10), "Sunday"),
        (date(2024, 3, 16), "Saturday"),
        (date(2024, 3, 9), "Mar 09"),
        (date(2024, 3, 1), "Mar 01"),
        (date(2024, 2, 20), "Feb 20, 2024"),
        (date(2023, 3, 13), "Mar 13, 2023"),
    ])
    def test_labels(self, day, label):
        from src.timeline import date_label

        assert date_label(day, self.TODAY) == label
