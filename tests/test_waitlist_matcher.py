"""
Unit tests for waitlist slot matching
"""
from datetime import date, datetime
from types import SimpleNamespace

from puppyday.domain.waitlist.matcher import (
    calculate_priority,
    find_matching_entries,
    is_within_match_window,
    matches_time_preference,
    slot_period,
)

NOW = datetime(2030, 1, 20, 12, 0)
SLOT_DAY = date(2030, 1, 21)


def entry(entry_id, requested_date=SLOT_DAY, requested_time="any", created_at=datetime(2030, 1, 10), **overrides):
    data = {
        "id": entry_id,
        "status": "active",
        "service_id": "svc-1",
        "requested_date": requested_date,
        "requested_time": requested_time,
        "created_at": created_at,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


def test_priority_is_days_waiting():
    assert calculate_priority(entry("a", created_at=datetime(2030, 1, 10, 12, 0)), NOW) == 10
    assert calculate_priority(entry("a", created_at=datetime(2030, 1, 25)), NOW) == 0
    assert calculate_priority(entry("a", created_at=None), NOW) == 0


def test_time_preferences():
    assert slot_period("11:30") == "morning"
    assert slot_period("12:00") == "afternoon"
    assert matches_time_preference("any", "09:00")
    assert matches_time_preference(None, "15:00")
    assert matches_time_preference("morning", "09:00")
    assert not matches_time_preference("morning", "13:00")
    assert matches_time_preference("afternoon", "13:00")


def test_match_window_is_three_days_either_side():
    assert is_within_match_window(date(2030, 1, 18), SLOT_DAY)
    assert is_within_match_window(date(2030, 1, 24), SLOT_DAY)
    assert not is_within_match_window(date(2030, 1, 17), SLOT_DAY)
    assert not is_within_match_window(date(2030, 1, 25), SLOT_DAY)


def test_find_matching_entries_filters_and_orders():
    entries = [
        entry("recent", created_at=datetime(2030, 1, 19)),
        entry("oldest", requested_date=date(2030, 1, 23), created_at=datetime(2030, 1, 1)),
        entry("too-far", requested_date=date(2030, 1, 26)),
        entry("morning-only", requested_time="morning"),
        entry("other-service", service_id="svc-2"),
        entry("already-notified", status="notified"),
        entry("afternoon", requested_time="afternoon", created_at=datetime(2030, 1, 10)),
    ]

    matches = find_matching_entries(entries, SLOT_DAY, "14:00", "svc-1", now=NOW)

    assert [m.id for m in matches] == ["oldest", "afternoon", "recent"]


def test_ties_broken_by_join_time():
    entries = [
        entry("second", created_at=datetime(2030, 1, 10, 15, 0)),
        entry("first", created_at=datetime(2030, 1, 10, 9, 0)),
    ]
    matches = find_matching_entries(entries, "2030-01-21", "10:00", "svc-1", now=NOW)
    assert [m.id for m in matches] == ["first", "second"]


def test_invalid_slot_date():
    assert find_matching_entries([entry("a")], "not-a-date", "10:00", "svc-1") == []
