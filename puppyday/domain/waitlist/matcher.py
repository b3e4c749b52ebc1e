"""
Waitlist slot matching.

When a slot frees up we look for active entries for the same service whose
requested day is close to the slot day and whose time-of-day preference
fits. Longest-waiting entries come first.
"""

from datetime import date, datetime
from typing import Iterable, Optional

from ...models import WaitlistEntry
from ...shared.dates import parse_date_string, utcnow

MATCH_WINDOW_DAYS = 3
AFTERNOON_START_HOUR = 12
TIME_PREFERENCES = ("morning", "afternoon", "any")


def calculate_priority(entry: WaitlistEntry, now: Optional[datetime] = None) -> int:
    """Whole days the entry has been waiting"""
    if entry.created_at is None:
        return 0
    now = now or utcnow()
    return max(0, (now - entry.created_at).days)


def slot_period(slot_time: str) -> str:
    hour = int(slot_time.split(":")[0])
    return "morning" if hour < AFTERNOON_START_HOUR else "afternoon"


def matches_time_preference(preference: Optional[str], slot_time: str) -> bool:
    if not preference or preference == "any":
        return True
    return preference == slot_period(slot_time)


def is_within_match_window(requested: date, slot_day: date) -> bool:
    return abs((requested - slot_day).days) <= MATCH_WINDOW_DAYS


def find_matching_entries(
    entries: Iterable[WaitlistEntry],
    slot_date,
    slot_time: str,
    service_id: str,
    now: Optional[datetime] = None,
) -> list[WaitlistEntry]:
    """Active entries that fit the slot, highest priority first"""
    slot_day = slot_date if isinstance(slot_date, date) else parse_date_string(slot_date)
    if slot_day is None:
        return []

    matches = [
        entry
        for entry in entries
        if entry.status == "active"
        and entry.service_id == service_id
        and is_within_match_window(entry.requested_date, slot_day)
        and matches_time_preference(entry.requested_time, slot_time)
    ]
    # created_at breaks ties between entries that joined on the same day
    matches.sort(key=lambda e: (-calculate_priority(e, now), e.created_at or datetime.max))
    return matches
