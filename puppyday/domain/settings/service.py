"""
Settings service - booking policy and weekly business hours.

Both live as JSON rows in the settings table. Stored values are merged over
the defaults so a partially written row still yields a complete config.
"""

import copy
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Setting
from ...shared.dates import business_tz, get_day_of_week, now_in_business_timezone, parse_date_string
from .schemas import BookingSettings, BookingSettingsUpdate, BusinessHours

logger = logging.getLogger(__name__)

BOOKING_SETTINGS_KEY = "booking_settings"
BUSINESS_HOURS_KEY = "business_hours"

DEFAULT_BOOKING_SETTINGS = {
    "min_advance_hours": 2,
    "max_advance_days": 90,
    "cancellation_cutoff_hours": 24,
    "buffer_minutes": 15,
    "blocked_dates": [],
    "recurring_blocked_days": [0],
}

DAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")

DEFAULT_BUSINESS_HOURS = {
    day: {"is_open": day != "sunday", "open": "09:00", "close": "17:00"} for day in DAY_NAMES
}


def merge_booking_settings(stored: Optional[dict]) -> dict:
    merged = copy.deepcopy(DEFAULT_BOOKING_SETTINGS)
    if stored:
        merged.update({key: value for key, value in stored.items() if key in DEFAULT_BOOKING_SETTINGS})
    return merged


def merge_business_hours(stored: Optional[dict]) -> dict:
    merged = copy.deepcopy(DEFAULT_BUSINESS_HOURS)
    for day, hours in (stored or {}).items():
        if day in merged and isinstance(hours, dict):
            merged[day].update(hours)
    return merged


def get_day_name(day) -> str:
    return DAY_NAMES[get_day_of_week(day)]


def is_date_blocked(date_str: str, blocked_dates: list, recurring_blocked_days: list) -> bool:
    """Single blocked dates, inclusive ranges and recurring weekdays (0 = Sunday)"""
    day = parse_date_string(date_str)
    if day is None:
        return False

    for blocked in blocked_dates or []:
        start = parse_date_string(blocked.get("date"))
        if start is None:
            continue
        end = parse_date_string(blocked.get("end_date")) or start
        if start <= day <= end:
            return True

    return get_day_of_week(day) in (recurring_blocked_days or [])


def is_within_booking_window(
    date_str: str,
    time_str: str,
    min_advance_hours: int,
    max_advance_days: int,
    now: Optional[datetime] = None,
) -> dict:
    """
    Check a local slot against the advance booking window; both ends are inclusive.

    Returns:
        {"allowed": bool, "reason": Optional[str]}
    """
    now = now or now_in_business_timezone()
    if now.tzinfo is None:
        now = now.replace(tzinfo=business_tz)

    day = parse_date_string(date_str)
    if day is None:
        return {"allowed": False, "reason": "Invalid date"}

    hours, minutes = (int(part) for part in time_str.split(":")[:2])
    slot = datetime(day.year, day.month, day.day, hours, minutes, tzinfo=business_tz)

    if slot < now + timedelta(hours=min_advance_hours):
        return {
            "allowed": False,
            "reason": f"Appointments must be booked at least {min_advance_hours} hours in advance",
        }
    if slot > now + timedelta(days=max_advance_days):
        return {
            "allowed": False,
            "reason": f"Appointments cannot be booked more than {max_advance_days} days in advance",
        }
    return {"allowed": True, "reason": None}


class SettingsService:
    """Service layer for salon settings"""

    def __init__(self, db: Session):
        self.db = db

    def _get(self, key: str) -> Optional[dict]:
        row = self.db.get(Setting, key)
        return row.value if row else None

    def _put(self, key: str, value: dict) -> None:
        row = self.db.get(Setting, key)
        if row:
            row.value = value
        else:
            self.db.add(Setting(key=key, value=value))
        self.db.commit()

    def get_booking_settings(self) -> dict:
        return merge_booking_settings(self._get(BOOKING_SETTINGS_KEY))

    def update_booking_settings(self, data: BookingSettingsUpdate) -> dict:
        current = self.get_booking_settings()
        updates = data.model_dump(exclude_none=True)
        merged = {**current, **updates}
        # Full validation of the merged result so cross-field rules still hold
        validated = BookingSettings(**merged).model_dump()
        self._put(BOOKING_SETTINGS_KEY, validated)
        logger.info(f"✅ Booking settings updated: {sorted(updates)}")
        return validated

    def add_blocked_date(self, blocked: dict) -> dict:
        current = self.get_booking_settings()
        current["blocked_dates"] = [
            b for b in current["blocked_dates"] if b.get("date") != blocked["date"]
        ] + [blocked]
        current["blocked_dates"].sort(key=lambda b: b["date"])
        validated = BookingSettings(**current).model_dump()
        self._put(BOOKING_SETTINGS_KEY, validated)
        logger.info(f"🚫 Blocked {blocked['date']}{' to ' + blocked['end_date'] if blocked.get('end_date') else ''}")
        return validated

    def remove_blocked_date(self, date_str: str) -> dict:
        current = self.get_booking_settings()
        remaining = [b for b in current["blocked_dates"] if b.get("date") != date_str]
        if len(remaining) == len(current["blocked_dates"]):
            return current
        current["blocked_dates"] = remaining
        self._put(BOOKING_SETTINGS_KEY, current)
        logger.info(f"✅ Unblocked {date_str}")
        return current

    def get_business_hours(self) -> dict:
        return merge_business_hours(self._get(BUSINESS_HOURS_KEY))

    def update_business_hours(self, data: BusinessHours) -> dict:
        hours = data.model_dump()
        self._put(BUSINESS_HOURS_KEY, hours)
        logger.info("✅ Business hours updated")
        return hours
