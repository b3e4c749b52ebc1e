"""
Business-timezone date helpers.

The salon runs on Pacific time. Timestamps are stored as naive UTC in the
database; anything a human sees (today, a slot time, a blocked day) is
computed in BUSINESS_TIMEZONE.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from dateutil import parser as date_parser
from dateutil import tz

from ..config import BUSINESS_TIMEZONE

business_tz = tz.gettz(BUSINESS_TIMEZONE)

MIN_VALID_DATE = date(2020, 1, 1)
MAX_DATE_RANGE_DAYS = 730

DATE_FORMATS = {
    "long": "%A, %B {day}, %Y",
    "short": "%b {day}",
    "iso": "%Y-%m-%d",
    "month_day": "{month}/{day}",
}


def utcnow() -> datetime:
    """Naive UTC now, matching how DateTime columns are stored"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_in_business_timezone() -> datetime:
    return datetime.now(business_tz)


def to_business_time(value: datetime) -> datetime:
    """Convert a stored (naive UTC) or aware datetime to business local time"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(business_tz)


def business_to_utc(day: Union[date, str], hhmm: str) -> datetime:
    """Local salon date + 'HH:MM' -> naive UTC datetime for storage"""
    if isinstance(day, str):
        day = date.fromisoformat(day)
    hours, minutes = (int(part) for part in hhmm.split(":")[:2])
    local = datetime.combine(day, time(hours, minutes), tzinfo=business_tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def parse_date_string(value: Optional[str]) -> Optional[date]:
    """Parse 'YYYY-MM-DD' (or an ISO timestamp) into a date, None when invalid"""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except (ValueError, TypeError):
        return None


def get_today_in_business_timezone() -> dict[str, str]:
    """
    Start and end of the current business day as UTC ISO strings.

    The end is exactly 24 hours after the start so range queries stay simple
    even across DST changes.
    """
    local_now = now_in_business_timezone()
    local_midnight = datetime.combine(local_now.date(), time.min, tzinfo=business_tz)
    start = local_midnight.astimezone(timezone.utc)
    end = start + timedelta(hours=24)
    return {
        "today_start": start.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "today_end": end.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


def get_today_date() -> date:
    return now_in_business_timezone().date()


def get_today_date_string() -> str:
    return get_today_date().isoformat()


def is_date_in_past(date_str: Optional[str]) -> bool:
    """True only for days strictly before today in the business timezone"""
    parsed = parse_date_string(date_str)
    if parsed is None:
        return False
    return parsed < get_today_date()


def get_day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def get_day_of_week_in_business_timezone(date_str: Optional[str]) -> int:
    parsed = parse_date_string(date_str)
    if parsed is None:
        return -1
    return get_day_of_week(parsed)


def is_sunday_in_business_timezone(date_str: str) -> bool:
    return get_day_of_week_in_business_timezone(date_str) == 0


def format_date_in_business_timezone(value: Union[str, date, datetime, None], fmt: str = "long") -> str:
    """
    Format a date for display.

    fmt is one of "long" (Wednesday, December 25, 2024), "short" (Dec 25),
    "iso" (2024-12-25) or "month_day" (12/25). Invalid input gives ''.
    """
    if not value:
        return ""
    if isinstance(value, datetime):
        day = to_business_time(value).date()
    elif isinstance(value, date):
        day = value
    else:
        day = parse_date_string(value)
        if day is None:
            return ""

    pattern = DATE_FORMATS.get(fmt, fmt)
    # strftime has no portable unpadded day/month
    pattern = pattern.replace("{day}", str(day.day)).replace("{month}", str(day.month))
    return day.strftime(pattern)


def validate_and_parse_date(value: Optional[str], field_name: str) -> date:
    """
    Parse a user-supplied date and keep it within a sane window.

    Raises:
        ValueError: when missing, unparseable, or outside 2020-01-01 .. one year from today
    """
    if not value:
        raise ValueError(f"{field_name} is required")

    try:
        parsed = date_parser.isoparse(value).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid {field_name} format") from e

    max_date = get_today_date() + timedelta(days=365)
    if parsed < MIN_VALID_DATE or parsed > max_date:
        raise ValueError(
            f"{field_name} must be between {MIN_VALID_DATE.isoformat()} and {max_date.isoformat()}"
        )

    return parsed


def validate_date_range(start: date, end: date) -> None:
    if start > end:
        raise ValueError("Start date must be before or equal to end date")
    if (end - start).days > MAX_DATE_RANGE_DAYS:
        raise ValueError(f"Date range cannot exceed {MAX_DATE_RANGE_DAYS} days")


def business_day_bounds_utc(day: date) -> tuple[datetime, datetime]:
    """Naive UTC instants bracketing a business-local day, end exclusive"""
    start = datetime.combine(day, time.min, tzinfo=business_tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=business_tz)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )
