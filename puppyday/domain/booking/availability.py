"""
Slot availability for the booking flow.

All slot times are "HH:MM" strings in the business timezone. Appointments
are compared by converting their stored UTC start to local time first.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from ...models import Appointment
from ...shared.dates import business_tz, now_in_business_timezone, parse_date_string, to_business_time
from ..settings.service import DEFAULT_BUSINESS_HOURS, get_day_name, is_date_blocked, is_within_booking_window

SLOT_INTERVAL_MINUTES = 30
NEXT_AVAILABLE_LOOKAHEAD_DAYS = 60
PAST_SLOT_BUFFER_MINUTES = 30
INACTIVE_STATUSES = ("cancelled", "no_show")


def time_to_minutes(value: str) -> int:
    hours, minutes = (int(part) for part in value.split(":")[:2])
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def generate_time_slots(open_time: str, close_time: str) -> list[str]:
    """Every 30 minutes from opening, strictly before closing"""
    return [
        minutes_to_time(minutes)
        for minutes in range(time_to_minutes(open_time), time_to_minutes(close_time), SLOT_INTERVAL_MINUTES)
    ]


def _local_now(now: Optional[datetime]) -> datetime:
    now = now or now_in_business_timezone()
    if now.tzinfo is None:
        now = now.replace(tzinfo=business_tz)
    return now.astimezone(business_tz)


def has_conflict(slot_start: str, slot_duration: int, appointments: list[Appointment], date_str: str) -> bool:
    """True when [slot_start, slot_start + duration) overlaps a live appointment that day"""
    start = time_to_minutes(slot_start)
    end = start + slot_duration

    for appointment in appointments:
        if appointment.status in INACTIVE_STATUSES:
            continue
        local = to_business_time(appointment.scheduled_at)
        if local.date().isoformat() != date_str:
            continue
        appointment_start = local.hour * 60 + local.minute
        appointment_end = appointment_start + (appointment.duration_minutes or 0)
        if start < appointment_end and end > appointment_start:
            return True

    return False


def get_available_slots(
    date_str: str,
    service_duration: int,
    appointments: list[Appointment],
    business_hours: Optional[dict] = None,
    booking_settings: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> list[dict]:
    """
    Candidate slots for a day, each {"time": "HH:MM", "available": bool}.

    Slots outside the booking window or too close to closing are dropped;
    slots that collide with an existing appointment are kept but unavailable.
    """
    day = parse_date_string(date_str)
    if day is None:
        return []

    business_hours = business_hours or DEFAULT_BUSINESS_HOURS
    day_hours = business_hours[get_day_name(day)]
    if not day_hours["is_open"]:
        return []

    if booking_settings and is_date_blocked(
        date_str, booking_settings["blocked_dates"], booking_settings["recurring_blocked_days"]
    ):
        return []

    local_now = _local_now(now)
    is_today = day == local_now.date()
    min_advance_minutes = booking_settings["min_advance_hours"] * 60 if booking_settings else 30
    current_minutes = local_now.hour * 60 + local_now.minute
    buffer_minutes = booking_settings["buffer_minutes"] if booking_settings else 0
    close_minutes = time_to_minutes(day_hours["close"])

    slots = []
    for slot in generate_time_slots(day_hours["open"], day_hours["close"]):
        slot_minutes = time_to_minutes(slot)
        if is_today and slot_minutes <= current_minutes + min_advance_minutes:
            continue
        if booking_settings and not is_within_booking_window(
            date_str,
            slot,
            booking_settings["min_advance_hours"],
            booking_settings["max_advance_days"],
            now=local_now,
        )["allowed"]:
            continue
        if slot_minutes + service_duration + buffer_minutes > close_minutes:
            continue

        slots.append(
            {
                "time": slot,
                "available": not has_conflict(slot, service_duration + buffer_minutes, appointments, date_str),
            }
        )

    return slots


def is_date_available(date_str: str, business_hours: Optional[dict] = None, today: Optional[date] = None) -> bool:
    """Not in the past and the salon is open that weekday"""
    day = parse_date_string(date_str)
    if day is None:
        return False
    today = today or now_in_business_timezone().date()
    if day < today:
        return False
    return (business_hours or DEFAULT_BUSINESS_HOURS)[get_day_name(day)]["is_open"]


def get_disabled_dates(
    start: date,
    end: date,
    business_hours: Optional[dict] = None,
    booking_settings: Optional[dict] = None,
    today: Optional[date] = None,
) -> list[str]:
    """Dates in [start, end] a customer cannot pick: past, beyond the window, closed or blocked"""
    business_hours = business_hours or DEFAULT_BUSINESS_HOURS
    today = today or now_in_business_timezone().date()
    max_date = today + timedelta(days=booking_settings["max_advance_days"]) if booking_settings else None

    disabled = []
    current = start
    while current <= end:
        date_str = current.isoformat()
        if current < today or (max_date and current > max_date):
            disabled.append(date_str)
        elif not business_hours[get_day_name(current)]["is_open"]:
            disabled.append(date_str)
        elif booking_settings and is_date_blocked(
            date_str, booking_settings["blocked_dates"], booking_settings["recurring_blocked_days"]
        ):
            disabled.append(date_str)
        current += timedelta(days=1)

    return disabled


def get_next_available_date(business_hours: Optional[dict] = None, today: Optional[date] = None) -> str:
    """First open day within 60 days, falling back to today"""
    today = today or now_in_business_timezone().date()
    for offset in range(NEXT_AVAILABLE_LOOKAHEAD_DAYS):
        candidate = (today + timedelta(days=offset)).isoformat()
        if is_date_available(candidate, business_hours, today=today):
            return candidate
    return today.isoformat()


def filter_past_slots(slots: list[str], date_str: str, now: Optional[datetime] = None) -> list[str]:
    """Drop today's slots that start within the next 30 minutes"""
    local_now = _local_now(now)
    if parse_date_string(date_str) != local_now.date():
        return slots

    current_minutes = local_now.hour * 60 + local_now.minute
    return [slot for slot in slots if time_to_minutes(slot) > current_minutes + PAST_SLOT_BUFFER_MINUTES]


def get_next_slot_time(now: Optional[datetime] = None) -> str:
    """Next 30-minute boundary after now, used to pre-fill walk-ins"""
    local_now = _local_now(now)
    minutes = local_now.hour * 60 + local_now.minute
    next_slot = (minutes // SLOT_INTERVAL_MINUTES + 1) * SLOT_INTERVAL_MINUTES
    return minutes_to_time(min(next_slot, 23 * 60 + 30))
