"""
Campaign validation.

Each check returns {"is_valid": bool, "errors": [{"field", "message"}]} so the
admin UI can show every problem at once instead of failing on the first.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil import parser as date_parser

CAMPAIGN_TYPES = ("one_time", "recurring")
CAMPAIGN_CHANNELS = ("email", "sms", "both")
RECURRING_FREQUENCIES = ("daily", "weekly", "monthly")

MAX_CAMPAIGN_NAME_LENGTH = 100
MAX_SMS_LENGTH = 160
MAX_EMAIL_SUBJECT_LENGTH = 100
MAX_EMAIL_BODY_LENGTH = 5000
MAX_SCHEDULE_AHEAD_DAYS = 365

LIST_FILTERS = ("pet_size", "service_ids", "breed_ids", "tags")
SCALAR_FILTERS = (
    "last_visit_days",
    "min_visits",
    "max_visits",
    "has_membership",
    "loyalty_eligible",
    "min_appointments",
    "max_appointments",
    "min_total_spend",
    "not_visited_since",
    "has_upcoming_appointment",
)


def _result(errors: list[dict]) -> dict:
    return {"is_valid": not errors, "errors": errors}


def _error(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def _blank(value) -> bool:
    return not value or not str(value).strip()


def validate_campaign_type(campaign_type: Optional[str]) -> dict:
    errors = []
    if not campaign_type:
        errors.append(_error("type", "Please select a campaign type"))
    elif campaign_type not in CAMPAIGN_TYPES:
        errors.append(_error("type", "Invalid campaign type"))
    return _result(errors)


def validate_segment_criteria(criteria: Optional[dict]) -> dict:
    criteria = criteria or {}
    errors = []

    has_any_filter = any(criteria.get(key) is not None for key in SCALAR_FILTERS) or any(
        criteria.get(key) for key in LIST_FILTERS
    )
    if not has_any_filter:
        errors.append(_error("segment_criteria", "Please select at least one audience filter"))

    min_visits, max_visits = criteria.get("min_visits"), criteria.get("max_visits")
    if min_visits is not None and max_visits is not None and min_visits > max_visits:
        errors.append(_error("visits", "Minimum visits cannot be greater than maximum visits"))

    min_appts, max_appts = criteria.get("min_appointments"), criteria.get("max_appointments")
    if min_appts is not None and max_appts is not None and min_appts > max_appts:
        errors.append(_error("appointments", "Minimum appointments cannot be greater than maximum appointments"))

    if criteria.get("last_visit_days") is not None and criteria["last_visit_days"] < 0:
        errors.append(_error("last_visit_days", "Last visit days must be a positive number"))

    if criteria.get("min_total_spend") is not None and criteria["min_total_spend"] < 0:
        errors.append(_error("min_total_spend", "Minimum spend must be a positive number"))

    return _result(errors)


def validate_message_content(channel: str, content: Optional[dict]) -> dict:
    content = content or {}
    errors = []

    if channel in ("sms", "both"):
        sms_body = content.get("sms_body")
        if _blank(sms_body):
            errors.append(_error("sms_body", "SMS message is required"))
        elif len(sms_body) > MAX_SMS_LENGTH:
            errors.append(_error("sms_body", "SMS message must be 160 characters or less"))

    if channel in ("email", "both"):
        subject = content.get("email_subject")
        if _blank(subject):
            errors.append(_error("email_subject", "Email subject is required"))
        elif len(subject) > MAX_EMAIL_SUBJECT_LENGTH:
            errors.append(_error("email_subject", "Email subject must be 100 characters or less"))

        body = content.get("email_body")
        if _blank(body):
            errors.append(_error("email_body", "Email body is required"))
        elif len(body) > MAX_EMAIL_BODY_LENGTH:
            errors.append(_error("email_body", "Email body must be 5000 characters or less"))

    return _result(errors)


def validate_ab_test_config(config: Optional[dict], channel: str) -> dict:
    if not config or not config.get("enabled"):
        return _result([])

    errors = []
    split = config.get("split_percentage", 50)
    if split is None or split < 0 or split > 100:
        errors.append(_error("split_percentage", "Split percentage must be between 0 and 100"))

    if not validate_message_content(channel, config.get("variant_a"))["is_valid"]:
        errors.append(_error("variant_a", "Variant A has validation errors"))
    if not validate_message_content(channel, config.get("variant_b"))["is_valid"]:
        errors.append(_error("variant_b", "Variant B has validation errors"))

    return _result(errors)


def _as_utc(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = date_parser.isoparse(value)
        except ValueError:
            return None
    if value.tzinfo is None:
        # naive values are stored UTC
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_scheduling(
    send_now: bool,
    scheduled_at,
    is_recurring: bool,
    recurring_config: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> dict:
    errors = []
    now = _as_utc(now) if now else datetime.now(timezone.utc)

    if not send_now:
        if not scheduled_at:
            errors.append(_error("scheduled_at", "Please select a date and time for scheduled send"))
        else:
            scheduled = _as_utc(scheduled_at)
            if scheduled is None:
                errors.append(_error("scheduled_at", "Please select a date and time for scheduled send"))
            elif scheduled <= now:
                errors.append(_error("scheduled_at", "Scheduled time must be in the future"))
            elif scheduled > now + timedelta(days=MAX_SCHEDULE_AHEAD_DAYS):
                errors.append(_error("scheduled_at", "Cannot schedule more than 1 year in advance"))

    if is_recurring and recurring_config is not None:
        frequency = recurring_config.get("frequency")
        if not frequency:
            errors.append(_error("recurring_frequency", "Please select a recurrence frequency"))
        if frequency == "weekly" and recurring_config.get("day_of_week") is None:
            errors.append(_error("recurring_day_of_week", "Please select a day of the week"))
        if frequency == "monthly" and recurring_config.get("day_of_month") is None:
            errors.append(_error("recurring_day_of_month", "Please select a day of the month"))
        if not recurring_config.get("time"):
            errors.append(_error("recurring_time", "Please select a time for recurring sends"))

    return _result(errors)


def validate_complete_campaign(data: dict, now: Optional[datetime] = None) -> dict:
    """Run every step's checks over a full campaign payload"""
    errors = []

    name = data.get("name")
    if _blank(name):
        errors.append(_error("name", "Campaign name is required"))
    elif len(name) > MAX_CAMPAIGN_NAME_LENGTH:
        errors.append(_error("name", "Campaign name must be 100 characters or less"))

    channel = data.get("channel")
    if channel not in CAMPAIGN_CHANNELS:
        errors.append(_error("channel", "Please select a channel"))

    errors += validate_campaign_type(data.get("type"))["errors"]
    errors += validate_segment_criteria(data.get("segment_criteria"))["errors"]
    errors += validate_message_content(channel, data.get("message_content"))["errors"]
    errors += validate_ab_test_config(data.get("ab_test_config"), channel)["errors"]
    errors += validate_scheduling(
        data.get("send_now", False),
        data.get("scheduled_at"),
        data.get("type") == "recurring",
        data.get("recurring_config"),
        now=now,
    )["errors"]

    return _result(errors)
