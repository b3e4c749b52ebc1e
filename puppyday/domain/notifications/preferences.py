"""Customer notification preferences stored in users.preferences"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import User

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATION_PREFERENCES = {
    "marketing_enabled": True,
    "email_appointment_reminders": True,
    "sms_appointment_reminders": True,
    "email_retention_reminders": True,
    "sms_retention_reminders": True,
}

MARKETING_NOTIFICATION_TYPES = {"marketing", "marketing_campaign", "promotion"}

# (notification_type, channel) -> (preference key, reason when disabled)
CHANNEL_PREFERENCE_KEYS = {
    ("appointment_reminder", "email"): (
        "email_appointment_reminders",
        "customer_preference_email_reminders_disabled",
    ),
    ("appointment_reminder", "sms"): (
        "sms_appointment_reminders",
        "customer_preference_sms_reminders_disabled",
    ),
    ("retention_reminder", "email"): (
        "email_retention_reminders",
        "customer_preference_email_retention_disabled",
    ),
    ("retention_reminder", "sms"): (
        "sms_retention_reminders",
        "customer_preference_sms_retention_disabled",
    ),
}


def merge_with_defaults(stored: Optional[dict]) -> dict:
    """Only real booleans override a default; anything else is ignored"""
    stored = stored or {}
    return {
        key: stored[key] if isinstance(stored.get(key), bool) else default
        for key, default in DEFAULT_NOTIFICATION_PREFERENCES.items()
    }


def is_always_allowed(notification_type: str) -> bool:
    """Transactional messages about a booking the customer made cannot be muted"""
    return notification_type == "booking_confirmation" or notification_type.startswith(
        "appointment_status"
    )


def check_notification_allowed(preferences: Optional[dict], notification_type: str, channel: str) -> dict:
    """
    Decide whether a customer's preferences allow a message.

    Returns:
        {"allowed": bool, "reason": Optional[str]}
    """
    if is_always_allowed(notification_type):
        return {"allowed": True, "reason": None}

    prefs = merge_with_defaults(preferences)

    if notification_type in MARKETING_NOTIFICATION_TYPES and not prefs["marketing_enabled"]:
        return {"allowed": False, "reason": "customer_preference_marketing_disabled"}

    channel_rule = CHANNEL_PREFERENCE_KEYS.get((notification_type, channel))
    if channel_rule and not prefs[channel_rule[0]]:
        return {"allowed": False, "reason": channel_rule[1]}

    return {"allowed": True, "reason": None}


def get_notification_preferences(db: Session, user_id: str) -> dict:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️ No user {user_id} when reading preferences, using defaults")
        return dict(DEFAULT_NOTIFICATION_PREFERENCES)
    return merge_with_defaults(user.preferences)


def update_notification_preferences(db: Session, user_id: str, updates: dict) -> dict:
    """Apply boolean updates; other keys in users.preferences (no_show_count) are preserved"""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        return {"success": False, "error": "User not found"}

    stored = dict(user.preferences or {})
    current = merge_with_defaults(stored)
    for key, value in updates.items():
        if key in DEFAULT_NOTIFICATION_PREFERENCES and isinstance(value, bool):
            current[key] = value

    # Reassign so SQLAlchemy notices the JSON change
    user.preferences = {**stored, **current}
    db.commit()
    logger.info(f"✅ Updated notification preferences for user {user_id}")
    return {"success": True, "preferences": current}


def disable_marketing(db: Session, user_id: str) -> dict:
    return update_notification_preferences(db, user_id, {"marketing_enabled": False})


def disable_notification_channel(db: Session, user_id: str, notification_type: str, channel: str) -> dict:
    channel_rule = CHANNEL_PREFERENCE_KEYS.get((notification_type, channel))
    if not channel_rule:
        return {"success": False, "error": "Invalid notification type or channel"}
    return update_notification_preferences(db, user_id, {channel_rule[0]: False})
