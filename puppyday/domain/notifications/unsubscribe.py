"""Signed one-click unsubscribe links"""

import logging
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.orm import Session

from ...config import APP_URL, SECRET_KEY, UNSUBSCRIBE_TOKEN_MAX_AGE_DAYS
from .preferences import MARKETING_NOTIFICATION_TYPES, disable_marketing, disable_notification_channel
from .repository import NotificationRepository

logger = logging.getLogger(__name__)

UNSUBSCRIBE_SALT = "puppyday-unsubscribe"

_serializer = URLSafeTimedSerializer(SECRET_KEY, salt=UNSUBSCRIBE_SALT)


def generate_unsubscribe_token(user_id: str, notification_type: str, channel: str) -> str:
    return _serializer.dumps({"user_id": user_id, "notification_type": notification_type, "channel": channel})


def verify_unsubscribe_token(token: str, max_age_days: int = UNSUBSCRIBE_TOKEN_MAX_AGE_DAYS) -> Optional[dict]:
    """Return the token payload, or None when it is expired, tampered with or malformed"""
    try:
        payload = _serializer.loads(token, max_age=max_age_days * 24 * 60 * 60)
    except SignatureExpired:
        logger.warning("⚠️ Expired unsubscribe token")
        return None
    except BadSignature:
        logger.warning("⚠️ Invalid unsubscribe token signature")
        return None

    if not isinstance(payload, dict) or not all(
        isinstance(payload.get(key), str) and payload.get(key)
        for key in ("user_id", "notification_type", "channel")
    ):
        return None
    if payload["channel"] not in ("email", "sms"):
        return None
    return payload


def generate_unsubscribe_url(user_id: str, notification_type: str, channel: str) -> str:
    token = generate_unsubscribe_token(user_id, notification_type, channel)
    return f"{APP_URL}/api/unsubscribe?token={token}"


def process_unsubscribe(db: Session, token: Optional[str]) -> dict:
    """
    Apply an unsubscribe link.

    Returns:
        {"success": True, "notification_type", "channel"} or
        {"success": False, "reason": "missing_token" | "invalid_token" | "update_failed"}
    """
    if not token:
        return {"success": False, "reason": "missing_token"}

    payload = verify_unsubscribe_token(token)
    if not payload:
        return {"success": False, "reason": "invalid_token"}

    user_id = payload["user_id"]
    notification_type = payload["notification_type"]
    channel = payload["channel"]

    if notification_type in MARKETING_NOTIFICATION_TYPES:
        result = disable_marketing(db, user_id)
    else:
        result = disable_notification_channel(db, user_id, notification_type, channel)

    if not result["success"]:
        logger.error(f"❌ Unsubscribe failed for user {user_id}: {result.get('error')}")
        return {"success": False, "reason": "update_failed"}

    try:
        NotificationRepository.create_log(
            db,
            customer_id=user_id,
            type="unsubscribe",
            channel=channel,
            recipient=user_id,
            subject=f"Unsubscribed from {notification_type}",
            content=f"User unsubscribed from {notification_type} via {channel}",
            status="sent",
            template_data={"notification_type": notification_type, "channel": channel},
        )
    except Exception as e:
        # The preference change is already committed
        db.rollback()
        logger.error(f"❌ Could not log unsubscribe for user {user_id}: {e}")

    logger.info(f"✅ User {user_id} unsubscribed from {notification_type} ({channel})")
    return {"success": True, "notification_type": notification_type, "channel": channel}
