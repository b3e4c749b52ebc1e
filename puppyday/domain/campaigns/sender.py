"""
Campaign sending.

Builds the audience for a campaign's segment, skips unsubscribed customers,
assigns A/B variants and pushes every message through the notification
pipeline so campaign sends are logged and retried like any other message.
"""

import html
import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...config import APP_URL
from ...models import CampaignSend, MarketingCampaign, MarketingUnsubscribe, User
from ...shared.dates import parse_date_string, utcnow
from ..notifications.schemas import NotificationMessage
from ..notifications.service import NotificationService
from ..notifications.triggers import sms_recipient
from ..notifications.unsubscribe import generate_unsubscribe_url

logger = logging.getLogger(__name__)

CAMPAIGN_NOTIFICATION_TYPE = "marketing_campaign"
UPCOMING_STATUSES = ("pending", "confirmed", "checked_in")

MAX_COUNT_FILTER = 10000
MAX_DAYS_FILTER = 3650
MAX_SPEND_FILTER = 1_000_000

_CLAMPS = {
    "min_appointments": MAX_COUNT_FILTER,
    "max_appointments": MAX_COUNT_FILTER,
    "min_visits": MAX_COUNT_FILTER,
    "max_visits": MAX_COUNT_FILTER,
    "last_visit_days": MAX_DAYS_FILTER,
    "min_total_spend": MAX_SPEND_FILTER,
}


def sanitize_criteria(criteria: Optional[dict]) -> dict:
    """Clamp numeric filters so a hostile segment cannot blow up the audience scan"""
    sanitized = dict(criteria or {})
    for key, upper in _CLAMPS.items():
        if sanitized.get(key) is not None:
            sanitized[key] = max(0, min(sanitized[key], upper))
    return sanitized


def _last_visit(completed: list) -> Optional[datetime]:
    return max((a.scheduled_at for a in completed), default=None)


def matches_segment(customer: User, criteria: dict, now: Optional[datetime] = None) -> bool:
    """Whether one customer (with appointments and pets loaded) fits the segment"""
    now = now or utcnow()
    appointments = list(customer.appointments or [])
    pets = list(customer.pets or [])
    completed = [a for a in appointments if a.status == "completed"]

    if criteria.get("min_appointments") is not None and len(appointments) < criteria["min_appointments"]:
        return False
    if criteria.get("max_appointments") is not None and len(appointments) > criteria["max_appointments"]:
        return False
    if criteria.get("min_visits") is not None and len(completed) < criteria["min_visits"]:
        return False
    if criteria.get("max_visits") is not None and len(completed) > criteria["max_visits"]:
        return False

    if criteria.get("last_visit_days") is not None:
        last_visit = _last_visit(completed)
        if last_visit is None or (now - last_visit).total_seconds() / 86400 > criteria["last_visit_days"]:
            return False

    if criteria.get("not_visited_since"):
        cutoff = criteria["not_visited_since"]
        cutoff = cutoff if isinstance(cutoff, date) else parse_date_string(cutoff)
        last_visit = _last_visit(completed)
        if cutoff is None or last_visit is None or last_visit.date() > cutoff:
            return False

    # Memberships are not offered, so nobody holds an active one
    if criteria.get("has_membership") is not None and criteria["has_membership"]:
        return False

    if criteria.get("pet_size") and not any(p.size in criteria["pet_size"] for p in pets):
        return False
    if criteria.get("service_ids") and not any(a.service_id in criteria["service_ids"] for a in appointments):
        return False
    if criteria.get("breed_ids") and not any(p.breed_id in criteria["breed_ids"] for p in pets):
        return False

    if criteria.get("min_total_spend") is not None:
        spend = sum(a.total_price or 0 for a in completed)
        if spend < criteria["min_total_spend"]:
            return False

    if criteria.get("has_upcoming_appointment") is not None:
        has_upcoming = any(a.scheduled_at > now and a.status in UPCOMING_STATUSES for a in appointments)
        if criteria["has_upcoming_appointment"] != has_upcoming:
            return False

    return True


def get_audience(db: Session, criteria: Optional[dict], now: Optional[datetime] = None) -> list[User]:
    sanitized = sanitize_criteria(criteria)
    customers = (
        db.query(User)
        .options(selectinload(User.appointments), selectinload(User.pets))
        .filter(User.role == "customer", User.is_active.is_(True))
        .order_by(User.created_at.asc(), User.id.asc())
        .all()
    )
    audience = [c for c in customers if matches_segment(c, sanitized, now)]
    logger.info(f"📊 Segment matched {len(audience)} of {len(customers)} customers")
    return audience


def check_unsubscribe_status(db: Session, customer_id: str, channel: str) -> bool:
    """True when the customer opted out of this campaign channel"""
    record = (
        db.query(MarketingUnsubscribe)
        .filter(MarketingUnsubscribe.customer_id == customer_id)
        .order_by(MarketingUnsubscribe.created_at.desc())
        .first()
    )
    if not record:
        return False
    if channel == "both":
        return record.unsubscribed_from == "both"
    return record.unsubscribed_from in (channel, "both")


def assign_ab_variant(index: int, split_percentage: float) -> str:
    """Deterministic by audience position so a re-send gives the same split"""
    bucket = (index * 2654435761) % 100
    return "A" if bucket < split_percentage else "B"


def replace_variables(template: str, customer: User) -> str:
    replacements = {
        "{customer_name}": f"{customer.first_name} {customer.last_name}",
        "{first_name}": customer.first_name or "",
        "{last_name}": customer.last_name or "",
        "{email}": customer.email or "",
        "{booking_link}": f"{APP_URL}/book?customer={customer.id}",
    }
    for placeholder, value in replacements.items():
        template = template.replace(placeholder, value)
    return template


def _text_to_html(text: str) -> str:
    return html.escape(text).replace("\n", "<br>")


def _unsubscribe_footer(url: str) -> str:
    return (
        '<p style="font-size:12px;color:#888888">'
        f'No longer want these emails? <a href="{html.escape(url)}">Unsubscribe</a></p>'
    )


async def send_campaign(
    db: Session,
    campaign: MarketingCampaign,
    service: Optional[NotificationService] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Send a campaign to its whole audience; returns {success, sent_count, skipped_count, errors}"""
    service = service or NotificationService(db)
    audience = get_audience(db, campaign.segment_criteria, now)
    ab_config = campaign.ab_test_config or {}
    ab_enabled = bool(ab_config.get("enabled"))
    split = ab_config.get("split_percentage", 50)

    result = {"success": True, "sent_count": 0, "skipped_count": 0, "errors": []}
    logger.info(f"🚀 Sending campaign '{campaign.name}' to {len(audience)} customers")

    for index, customer in enumerate(audience):
        if check_unsubscribe_status(db, customer.id, campaign.channel):
            logger.info(f"⏭️ Customer {customer.id} unsubscribed from {campaign.channel}, skipping")
            result["skipped_count"] += 1
            continue

        variant = assign_ab_variant(index, split) if ab_enabled else None
        content = campaign.message_content or {}
        if variant:
            content = ab_config.get("variant_a" if variant == "A" else "variant_b") or content

        send = CampaignSend(campaign_id=campaign.id, customer_id=customer.id, variant=variant)
        db.add(send)
        db.flush()

        delivered = False
        if campaign.channel in ("email", "both") and customer.email and content.get("email_subject"):
            body = content.get("email_body") or ""
            unsubscribe_url = generate_unsubscribe_url(customer.id, CAMPAIGN_NOTIFICATION_TYPE, "email")
            html_body = replace_variables(content.get("email_html") or _text_to_html(body), customer)
            outcome = await service.send(
                NotificationMessage(
                    type=CAMPAIGN_NOTIFICATION_TYPE,
                    channel="email",
                    recipient=customer.email,
                    user_id=customer.id,
                    subject=replace_variables(content["email_subject"], customer),
                    html=html_body + _unsubscribe_footer(unsubscribe_url),
                    text=f"{replace_variables(body, customer)}\n\nUnsubscribe: {unsubscribe_url}",
                    template_data={"campaign_id": campaign.id, "tracking_id": send.tracking_id},
                )
            )
            if outcome["success"]:
                delivered = True
                send.notification_log_id = outcome["log_id"]
            else:
                result["errors"].append(f"Email failed for {customer.email}: {outcome['error']}")

        phone = sms_recipient(customer.phone)
        if campaign.channel in ("sms", "both") and phone and content.get("sms_body"):
            outcome = await service.send(
                NotificationMessage(
                    type=CAMPAIGN_NOTIFICATION_TYPE,
                    channel="sms",
                    recipient=phone,
                    user_id=customer.id,
                    text=replace_variables(content["sms_body"], customer),
                    template_data={"campaign_id": campaign.id, "tracking_id": send.tracking_id},
                )
            )
            if outcome["success"]:
                delivered = True
                send.notification_log_id = send.notification_log_id or outcome["log_id"]
            else:
                result["errors"].append(f"SMS failed for {phone}: {outcome['error']}")

        send.status = "sent" if delivered else "failed"
        send.sent_at = utcnow() if delivered else None
        db.commit()
        if delivered:
            result["sent_count"] += 1

    logger.info(
        f"✅ Campaign '{campaign.name}' done. Sent: {result['sent_count']}, "
        f"Skipped: {result['skipped_count']}, Errors: {len(result['errors'])}"
    )
    return result
