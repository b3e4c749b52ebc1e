"""Built-in notification templates and per-type channel settings"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import NotificationSetting, NotificationTemplate

logger = logging.getLogger(__name__)


def _var(name: str, required: bool = True, max_length: Optional[int] = None) -> dict:
    return {"name": name, "required": required, "max_length": max_length}


DEFAULT_TEMPLATES = [
    {
        "name": "Booking Confirmation (SMS)",
        "type": "booking_confirmation",
        "channel": "sms",
        "text_template": (
            "Confirmed! {{pet_name}} {{appointment_date}} {{appointment_time}}. "
            "{{total_price}}. Puppy Day (657) 252-2903"
        ),
        "variables": [
            _var("pet_name", max_length=20),
            _var("appointment_date", max_length=12),
            _var("appointment_time", max_length=8),
            _var("total_price", max_length=10),
        ],
    },
    {
        "name": "Booking Confirmation (Email)",
        "type": "booking_confirmation",
        "channel": "email",
        "subject_template": "Your appointment for {{pet_name}} is booked!",
        "html_template": (
            "<p>Hi {{customer_name}},</p>"
            "<p>{{pet_name}} is booked for <strong>{{service_name}}</strong> on "
            "{{appointment_date}} at {{appointment_time}}.</p>"
            "<p>Reference: {{booking_reference}}<br>Total: {{total_price}}</p>"
            "<p>{{business.name}} &middot; {{business.address}} &middot; {{business.phone}}</p>"
        ),
        "text_template": (
            "Hi {{customer_name}}, {{pet_name}} is booked for {{service_name}} on "
            "{{appointment_date}} at {{appointment_time}}. Reference: {{booking_reference}}. "
            "Total: {{total_price}}. {{business.name}}, {{business.phone}}"
        ),
        "variables": [
            _var("customer_name"),
            _var("pet_name"),
            _var("service_name"),
            _var("appointment_date"),
            _var("appointment_time"),
            _var("booking_reference", required=False),
            _var("total_price", required=False),
        ],
    },
    {
        "name": "Appointment Reminder (SMS)",
        "type": "appointment_reminder",
        "channel": "sms",
        "text_template": "Reminder: {{pet_name}}'s grooming tomorrow at {{appointment_time}}. Puppy Day (657) 252-2903",
        "variables": [_var("pet_name", max_length=20), _var("appointment_time", max_length=8)],
    },
    {
        "name": "Appointment Reminder (Email)",
        "type": "appointment_reminder",
        "channel": "email",
        "subject_template": "Reminder: {{pet_name}}'s grooming appointment tomorrow",
        "html_template": (
            "<p>Hi {{customer_name}},</p>"
            "<p>Just a reminder that {{pet_name}} has a {{service_name}} appointment on "
            "{{appointment_date}} at {{appointment_time}}.</p>"
            "<p>{{business.name}} &middot; {{business.phone}}</p>"
        ),
        "text_template": (
            "Hi {{customer_name}}, reminder: {{pet_name}} has a {{service_name}} appointment on "
            "{{appointment_date}} at {{appointment_time}}. {{business.name}} {{business.phone}}"
        ),
        "variables": [
            _var("customer_name"),
            _var("pet_name"),
            _var("service_name", required=False),
            _var("appointment_date"),
            _var("appointment_time"),
        ],
    },
    {
        "name": "Appointment Confirmed (SMS)",
        "type": "appointment_status_confirmed",
        "channel": "sms",
        "text_template": (
            "Puppy Day: {{pet_name}}'s appointment on {{appointment_date}} at "
            "{{appointment_time}} is confirmed. See you soon!"
        ),
        "variables": [_var("pet_name", max_length=20), _var("appointment_date"), _var("appointment_time")],
    },
    {
        "name": "Appointment Confirmed (Email)",
        "type": "appointment_status_confirmed",
        "channel": "email",
        "subject_template": "{{pet_name}}'s appointment is confirmed",
        "html_template": (
            "<p>Hi {{customer_name}},</p>"
            "<p>{{pet_name}}'s {{service_name}} appointment on {{appointment_date}} at "
            "{{appointment_time}} is confirmed.</p>"
            "<p>{{business.name}} &middot; {{business.address}}</p>"
        ),
        "text_template": (
            "Hi {{customer_name}}, {{pet_name}}'s {{service_name}} appointment on "
            "{{appointment_date}} at {{appointment_time}} is confirmed."
        ),
        "variables": [
            _var("customer_name"),
            _var("pet_name"),
            _var("service_name", required=False),
            _var("appointment_date"),
            _var("appointment_time"),
        ],
    },
    {
        "name": "Appointment Cancelled (SMS)",
        "type": "appointment_status_cancelled",
        "channel": "sms",
        "text_template": (
            "Puppy Day: {{pet_name}}'s appointment on {{appointment_date}} at "
            "{{appointment_time}} has been cancelled. Questions? (657) 252-2903"
        ),
        "variables": [_var("pet_name", max_length=20), _var("appointment_date"), _var("appointment_time")],
    },
    {
        "name": "Appointment Cancelled (Email)",
        "type": "appointment_status_cancelled",
        "channel": "email",
        "subject_template": "{{pet_name}}'s appointment has been cancelled",
        "html_template": (
            "<p>Hi {{customer_name}},</p>"
            "<p>{{pet_name}}'s appointment on {{appointment_date}} at {{appointment_time}} "
            "has been cancelled.</p><p>Reason: {{cancellation_reason}}</p>"
            "<p>Call us at {{business.phone}} to rebook.</p>"
        ),
        "text_template": (
            "Hi {{customer_name}}, {{pet_name}}'s appointment on {{appointment_date}} at "
            "{{appointment_time}} has been cancelled. Reason: {{cancellation_reason}}. "
            "Call {{business.phone}} to rebook."
        ),
        "variables": [
            _var("customer_name"),
            _var("pet_name"),
            _var("appointment_date"),
            _var("appointment_time"),
            _var("cancellation_reason", required=False),
        ],
    },
    {
        "name": "Checked In (SMS)",
        "type": "appointment_status_checked_in",
        "channel": "sms",
        "text_template": (
            "We've got {{pet_name}}! They're settling in nicely. "
            "We'll text when ready for pickup. - Puppy Day"
        ),
        "variables": [_var("pet_name", max_length=20)],
    },
    {
        "name": "Ready for Pickup (SMS)",
        "type": "appointment_status_completed",
        "channel": "sms",
        "text_template": (
            "{{pet_name}} is ready for pickup! Looking fresh & fabulous! "
            "Puppy Day, 14936 Leffingwell Rd. (657) 252-2903"
        ),
        "variables": [_var("pet_name", max_length=20)],
    },
    {
        "name": "Waitlist Slot Available (SMS)",
        "type": "waitlist_slot_available",
        "channel": "sms",
        "text_template": (
            "Puppy Day: Spot open {{available_date}} at {{available_time}}! "
            "Claim now ({{response_hours}}hr exp): {{claim_link}}"
        ),
        "variables": [
            _var("available_date", max_length=5),
            _var("available_time", max_length=8),
            _var("response_hours", max_length=3),
            _var("claim_link", max_length=23),
        ],
    },
    {
        "name": "Retention Reminder (SMS)",
        "type": "retention_reminder",
        "channel": "sms",
        "text_template": (
            "Time for {{pet_name}}'s grooming! {{weeks_since_last}} weeks since last visit. "
            "Book: {{booking_url}} - Puppy Day"
        ),
        "variables": [
            _var("pet_name", max_length=20),
            _var("weeks_since_last", max_length=3),
            _var("booking_url", max_length=23),
        ],
    },
    {
        "name": "Retention Reminder (Email)",
        "type": "retention_reminder",
        "channel": "email",
        "subject_template": "{{pet_name}} is due for a groom!",
        "html_template": (
            "<p>Hi {{customer_name}},</p>"
            "<p>It's been {{weeks_since_last}} weeks since {{pet_name}}'s last visit. "
            "Most {{breed_name}} pups look their best with regular grooming.</p>"
            '<p><a href="{{booking_url}}">Book now</a></p>'
            '<p><a href="{{unsubscribe_url}}">Unsubscribe</a></p>'
        ),
        "text_template": (
            "Hi {{customer_name}}, it's been {{weeks_since_last}} weeks since {{pet_name}}'s last "
            "visit. Book now: {{booking_url}} Unsubscribe: {{unsubscribe_url}}"
        ),
        "variables": [
            _var("customer_name"),
            _var("pet_name"),
            _var("weeks_since_last"),
            _var("breed_name", required=False),
            _var("booking_url"),
            _var("unsubscribe_url", required=False),
        ],
    },
]

# (email_enabled, sms_enabled) per notification type
DEFAULT_SETTINGS = {
    "booking_confirmation": (True, True),
    "appointment_reminder": (True, True),
    "appointment_status_confirmed": (True, True),
    "appointment_status_cancelled": (True, True),
    "appointment_status_checked_in": (False, True),
    "appointment_status_completed": (False, True),
    "waitlist_slot_available": (False, True),
    "retention_reminder": (True, True),
    "marketing_campaign": (True, True),
}


def seed_default_templates(db: Session) -> int:
    """Insert any missing built-in templates and settings rows; existing rows are left alone"""
    created = 0

    for definition in DEFAULT_TEMPLATES:
        exists = (
            db.query(NotificationTemplate)
            .filter(
                NotificationTemplate.type == definition["type"],
                NotificationTemplate.channel == definition["channel"],
            )
            .first()
        )
        if not exists:
            db.add(NotificationTemplate(**definition))
            created += 1

    for notification_type, (email_enabled, sms_enabled) in DEFAULT_SETTINGS.items():
        if not db.get(NotificationSetting, notification_type):
            db.add(
                NotificationSetting(
                    notification_type=notification_type,
                    email_enabled=email_enabled,
                    sms_enabled=sms_enabled,
                    max_retries=2,
                    retry_delays_seconds=[30, 300],
                )
            )

    db.commit()
    if created:
        logger.info(f"✅ Seeded {created} notification templates")
    return created
