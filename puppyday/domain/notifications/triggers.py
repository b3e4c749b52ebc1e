"""
Notification triggers.

Glue between domain events (bookings, status changes, waitlist offers) or
scheduled jobs and the send pipeline. Trigger failures are logged and
reported in the return value; they never raise into the caller's
transaction.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...config import APP_URL
from ...models import Appointment, Pet, User, WaitlistEntry
from ...shared.dates import format_date_in_business_timezone, to_business_time, utcnow
from ...shared.formatting import format_currency, format_time_display
from ...shared.validators import validate_us_phone
from .preferences import merge_with_defaults
from .repository import NotificationRepository
from .schemas import NotificationMessage
from .service import NotificationService
from .unsubscribe import generate_unsubscribe_url

logger = logging.getLogger(__name__)

REMINDER_WINDOW_START_HOURS = 23
REMINDER_WINDOW_END_HOURS = 25
RETENTION_DEDUPE_DAYS = 7
DEFAULT_GROOMING_FREQUENCY_WEEKS = 8

# Status -> (email type, sms type); None means no message on that channel
STATUS_NOTIFICATION_TYPES = {
    "confirmed": ("appointment_status_confirmed", "appointment_status_confirmed"),
    "cancelled": ("appointment_status_cancelled", "appointment_status_cancelled"),
    "checked_in": (None, "appointment_status_checked_in"),
    "completed": (None, "appointment_status_completed"),
}


def sms_recipient(phone: Optional[str]) -> Optional[str]:
    """E.164 form of a stored phone number, None when it cannot be texted"""
    if not phone:
        return None
    try:
        return validate_us_phone(phone)
    except ValueError:
        logger.warning(f"⚠️ Cannot text non-US phone number {phone}")
        return None


def appointment_template_data(appointment: Appointment, date_format: str = "long") -> dict:
    local = to_business_time(appointment.scheduled_at)
    customer = appointment.customer
    return {
        "customer_name": customer.first_name if customer else "",
        "pet_name": appointment.pet.name if appointment.pet else "",
        "service_name": appointment.service.name if appointment.service else "",
        "appointment_date": format_date_in_business_timezone(appointment.scheduled_at, date_format),
        "appointment_time": format_time_display(local.strftime("%H:%M")),
        "booking_reference": appointment.booking_reference or "",
        "total_price": format_currency(appointment.total_price),
        "cancellation_reason": appointment.cancellation_reason or "",
    }


async def _send_safely(service: NotificationService, message: NotificationMessage) -> dict:
    try:
        return await service.send(message)
    except Exception as e:
        logger.error(f"❌ {message.type} to {message.recipient} crashed: {e}")
        return {"success": False, "error": str(e), "message_id": None, "log_id": None}


async def send_booking_confirmation(
    db: Session, appointment: Appointment, service: Optional[NotificationService] = None
) -> list[dict]:
    service = service or NotificationService(db)
    customer = appointment.customer
    results = []

    if customer and customer.email:
        results.append(
            await _send_safely(
                service,
                NotificationMessage(
                    type="booking_confirmation",
                    channel="email",
                    recipient=customer.email,
                    user_id=customer.id,
                    template_data=appointment_template_data(appointment),
                ),
            )
        )

    phone = sms_recipient(customer.phone if customer else None)
    if phone:
        results.append(
            await _send_safely(
                service,
                NotificationMessage(
                    type="booking_confirmation",
                    channel="sms",
                    recipient=phone,
                    user_id=customer.id,
                    template_data=appointment_template_data(appointment, "short"),
                ),
            )
        )

    return results


async def send_status_change_notification(
    db: Session,
    appointment: Appointment,
    new_status: str,
    send_email: bool = True,
    send_sms: bool = False,
    service: Optional[NotificationService] = None,
) -> list[dict]:
    """
    checked_in and completed always go out by SMS; confirmed and cancelled
    go out by email and, when requested, SMS.
    """
    types = STATUS_NOTIFICATION_TYPES.get(new_status)
    if not types:
        return []

    email_type, sms_type = types
    if email_type is None:
        send_email, send_sms = False, True

    service = service or NotificationService(db)
    customer = appointment.customer
    results = []

    if send_email and email_type and customer and customer.email:
        results.append(
            await _send_safely(
                service,
                NotificationMessage(
                    type=email_type,
                    channel="email",
                    recipient=customer.email,
                    user_id=customer.id,
                    template_data=appointment_template_data(appointment),
                ),
            )
        )

    phone = sms_recipient(customer.phone if customer else None)
    if send_sms and sms_type and phone:
        results.append(
            await _send_safely(
                service,
                NotificationMessage(
                    type=sms_type,
                    channel="sms",
                    recipient=phone,
                    user_id=customer.id,
                    template_data=appointment_template_data(appointment, "short"),
                ),
            )
        )
    elif send_sms and sms_type:
        logger.info(f"📱 No textable phone for appointment {appointment.id}, skipping {sms_type}")

    return results


async def send_appointment_reminders(
    db: Session, now: Optional[datetime] = None, service: Optional[NotificationService] = None
) -> dict:
    """SMS reminders for appointments starting 23-25 hours from now"""
    now = now or utcnow()
    service = service or NotificationService(db)
    repo = NotificationRepository()
    stats = {"processed": 0, "sent": 0, "failed": 0, "skipped": 0}

    appointments = (
        db.query(Appointment)
        .options(joinedload(Appointment.customer), joinedload(Appointment.pet), joinedload(Appointment.service))
        .filter(
            Appointment.scheduled_at >= now + timedelta(hours=REMINDER_WINDOW_START_HOURS),
            Appointment.scheduled_at <= now + timedelta(hours=REMINDER_WINDOW_END_HOURS),
            Appointment.status.in_(["pending", "confirmed"]),
        )
        .all()
    )
    logger.info(f"⏰ Found {len(appointments)} appointments needing reminders")

    for appointment in appointments:
        stats["processed"] += 1
        customer = appointment.customer
        phone = sms_recipient(customer.phone if customer else None)
        if not phone:
            stats["skipped"] += 1
            continue

        if repo.has_recent_log(
            db, "appointment_reminder", customer.id, now - timedelta(hours=24), channel="sms", status="sent"
        ):
            logger.info(f"⏭️ Reminder already sent to {customer.id} in the last 24h")
            stats["skipped"] += 1
            continue

        local = to_business_time(appointment.scheduled_at)
        template_data = appointment_template_data(appointment)
        template_data["appointment_date"] = f"{local.strftime('%A, %B')} {local.day}"

        result = await _send_safely(
            service,
            NotificationMessage(
                type="appointment_reminder",
                channel="sms",
                recipient=phone,
                user_id=customer.id,
                template_data=template_data,
            ),
        )
        stats["sent" if result["success"] else "failed"] += 1

    logger.info(f"📊 Reminders: {stats}")
    return stats


async def send_retention_reminders(
    db: Session, now: Optional[datetime] = None, service: Optional[NotificationService] = None
) -> dict:
    """Nudge owners whose pets are overdue for grooming based on breed frequency"""
    now = now or utcnow()
    service = service or NotificationService(db)
    repo = NotificationRepository()
    stats = {"processed": 0, "sent": 0, "failed": 0, "skipped": 0}
    booking_url = f"{APP_URL}/booking"

    pets = (
        db.query(Pet)
        .options(joinedload(Pet.owner), joinedload(Pet.breed))
        .filter(Pet.is_active.is_(True))
        .all()
    )

    for pet in pets:
        stats["processed"] += 1
        owner = pet.owner
        if not owner:
            stats["skipped"] += 1
            continue

        if not merge_with_defaults(owner.preferences)["marketing_enabled"]:
            stats["skipped"] += 1
            continue

        last_appointment = (
            db.query(Appointment)
            .filter(Appointment.pet_id == pet.id, Appointment.status == "completed")
            .order_by(Appointment.scheduled_at.desc())
            .first()
        )
        if not last_appointment:
            stats["skipped"] += 1
            continue

        frequency_weeks = (pet.breed.grooming_frequency_weeks if pet.breed else None) or DEFAULT_GROOMING_FREQUENCY_WEEKS
        elapsed = now - last_appointment.scheduled_at
        if elapsed <= timedelta(weeks=frequency_weeks):
            stats["skipped"] += 1
            continue

        if repo.has_recent_log(db, "retention_reminder", owner.id, now - timedelta(days=RETENTION_DEDUPE_DAYS)):
            stats["skipped"] += 1
            continue

        template_data = {
            "customer_name": owner.first_name,
            "pet_name": pet.name,
            "weeks_since_last": str(elapsed.days // 7),
            "breed_name": pet.breed.name if pet.breed else "your dog",
            "booking_url": booking_url,
        }

        delivered = False
        if owner.email:
            email_data = {
                **template_data,
                "unsubscribe_url": generate_unsubscribe_url(owner.id, "retention_reminder", "email"),
            }
            result = await _send_safely(
                service,
                NotificationMessage(
                    type="retention_reminder",
                    channel="email",
                    recipient=owner.email,
                    user_id=owner.id,
                    template_data=email_data,
                ),
            )
            delivered = delivered or result["success"]

        phone = sms_recipient(owner.phone)
        if phone:
            result = await _send_safely(
                service,
                NotificationMessage(
                    type="retention_reminder",
                    channel="sms",
                    recipient=phone,
                    user_id=owner.id,
                    template_data=template_data,
                ),
            )
            delivered = delivered or result["success"]

        stats["sent" if delivered else "failed"] += 1

    logger.info(f"📊 Retention reminders: {stats}")
    return stats


async def trigger_waitlist_notification(
    db: Session,
    entry: WaitlistEntry,
    slot_date: date,
    slot_time: str,
    offer_id: Optional[str] = None,
    response_hours: int = 2,
    service: Optional[NotificationService] = None,
) -> dict:
    """Text a waitlisted customer that a slot opened up and mark the entry notified"""
    customer: Optional[User] = entry.customer
    phone = sms_recipient(customer.phone if customer else None)
    if not phone:
        logger.info(f"⏭️ Waitlist entry {entry.id} has no phone number")
        return {"success": True, "sms_sent": False, "skipped": True, "skip_reason": "No phone number available"}

    service = service or NotificationService(db)
    result = await _send_safely(
        service,
        NotificationMessage(
            type="waitlist_slot_available",
            channel="sms",
            recipient=phone,
            user_id=customer.id,
            template_data={
                "available_date": format_date_in_business_timezone(slot_date, "month_day"),
                "available_time": format_time_display(slot_time),
                "response_hours": str(response_hours),
                "claim_link": f"{APP_URL}/booking/claim/{entry.id}",
            },
        ),
    )

    if not result["success"]:
        logger.error(f"❌ Waitlist SMS failed for entry {entry.id}: {result['error']}")
        return {"success": False, "sms_sent": False, "error": result["error"]}

    now = utcnow()
    entry.status = "notified"
    entry.notified_at = now
    entry.offer_expires_at = now + timedelta(hours=response_hours)
    entry.offer_id = offer_id
    entry.notification_attempts = (entry.notification_attempts or 0) + 1
    db.commit()

    logger.info(f"✅ Waitlist entry {entry.id} notified of {slot_date} {slot_time}")
    return {"success": True, "sms_sent": True, "message_id": result["message_id"]}
