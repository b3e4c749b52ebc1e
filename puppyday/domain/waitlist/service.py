"""Waitlist service - joining, matching, slot offers and booking from the waitlist"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import STAFF_ROLES
from ...errors import ApiError, ApiErrorCode
from ...models import User, WaitlistEntry
from ...shared.dates import parse_date_string, utcnow
from ...shared.validators import is_valid_time
from ..booking.pricing import get_service_price_for_size
from ..booking.repository import BookingRepository
from ..booking.service import generate_booking_reference, to_naive_utc
from ..notifications.service import NotificationService
from ..notifications.triggers import trigger_waitlist_notification
from .matcher import find_matching_entries
from .repository import WaitlistRepository
from .schemas import BatchNotifyRequest, BookFromWaitlistRequest, FillSlotRequest, WaitlistJoinRequest

logger = logging.getLogger(__name__)


def find_waitlist_matches(
    db: Session, slot_date: date, slot_time: str, service_id: str, now: Optional[datetime] = None
) -> list[WaitlistEntry]:
    """Entries that could take a slot that just opened up"""
    candidates = WaitlistRepository.get_candidates(db, service_id, slot_date)
    return find_matching_entries(candidates, slot_date, slot_time, service_id, now=now)


class WaitlistService:
    """Service layer for waitlist business logic"""

    def __init__(self, db: Session, notification_service: Optional[NotificationService] = None):
        self.db = db
        self.repo = WaitlistRepository()
        self.booking_repo = BookingRepository()
        self.notification_service = notification_service

    def _notifier(self) -> NotificationService:
        if self.notification_service is None:
            self.notification_service = NotificationService(self.db)
        return self.notification_service

    def get_entry_or_404(self, entry_id: str) -> WaitlistEntry:
        entry = self.repo.get_entry(self.db, entry_id)
        if not entry:
            raise HTTPException(status_code=404, detail="Waitlist entry not found")
        return entry

    # ------------------------------------------------------------------
    # customer side
    # ------------------------------------------------------------------

    def join(self, data: WaitlistJoinRequest, customer: User) -> WaitlistEntry:
        pet = self.booking_repo.get_pet(self.db, data.pet_id)
        if not pet or pet.owner_id != customer.id:
            raise HTTPException(status_code=400, detail="Invalid pet ID")

        service = self.booking_repo.get_service(self.db, data.service_id)
        if not service or not service.is_active:
            raise HTTPException(status_code=404, detail="Service not found")

        requested_date = parse_date_string(data.requested_date)
        if self.repo.find_active_duplicate(self.db, pet.id, service.id, requested_date):
            raise ApiError(
                ApiErrorCode.ALREADY_EXISTS,
                message=f"{pet.name} is already on the waitlist for this service on that date.",
            )

        entry = self.repo.create_entry(
            self.db,
            customer_id=customer.id,
            pet_id=pet.id,
            service_id=service.id,
            requested_date=requested_date,
            requested_time=data.requested_time,
            notes=data.notes,
            status="active",
        )
        logger.info(f"✅ Customer {customer.id} joined waitlist for {requested_date} ({data.requested_time})")
        return entry

    def cancel(self, entry_id: str, user: User) -> WaitlistEntry:
        entry = self.get_entry_or_404(entry_id)
        if user.role not in STAFF_ROLES and entry.customer_id != user.id:
            # Customers never learn about other customers' entries
            raise HTTPException(status_code=404, detail="Waitlist entry not found")
        if entry.status == "booked":
            raise HTTPException(status_code=400, detail="Waitlist entry already booked")
        if entry.status == "cancelled":
            raise HTTPException(status_code=400, detail="Waitlist entry is cancelled")

        logger.info(f"🔕 Waitlist entry {entry.id} cancelled by {user.id}")
        return self.repo.update_entry(self.db, entry, status="cancelled")

    # ------------------------------------------------------------------
    # admin side
    # ------------------------------------------------------------------

    def list_entries(
        self,
        status: Optional[str],
        service_id: Optional[str],
        customer_id: Optional[str],
        page: int,
        limit: int,
    ) -> tuple[list[WaitlistEntry], int]:
        return self.repo.search(
            self.db,
            status=status,
            service_id=service_id,
            customer_id=customer_id,
            offset=(page - 1) * limit,
            limit=limit,
        )

    def find_matches(self, slot_date: str, slot_time: str, service_id: str) -> list[WaitlistEntry]:
        day = parse_date_string(slot_date)
        if day is None:
            raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")
        if not is_valid_time(slot_time):
            raise HTTPException(status_code=400, detail="Invalid time format. Use HH:MM")
        return find_waitlist_matches(self.db, day, slot_time, service_id)

    async def fill_slot(self, data: FillSlotRequest, staff: User) -> dict:
        """Create a time-boxed offer and text every selected entry"""
        slot_date = parse_date_string(data.appointment_date)
        expires_at = utcnow() + timedelta(hours=data.response_window_hours)

        offer = self.repo.create_offer(
            self.db,
            service_id=data.service_id,
            slot_date=slot_date,
            slot_time=data.appointment_time,
            discount_percentage=data.discount_percentage,
            response_window_hours=data.response_window_hours,
            status="pending",
            expires_at=expires_at,
            created_by=staff.id,
        )
        logger.info(f"🚀 Slot offer {offer.id} for {slot_date} {data.appointment_time} created by {staff.id}")

        sent = failed = 0
        for entry in self.repo.get_entries(self.db, data.waitlist_entry_ids):
            result = await trigger_waitlist_notification(
                self.db,
                entry,
                slot_date,
                data.appointment_time,
                offer_id=offer.id,
                response_hours=data.response_window_hours,
                service=self._notifier(),
            )
            # An entry we could not text counts as a failed offer
            if result.get("sms_sent"):
                sent += 1
            else:
                if result.get("skipped"):
                    logger.warning(f"⚠️ Offer skipped for {entry.customer_id}: {result.get('skip_reason')}")
                failed += 1

        return {
            "success": True,
            "offer_id": offer.id,
            "notifications_sent": sent,
            "notifications_failed": failed,
            "expires_at": expires_at,
        }

    async def notify_batch(self, data: BatchNotifyRequest) -> dict:
        """Offer a slot to the longest-waiting active entries"""
        slot_date = parse_date_string(data.slot_date)
        entries = self.repo.get_oldest_active(self.db, data.limit, data.service_id)

        summary = {"total": len(entries), "sent": 0, "failed": 0, "skipped": 0, "results": []}
        for entry in entries:
            result = await trigger_waitlist_notification(
                self.db,
                entry,
                slot_date,
                data.slot_time,
                response_hours=data.response_window_hours,
                service=self._notifier(),
            )
            if result.get("skipped"):
                summary["skipped"] += 1
            elif result.get("sms_sent"):
                summary["sent"] += 1
            else:
                summary["failed"] += 1
            summary["results"].append({"entry_id": entry.id, **result})

        logger.info(
            f"📊 Waitlist batch notify: {summary['sent']} sent, "
            f"{summary['failed']} failed, {summary['skipped']} skipped"
        )
        return summary

    def expire_offers(self, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        expired_entries = self.repo.expire_notified_entries(self.db, now)
        expired_offers = self.repo.expire_pending_offers(self.db, now)
        if expired_entries or expired_offers:
            logger.info(f"⏭️ Expired {expired_entries} waitlist offers and {expired_offers} slot offers")
        return {"expired_entries": expired_entries, "expired_offers": expired_offers}

    def book_from_waitlist(self, entry_id: str, data: BookFromWaitlistRequest) -> dict:
        entry = self.get_entry_or_404(entry_id)
        if entry.status == "booked":
            raise HTTPException(status_code=400, detail="Waitlist entry already booked")
        if entry.status == "cancelled":
            raise HTTPException(status_code=400, detail="Waitlist entry is cancelled")

        service = self.booking_repo.get_service(self.db, entry.service_id)
        pet_size = entry.pet.size if entry.pet and entry.pet.size else "medium"
        base_price = get_service_price_for_size(service, pet_size)
        if not any(p.size == pet_size for p in (service.prices if service else [])):
            raise HTTPException(status_code=400, detail="Service pricing not found for pet size")

        discount = round(base_price * data.discount_percentage / 100, 2)
        total_price = round(base_price - discount, 2)
        duration = (service.duration_minutes if service else None) or 60
        scheduled_at = to_naive_utc(data.scheduled_at)

        if self.booking_repo.find_overlapping(self.db, scheduled_at, duration):
            raise ApiError(
                ApiErrorCode.SLOT_UNAVAILABLE,
                message="Time slot conflicts with existing appointment",
            )

        appointment = self.booking_repo.create_appointment(
            self.db,
            [],
            booking_reference=generate_booking_reference(self.db),
            customer_id=entry.customer_id,
            pet_id=entry.pet_id,
            service_id=entry.service_id,
            scheduled_at=scheduled_at,
            duration_minutes=duration,
            status="confirmed",
            total_price=total_price,
            notes=data.notes,
            source="waitlist",
        )

        self.repo.update_entry(self.db, entry, status="booked")
        if entry.offer_id:
            offer = self.repo.get_offer(self.db, entry.offer_id)
            if offer and offer.status == "pending":
                offer.status = "accepted"
                self.db.commit()

        logger.info(f"✅ Waitlist entry {entry.id} booked as {appointment.booking_reference}")
        return {
            "success": True,
            "appointment_id": appointment.id,
            "reference": appointment.booking_reference,
            "scheduled_at": appointment.scheduled_at,
            "total_price": total_price,
            "discount_applied": discount,
        }
