"""Appointment service - listing, status workflow and customer cancellation"""

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...errors import ApiError, ApiErrorCode
from ...models import Appointment, User
from ...shared.dates import business_day_bounds_utc, to_business_time, utcnow
from ..notifications.triggers import send_status_change_notification
from ..settings.service import SettingsService
from ..waitlist.schemas import WaitlistEntryResponse
from ..waitlist.service import find_waitlist_matches
from .repository import AppointmentRepository
from .schemas import AppointmentResponse, StatusUpdateRequest
from .status import CANCELLED, NO_SHOW, get_status_label, is_active_status, is_transition_allowed

logger = logging.getLogger(__name__)

MAX_CANCELLATION_REASON_LENGTH = 500
SLOT_FREEING_STATUSES = (CANCELLED, NO_SHOW)


def serialize_appointment(appointment: Appointment) -> dict:
    data = AppointmentResponse.model_validate(appointment).model_dump()
    customer = appointment.customer
    data["customer_name"] = customer.full_name if customer else None
    data["pet_name"] = appointment.pet.name if appointment.pet else None
    data["service_name"] = appointment.service.name if appointment.service else None
    data["status_label"] = get_status_label(appointment.status)
    return data


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def list_appointments(
        self,
        status: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        customer_id: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 25,
    ) -> tuple[list[Appointment], int]:
        return self.repo.search(
            self.db,
            status=status,
            start=business_day_bounds_utc(start)[0] if start else None,
            end=business_day_bounds_utc(end)[1] if end else None,
            customer_id=customer_id,
            search=search,
            offset=(page - 1) * limit,
            limit=limit,
        )

    def _waitlist_matches(self, appointment: Appointment) -> list[dict]:
        local = to_business_time(appointment.scheduled_at)
        matches = find_waitlist_matches(
            self.db, local.date(), local.strftime("%H:%M"), appointment.service_id
        )
        if matches:
            logger.info(f"🔄 {len(matches)} waitlist entries match freed slot of appointment {appointment.id}")
        return [WaitlistEntryResponse.model_validate(entry).model_dump() for entry in matches]

    async def update_status(self, appointment_id: str, data: StatusUpdateRequest, staff: User) -> dict:
        """
        Move an appointment along the status workflow.

        Notification failures are logged and never undo the status change.
        """
        new_status = data.status
        if not new_status:
            raise HTTPException(status_code=400, detail="Status is required")

        if new_status == CANCELLED:
            if not data.cancellation_reason:
                raise HTTPException(status_code=400, detail="Cancellation reason is required when cancelling")
            if len(data.cancellation_reason) > MAX_CANCELLATION_REASON_LENGTH:
                raise HTTPException(
                    status_code=400, detail="Cancellation reason must be 500 characters or less"
                )

        appointment = self.get_appointment(appointment_id)
        current_status = appointment.status
        if not is_transition_allowed(current_status, new_status):
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status transition from {current_status} to {new_status}",
            )

        updates = {"status": new_status, "updated_at": utcnow()}
        if new_status == CANCELLED:
            updates["cancellation_reason"] = data.cancellation_reason
        appointment = self.repo.update(self.db, appointment, **updates)
        logger.info(f"🔄 Appointment {appointment.id}: {current_status} -> {new_status} by {staff.id}")

        if new_status == NO_SHOW and appointment.customer:
            count = self.repo.increment_no_show_count(self.db, appointment.customer)
            logger.info(f"⚠️ Customer {appointment.customer_id} no-show count is now {count}")

        if data.send_notification:
            try:
                results = await send_status_change_notification(
                    self.db,
                    appointment,
                    new_status,
                    send_email=data.send_email,
                    send_sms=data.send_sms,
                )
                for result in results:
                    if not result["success"]:
                        logger.error(f"❌ Status notification failed for {appointment.id}: {result['error']}")
            except Exception as e:
                logger.error(f"❌ Status notification crashed for {appointment.id}: {e}")

        response = {"data": serialize_appointment(appointment), "message": "Status updated successfully"}
        if new_status in SLOT_FREEING_STATUSES:
            response["waitlist_matches"] = self._waitlist_matches(appointment)
        return response

    async def cancel_for_customer(
        self, appointment_id: str, customer: User, reason: Optional[str] = None
    ) -> Appointment:
        """Customers may cancel their own active appointments outside the cutoff window"""
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment or appointment.customer_id != customer.id:
            raise HTTPException(status_code=404, detail="Appointment not found")

        if not is_active_status(appointment.status) or not is_transition_allowed(appointment.status, CANCELLED):
            raise HTTPException(status_code=400, detail="This appointment can no longer be cancelled")

        cutoff_hours = SettingsService(self.db).get_booking_settings()["cancellation_cutoff_hours"]
        if appointment.scheduled_at - utcnow() < timedelta(hours=cutoff_hours):
            raise ApiError(ApiErrorCode.CANCELLATION_WINDOW_EXPIRED)

        appointment = self.repo.update(
            self.db,
            appointment,
            status=CANCELLED,
            cancellation_reason=(reason or "Cancelled by customer")[:MAX_CANCELLATION_REASON_LENGTH],
            updated_at=utcnow(),
        )
        logger.info(f"🔕 Customer {customer.id} cancelled appointment {appointment.id}")

        try:
            await send_status_change_notification(self.db, appointment, CANCELLED)
        except Exception as e:
            logger.error(f"❌ Cancellation notification crashed for {appointment.id}: {e}")

        # Staff see the matches on the schedule; the customer response stays unchanged
        self._waitlist_matches(appointment)
        return appointment

    def list_customer_appointments(self, customer: User, page: int, limit: int) -> tuple[list[Appointment], int]:
        return self.repo.search(
            self.db, customer_id=customer.id, offset=(page - 1) * limit, limit=limit
        )
