"""Booking service - catalog, availability and appointment submission"""

import logging
import secrets
import time
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...errors import ApiError, ApiErrorCode, get_booking_error_message
from ...models import Appointment, User
from ...shared.dates import (
    business_day_bounds_utc,
    business_to_utc,
    format_date_in_business_timezone,
    parse_date_string,
    to_business_time,
    utcnow,
)
from ...shared.formatting import format_time_display
from ..notifications.triggers import send_booking_confirmation
from ..settings.service import SettingsService
from .availability import get_available_slots, get_disabled_dates, get_next_available_date
from .pricing import calculate_price, get_service_price_range
from .repository import BookingRepository
from .schemas import AdminAppointmentCreate, AdminCustomerInput, AdminPetInput, AppointmentCreate, GuestInfo, PetForm
from .wizard import BookingWizard

logger = logging.getLogger(__name__)

REFERENCE_MAX_ATTEMPTS = 10
INITIAL_STATUS_BY_SOURCE = {"online": "pending", "admin": "confirmed", "walk_in": "confirmed", "waitlist": "confirmed"}


def _random_reference(year: int) -> str:
    return f"APT-{year}-{secrets.randbelow(1_000_000):06d}"


def generate_booking_reference(db: Session, year: Optional[int] = None) -> str:
    """APT-YYYY-NNNNNN, retried until unique; a timestamp suffix after 10 collisions"""
    year = year or utcnow().year
    for _ in range(REFERENCE_MAX_ATTEMPTS):
        reference = _random_reference(year)
        if not BookingRepository.reference_exists(db, reference):
            return reference

    logger.warning("⚠️ Booking reference collisions exhausted, using timestamp fallback")
    return f"APT-{year}-{str(int(time.time() * 1000))[-6:]}"


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.settings = SettingsService(db)

    # ------------------------------------------------------------------
    # catalog & availability
    # ------------------------------------------------------------------

    def list_services(self) -> list[dict]:
        return [
            {
                "id": service.id,
                "name": service.name,
                "description": service.description,
                "duration_minutes": service.duration_minutes,
                "prices": [{"size": p.size, "price": p.price} for p in service.prices],
                "price_range": get_service_price_range(service)["formatted"],
            }
            for service in self.repo.list_services(self.db)
        ]

    def list_addons(self) -> list[dict]:
        return [
            {"id": a.id, "name": a.name, "description": a.description, "price": a.price}
            for a in self.repo.list_addons(self.db)
        ]

    def get_service_or_404(self, service_id: str):
        service = self.repo.get_service(self.db, service_id)
        if not service or not service.is_active:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def get_availability(self, service_id: str, date_str: str, now: Optional[datetime] = None) -> dict:
        day = parse_date_string(date_str)
        if day is None:
            raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")

        service = self.get_service_or_404(service_id)
        start, end = business_day_bounds_utc(day)
        appointments = self.repo.get_appointments_between(self.db, start, end)
        slots = get_available_slots(
            day.isoformat(),
            service.duration_minutes,
            appointments,
            business_hours=self.settings.get_business_hours(),
            booking_settings=self.settings.get_booking_settings(),
            now=now,
        )
        return {"date": day.isoformat(), "service_id": service.id, "slots": slots}

    def get_disabled_dates(self, start: date, end: date) -> list[str]:
        return get_disabled_dates(
            start,
            end,
            business_hours=self.settings.get_business_hours(),
            booking_settings=self.settings.get_booking_settings(),
        )

    def get_next_available_date(self) -> str:
        return get_next_available_date(self.settings.get_business_hours())

    # ------------------------------------------------------------------
    # submission
    # ------------------------------------------------------------------

    def _resolve_guest(self, guest: GuestInfo) -> User:
        existing = self.repo.find_user_by_email(self.db, guest.email)
        if existing:
            return existing
        logger.info(f"👤 Creating guest customer {guest.email}")
        return self.repo.create_user(
            self.db,
            email=guest.email,
            first_name=guest.first_name,
            last_name=guest.last_name,
            phone=guest.phone,
        )

    def _create_pet(self, owner: User, form: PetForm):
        return self.repo.create_pet(
            self.db,
            owner.id,
            name=form.name,
            size=form.size,
            breed_id=form.breed_id,
            breed_custom=form.breed_custom,
            weight=form.weight,
            notes=form.notes,
        )

    @staticmethod
    def _slot_unavailable(scheduled_at: datetime, service_name: str) -> ApiError:
        local = to_business_time(scheduled_at)
        return ApiError(
            ApiErrorCode.SLOT_UNAVAILABLE,
            message=get_booking_error_message(
                ApiErrorCode.SLOT_UNAVAILABLE,
                date=format_date_in_business_timezone(scheduled_at),
                time=format_time_display(local.strftime("%H:%M")),
                service=service_name,
            ),
        )

    def _ensure_slot_free(self, scheduled_at: datetime, duration_minutes: int, service_name: str) -> None:
        if self.repo.find_overlapping(self.db, scheduled_at, duration_minutes):
            raise self._slot_unavailable(scheduled_at, service_name)

    def _ensure_bookable(self, scheduled_at: datetime, duration_minutes: int, service_name: str) -> None:
        """Customer bookings must land on an offered slot: open hours, booking window, no block"""
        local = to_business_time(scheduled_at)
        date_str = local.date().isoformat()
        slot = local.strftime("%H:%M")
        start, end = business_day_bounds_utc(local.date())
        slots = get_available_slots(
            date_str,
            duration_minutes,
            self.repo.get_appointments_between(self.db, start, end),
            business_hours=self.settings.get_business_hours(),
            booking_settings=self.settings.get_booking_settings(),
        )
        offered = {s["time"]: s["available"] for s in slots}
        if slot not in offered:
            raise ApiError(
                ApiErrorCode.SLOT_UNAVAILABLE,
                message="This time is outside our booking hours. Please choose another time.",
            )
        if not offered[slot]:
            raise self._slot_unavailable(scheduled_at, service_name)

    async def _finalize(
        self,
        customer: User,
        pet,
        service,
        addon_ids: list[str],
        scheduled_at: datetime,
        source: str,
        notes: Optional[str],
        groomer_id: Optional[str],
        send_notification: bool,
    ) -> Appointment:
        addons = self.repo.get_addons(self.db, addon_ids)
        if len(addons) != len(set(addon_ids)):
            raise HTTPException(status_code=400, detail="One or more add-ons are unavailable")

        pricing = calculate_price(service, pet.size, addons)
        duration = service.duration_minutes or 60
        self._ensure_slot_free(scheduled_at, duration, service.name)

        appointment = self.repo.create_appointment(
            self.db,
            addons,
            booking_reference=generate_booking_reference(self.db),
            customer_id=customer.id,
            pet_id=pet.id,
            service_id=service.id,
            groomer_id=groomer_id,
            scheduled_at=scheduled_at,
            duration_minutes=duration,
            status=INITIAL_STATUS_BY_SOURCE[source],
            total_price=pricing["total"],
            notes=notes,
            source=source,
        )
        logger.info(
            f"✅ Appointment {appointment.booking_reference} ({source}) booked for customer {customer.id}"
        )

        if send_notification:
            results = await send_booking_confirmation(self.db, appointment)
            failed = [r for r in results if not r["success"]]
            if failed:
                logger.warning(f"⚠️ Booking confirmation partly failed for {appointment.id}: {failed}")

        return appointment

    async def create_customer_appointment(
        self, data: AppointmentCreate, current_user: Optional[User] = None
    ) -> Appointment:
        """Online booking by a signed-in customer or a guest"""
        if current_user:
            customer = current_user
        elif data.guest_info:
            customer = self._resolve_guest(data.guest_info)
        else:
            raise ApiError(ApiErrorCode.MISSING_REQUIRED_FIELD, message="Customer information is required")

        if data.customer_id and data.customer_id != customer.id:
            raise ApiError(ApiErrorCode.FORBIDDEN)

        service = self.get_service_or_404(data.service_id)
        scheduled_at = to_naive_utc(data.scheduled_at)

        if data.pet_id:
            pet = self.repo.get_pet(self.db, data.pet_id)
            if not pet or pet.owner_id != customer.id:
                raise HTTPException(status_code=400, detail="Invalid pet ID")
        else:
            pet = self._create_pet(customer, data.new_pet)

        self._ensure_bookable(scheduled_at, service.duration_minutes or 60, service.name)

        return await self._finalize(
            customer,
            pet,
            service,
            data.addon_ids,
            scheduled_at,
            source="online",
            notes=data.notes,
            groomer_id=data.groomer_id,
            send_notification=True,
        )

    def _resolve_admin_customer(self, data: AdminCustomerInput) -> User:
        if not data.is_new:
            customer = self.repo.get_user(self.db, data.id)
            if not customer:
                raise HTTPException(status_code=404, detail="Customer not found")
            return customer

        if data.email:
            existing = self.repo.find_user_by_email(self.db, data.email)
            if existing:
                return existing
        # Walk-ins may not give an email; a placeholder keeps the column unique
        email = (data.email or f"walkin-{secrets.token_hex(6)}@thepuppyday.com").lower()
        return self.repo.create_user(
            self.db,
            email=email,
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
        )

    def _resolve_admin_pet(self, customer: User, data: AdminPetInput):
        if not data.is_new:
            pet = self.repo.get_pet(self.db, data.id)
            if not pet or pet.owner_id != customer.id:
                raise HTTPException(status_code=400, detail="Invalid pet ID")
            return pet
        return self.repo.create_pet(
            self.db,
            customer.id,
            name=data.name,
            size=data.size,
            breed_id=data.breed_id,
            breed_custom=data.breed_custom,
            weight=data.weight,
        )

    async def create_admin_appointment(self, data: AdminAppointmentCreate, staff: User) -> Appointment:
        """Staff booking; skips the online booking window but never double-books"""
        service = self.get_service_or_404(data.service_id)
        customer = self._resolve_admin_customer(data.customer)
        pet = self._resolve_admin_pet(customer, data.pet)
        scheduled_at = business_to_utc(data.appointment_date, data.appointment_time)

        logger.info(f"📥 {data.source} booking by staff {staff.id} for customer {customer.id}")
        return await self._finalize(
            customer,
            pet,
            service,
            data.addon_ids,
            scheduled_at,
            source=data.source,
            notes=data.notes,
            groomer_id=data.groomer_id,
            send_notification=data.send_notification,
        )

    async def submit_wizard(
        self, wizard: BookingWizard, current_user: Optional[User] = None
    ) -> Appointment:
        """Turn a completed wizard into an appointment for its mode"""
        if wizard.selected_service is None:
            raise ApiError(ApiErrorCode.MISSING_REQUIRED_FIELD, message="No service selected")
        if not wizard.pet_size:
            raise ApiError(ApiErrorCode.MISSING_REQUIRED_FIELD, message="Pet size not specified")
        if not wizard.selected_date or not wizard.selected_time_slot:
            raise ApiError(ApiErrorCode.MISSING_REQUIRED_FIELD, message="Missing required booking information")

        if wizard.mode == "customer":
            appointment = await self.create_customer_appointment(
                AppointmentCreate(
                    service_id=wizard.selected_service_id,
                    pet_id=wizard.selected_pet_id,
                    new_pet=PetForm(**wizard.new_pet_data) if wizard.new_pet_data else None,
                    scheduled_at=business_to_utc(wizard.selected_date, wizard.selected_time_slot),
                    duration_minutes=wizard.selected_service.duration_minutes or 60,
                    total_price=wizard.total_price,
                    addon_ids=wizard.selected_addon_ids,
                    guest_info=GuestInfo(**wizard.guest_info) if wizard.guest_info else None,
                ),
                current_user,
            )
        else:
            guest = wizard.guest_info or {}
            is_new_customer = wizard.selected_customer_id in (None, "new")
            if wizard.selected_pet is not None:
                pet_input = AdminPetInput(id=wizard.selected_pet_id)
            else:
                pet_input = AdminPetInput(is_new=True, **(wizard.new_pet_data or {}))
            appointment = await self.create_admin_appointment(
                AdminAppointmentCreate(
                    customer=AdminCustomerInput(
                        id=None if is_new_customer else wizard.selected_customer_id,
                        is_new=is_new_customer,
                        first_name=guest.get("first_name"),
                        last_name=guest.get("last_name"),
                        email=guest.get("email") or None,
                        phone=guest.get("phone"),
                    ),
                    pet=pet_input,
                    service_id=wizard.selected_service_id,
                    addon_ids=wizard.selected_addon_ids,
                    appointment_date=wizard.selected_date,
                    appointment_time=wizard.selected_time_slot,
                    send_notification=wizard.mode == "admin",
                    source=wizard.mode,
                ),
                current_user,
            )

        wizard.set_booking_result(appointment.id, appointment.booking_reference)
        return appointment
