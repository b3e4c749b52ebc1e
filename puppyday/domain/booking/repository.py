"""Booking repository - Database operations for catalog, customers and appointments"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Addon, Appointment, AppointmentAddon, Pet, Service, User

INACTIVE_STATUSES = ("cancelled", "no_show")
# Longest appointment we expect; bounds the overlap query window
MAX_APPOINTMENT_MINUTES = 8 * 60


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def list_services(db: Session) -> list[Service]:
        return (
            db.query(Service)
            .options(joinedload(Service.prices))
            .filter(Service.is_active.is_(True))
            .order_by(Service.name)
            .all()
        )

    @staticmethod
    def get_service(db: Session, service_id: str) -> Optional[Service]:
        return db.query(Service).options(joinedload(Service.prices)).filter(Service.id == service_id).first()

    @staticmethod
    def list_addons(db: Session) -> list[Addon]:
        return db.query(Addon).filter(Addon.is_active.is_(True)).order_by(Addon.name).all()

    @staticmethod
    def get_addons(db: Session, addon_ids: list[str]) -> list[Addon]:
        if not addon_ids:
            return []
        return db.query(Addon).filter(Addon.id.in_(addon_ids), Addon.is_active.is_(True)).all()

    @staticmethod
    def find_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.lower()).first()

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        user = User(role="customer", preferences={}, **user_data)
        db.add(user)
        db.flush()
        return user

    @staticmethod
    def get_pet(db: Session, pet_id: str) -> Optional[Pet]:
        return db.query(Pet).filter(Pet.id == pet_id).first()

    @staticmethod
    def create_pet(db: Session, owner_id: str, **pet_data) -> Pet:
        pet = Pet(owner_id=owner_id, **pet_data)
        db.add(pet)
        db.flush()
        return pet

    @staticmethod
    def get_appointments_between(db: Session, start: datetime, end: datetime) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(
                Appointment.scheduled_at >= start,
                Appointment.scheduled_at < end,
                Appointment.status.notin_(INACTIVE_STATUSES),
            )
            .all()
        )

    @staticmethod
    def find_overlapping(
        db: Session, start: datetime, duration_minutes: int, exclude_id: Optional[str] = None
    ) -> Optional[Appointment]:
        """First live appointment overlapping [start, start + duration)"""
        end = start + timedelta(minutes=duration_minutes)
        query = db.query(Appointment).filter(
            Appointment.scheduled_at < end,
            Appointment.scheduled_at > start - timedelta(minutes=MAX_APPOINTMENT_MINUTES),
            Appointment.status.notin_(INACTIVE_STATUSES),
        )
        if exclude_id:
            query = query.filter(Appointment.id != exclude_id)

        for appointment in query.all():
            appointment_end = appointment.scheduled_at + timedelta(minutes=appointment.duration_minutes or 0)
            if appointment_end > start:
                return appointment
        return None

    @staticmethod
    def reference_exists(db: Session, reference: str) -> bool:
        return db.query(Appointment.id).filter(Appointment.booking_reference == reference).first() is not None

    @staticmethod
    def create_appointment(db: Session, addons: list[Addon], **appointment_data) -> Appointment:
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        for addon in addons:
            db.add(AppointmentAddon(appointment_id=appointment.id, addon_id=addon.id, price=addon.price))
        db.commit()
        db.refresh(appointment)
        return appointment
