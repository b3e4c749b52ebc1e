"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Pet, User


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def _with_relations(query):
        return query.options(
            joinedload(Appointment.customer),
            joinedload(Appointment.pet),
            joinedload(Appointment.service),
        )

    @staticmethod
    def get_by_id(db: Session, appointment_id: str) -> Optional[Appointment]:
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        return AppointmentRepository._with_relations(query).first()

    @staticmethod
    def search(
        db: Session,
        status: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        customer_id: Optional[str] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 25,
    ) -> tuple[list[Appointment], int]:
        """Filtered page of appointments plus the total match count"""
        query = db.query(Appointment)

        if status:
            query = query.filter(Appointment.status == status)
        if start:
            query = query.filter(Appointment.scheduled_at >= start)
        if end:
            query = query.filter(Appointment.scheduled_at < end)
        if customer_id:
            query = query.filter(Appointment.customer_id == customer_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = (
                query.join(User, Appointment.customer_id == User.id)
                .join(Pet, Appointment.pet_id == Pet.id)
                .filter(
                    or_(
                        User.first_name.ilike(pattern),
                        User.last_name.ilike(pattern),
                        User.email.ilike(pattern),
                        Pet.name.ilike(pattern),
                        Appointment.booking_reference.ilike(pattern),
                    )
                )
            )

        total = query.count()
        appointments = (
            AppointmentRepository._with_relations(query)
            .order_by(Appointment.scheduled_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return appointments, total

    @staticmethod
    def update(db: Session, appointment: Appointment, **updates) -> Appointment:
        for key, value in updates.items():
            setattr(appointment, key, value)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def increment_no_show_count(db: Session, customer: User) -> int:
        preferences = dict(customer.preferences or {})
        preferences["no_show_count"] = int(preferences.get("no_show_count") or 0) + 1
        # JSON columns only persist on reassignment
        customer.preferences = preferences
        db.commit()
        return preferences["no_show_count"]
