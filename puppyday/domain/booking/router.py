"""Booking router - public catalog, availability and appointment submission"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_optional_user, require_admin
from ...config import BOOKING_RATE_LIMIT, RATE_LIMIT_WINDOW_SECONDS
from ...database import get_db
from ...models import Appointment, User
from ...rate_limiter import create_rate_limiter
from ...shared.dates import validate_and_parse_date, validate_date_range
from .schemas import AdminAppointmentCreate, AppointmentCreate
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Booking"])
admin_router = APIRouter(prefix="/api/admin/appointments", tags=["Booking"])

booking_rate_limit = create_rate_limiter(BOOKING_RATE_LIMIT, RATE_LIMIT_WINDOW_SECONDS, "booking")


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def booking_response(appointment: Appointment) -> dict:
    return {
        "appointment_id": appointment.id,
        "reference": appointment.booking_reference,
        "status": appointment.status,
        "scheduled_at": appointment.scheduled_at,
        "total_price": appointment.total_price,
    }


# ============================================================================
# CATALOG
# ============================================================================


@router.get("/services")
async def list_services(service: BookingService = Depends(get_booking_service)):
    return {"data": service.list_services()}


@router.get("/addons")
async def list_addons(service: BookingService = Depends(get_booking_service)):
    return {"data": service.list_addons()}


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.get("/availability")
async def get_availability(
    service_id: str = Query(...),
    date: str = Query(..., description="YYYY-MM-DD"),
    service: BookingService = Depends(get_booking_service),
):
    return {"data": service.get_availability(service_id, date)}


@router.get("/availability/disabled-dates")
async def get_disabled_dates(
    start_date: str = Query(...),
    end_date: str = Query(...),
    service: BookingService = Depends(get_booking_service),
):
    try:
        start = validate_and_parse_date(start_date, "start_date")
        end = validate_and_parse_date(end_date, "end_date")
        validate_date_range(start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"data": service.get_disabled_dates(start, end)}


@router.get("/availability/next-available")
async def get_next_available(service: BookingService = Depends(get_booking_service)):
    return {"data": {"date": service.get_next_available_date()}}


# ============================================================================
# APPOINTMENTS
# ============================================================================


@router.post("/appointments", status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    _: None = Depends(booking_rate_limit),
    current_user: Optional[User] = Depends(get_optional_user),
    service: BookingService = Depends(get_booking_service),
):
    appointment = await service.create_customer_appointment(data, current_user)
    return {"data": booking_response(appointment)}


@admin_router.post("", status_code=201)
async def create_admin_appointment(
    data: AdminAppointmentCreate,
    staff: User = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    appointment = await service.create_admin_appointment(data, staff)
    return {"data": booking_response(appointment)}
