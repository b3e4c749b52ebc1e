"""Appointment router - admin schedule/status endpoints and customer self-service"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User
from ...shared.dates import validate_and_parse_date, validate_date_range
from ...shared.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, paginated
from .schemas import CustomerCancelRequest, StatusTransitionResponse, StatusUpdateRequest
from .service import AppointmentService, serialize_appointment
from .status import CANCELLATION_REASONS, get_allowed_transitions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/appointments", tags=["Appointments"])
customer_router = APIRouter(prefix="/api/customer/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


# ============================================================================
# ADMIN
# ============================================================================


@router.get("")
async def list_appointments(
    status: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    customer_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    start = end = None
    try:
        if start_date:
            start = validate_and_parse_date(start_date, "start_date")
        if end_date:
            end = validate_and_parse_date(end_date, "end_date")
        if start and end:
            validate_date_range(start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    appointments, total = service.list_appointments(
        status=status,
        start=start,
        end=end,
        customer_id=customer_id,
        search=search,
        page=page,
        limit=limit,
    )
    return paginated([serialize_appointment(a) for a in appointments], page, limit, total)


@router.get("/cancellation-reasons")
async def list_cancellation_reasons(_: User = Depends(require_admin)):
    return {"data": CANCELLATION_REASONS}


@router.get("/{appointment_id}")
async def get_appointment(
    appointment_id: str,
    _: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return {"data": serialize_appointment(service.get_appointment(appointment_id))}


@router.get("/{appointment_id}/transitions")
async def get_transitions(
    appointment_id: str,
    _: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.get_appointment(appointment_id)
    return {
        "data": [
            StatusTransitionResponse(
                to_status=t.to_status, label=t.label, requires_confirmation=t.requires_confirmation
            ).model_dump()
            for t in get_allowed_transitions(appointment.status)
        ]
    }


@router.post("/{appointment_id}/status")
async def update_status(
    appointment_id: str,
    data: StatusUpdateRequest,
    staff: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.update_status(appointment_id, data, staff)


# ============================================================================
# CUSTOMER
# ============================================================================


@customer_router.get("")
async def list_my_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments, total = service.list_customer_appointments(current_user, page, limit)
    return paginated([serialize_appointment(a) for a in appointments], page, limit, total)


@customer_router.post("/{appointment_id}/cancel")
async def cancel_my_appointment(
    appointment_id: str,
    data: Optional[CustomerCancelRequest] = None,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.cancel_for_customer(
        appointment_id, current_user, data.reason if data else None
    )
    return {"data": serialize_appointment(appointment), "message": "Appointment cancelled"}
