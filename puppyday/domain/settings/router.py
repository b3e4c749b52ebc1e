"""Settings router - admin endpoints for booking policy and business hours"""

import logging

from fastapi import APIRouter, Depends
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...errors import ApiError, ApiErrorCode, format_validation_errors
from ...models import User
from .schemas import BlockedDate, BookingSettingsUpdate, BusinessHours
from .service import SettingsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/settings", tags=["Settings"])


def get_settings_service(db: Session = Depends(get_db)) -> SettingsService:
    """Dependency injection for SettingsService"""
    return SettingsService(db)


@router.get("/booking")
async def get_booking_settings(
    _: User = Depends(require_admin), service: SettingsService = Depends(get_settings_service)
):
    return {"data": service.get_booking_settings()}


@router.put("/booking")
async def update_booking_settings(
    data: BookingSettingsUpdate,
    _: User = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service),
):
    try:
        return {"data": service.update_booking_settings(data)}
    except ValidationError as e:
        details = format_validation_errors(e.errors())
        raise ApiError(ApiErrorCode.VALIDATION_ERROR, message=details[0]["message"], details=details)


@router.post("/booking/blocked-dates")
async def add_blocked_date(
    data: BlockedDate,
    _: User = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service),
):
    return {"data": service.add_blocked_date(data.model_dump())}


@router.delete("/booking/blocked-dates/{date}")
async def remove_blocked_date(
    date: str,
    _: User = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service),
):
    return {"data": service.remove_blocked_date(date)}


@router.get("/business-hours")
async def get_business_hours(
    _: User = Depends(require_admin), service: SettingsService = Depends(get_settings_service)
):
    return {"data": service.get_business_hours()}


@router.put("/business-hours")
async def update_business_hours(
    data: BusinessHours,
    _: User = Depends(require_admin),
    service: SettingsService = Depends(get_settings_service),
):
    return {"data": service.update_business_hours(data)}
