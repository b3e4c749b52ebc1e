"""Waitlist router - customer join/cancel and admin slot-filling endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...config import RATE_LIMIT_WINDOW_SECONDS, WAITLIST_RATE_LIMIT
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...shared.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, paginated
from .schemas import BatchNotifyRequest, BookFromWaitlistRequest, FillSlotRequest, WaitlistEntryResponse, WaitlistJoinRequest
from .service import WaitlistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/waitlist", tags=["Waitlist"])
customer_router = APIRouter(prefix="/api/waitlist", tags=["Waitlist"])

waitlist_rate_limit = create_rate_limiter(WAITLIST_RATE_LIMIT, RATE_LIMIT_WINDOW_SECONDS, "waitlist")


def get_waitlist_service(db: Session = Depends(get_db)) -> WaitlistService:
    """Dependency injection for WaitlistService"""
    return WaitlistService(db)


def _entry(entry) -> dict:
    return WaitlistEntryResponse.model_validate(entry).model_dump()


# ============================================================================
# CUSTOMER
# ============================================================================


@customer_router.post("", status_code=201)
async def join_waitlist(
    data: WaitlistJoinRequest,
    _: None = Depends(waitlist_rate_limit),
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return {"data": _entry(service.join(data, current_user))}


@customer_router.get("")
async def list_my_entries(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    entries, total = service.list_entries(None, None, current_user.id, page, limit)
    return paginated([_entry(e) for e in entries], page, limit, total)


@customer_router.delete("/{entry_id}")
async def leave_waitlist(
    entry_id: str,
    current_user: User = Depends(get_current_user),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return {"data": _entry(service.cancel(entry_id, current_user))}


# ============================================================================
# ADMIN
# ============================================================================


@router.get("")
async def list_entries(
    status: Optional[str] = Query(None),
    service_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: User = Depends(require_admin),
    service: WaitlistService = Depends(get_waitlist_service),
):
    entries, total = service.list_entries(status, service_id, None, page, limit)
    return paginated([_entry(e) for e in entries], page, limit, total)


@router.get("/matches")
async def find_matches(
    date: str = Query(...),
    time: str = Query(...),
    service_id: str = Query(...),
    _: User = Depends(require_admin),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return {"data": [_entry(e) for e in service.find_matches(date, time, service_id)]}


@router.post("/fill-slot")
async def fill_slot(
    data: FillSlotRequest,
    staff: User = Depends(require_admin),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return await service.fill_slot(data, staff)


@router.post("/notify")
async def notify_batch(
    data: BatchNotifyRequest,
    _: User = Depends(require_admin),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return await service.notify_batch(data)


@router.post("/{entry_id}/book")
async def book_from_waitlist(
    entry_id: str,
    data: BookFromWaitlistRequest,
    _: User = Depends(require_admin),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return service.book_from_waitlist(entry_id, data)


@router.delete("/{entry_id}")
async def cancel_entry(
    entry_id: str,
    staff: User = Depends(require_admin),
    service: WaitlistService = Depends(get_waitlist_service),
):
    return {"data": _entry(service.cancel(entry_id, staff))}
