"""Notification router - admin log/template/settings/job endpoints, customer preferences, unsubscribe"""

import logging
import time
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User
from ...shared.dates import business_day_bounds_utc, utcnow, validate_and_parse_date, validate_date_range
from ...shared.pagination import MAX_PAGE_SIZE, paginated
from .preferences import get_notification_preferences, update_notification_preferences
from .repository import NotificationRepository
from .schemas import (
    BulkResendRequest,
    NotificationLogResponse,
    NotificationPreferencesUpdate,
    NotificationSettingResponse,
    NotificationSettingUpdate,
    NotificationTemplateResponse,
    NotificationTemplateUpdate,
    TemplateHistoryResponse,
    TemplatePreviewRequest,
    TemplateRollbackRequest,
    TemplateTestRequest,
)
from .service import NotificationService
from .template_engine import render_with_metadata, validate_template
from .template_service import TemplateService
from .triggers import send_appointment_reminders, send_retention_reminders
from .unsubscribe import process_unsubscribe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/notifications", tags=["Notifications"])
customer_router = APIRouter(prefix="/api/customer/notifications", tags=["Notifications"])
public_router = APIRouter(prefix="/api", tags=["Notifications"])

repo = NotificationRepository()

BULK_RESEND_LIMIT = 100


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    """Dependency injection for NotificationService"""
    return NotificationService(db)


def get_template_service(db: Session = Depends(get_db)) -> TemplateService:
    return TemplateService(db)


# ============================================================================
# LOGS
# ============================================================================


def _date_filters(start_date: Optional[str], end_date: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    """Business-day date strings to a UTC created_at window; 400 on bad input"""
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
    return (
        business_day_bounds_utc(start)[0] if start else None,
        business_day_bounds_utc(end)[1] if end else None,
    )


@router.get("/logs")
async def list_logs(
    type: Optional[str] = Query(None),
    channel: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    customer_id: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    start, end = _date_filters(start_date, end_date)
    logs, total = repo.search_logs(
        db,
        notification_type=type,
        channel=channel,
        status=status,
        customer_id=customer_id,
        start=start,
        end=end,
        page=page,
        limit=limit,
    )
    data = [NotificationLogResponse.model_validate(log).model_dump() for log in logs]
    return paginated(data, page, limit, total)


@router.post("/logs/bulk-resend")
async def bulk_resend_logs(
    data: BulkResendRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
):
    """Resend up to 100 logs, picked by id or by the same filters as the log list"""
    if data.ids:
        # Unknown ids are reported back as failures
        log_ids = list(dict.fromkeys(data.ids))
    elif data.filters:
        start, end = _date_filters(data.filters.start_date, data.filters.end_date)
        logs = repo.find_logs_for_resend(
            db,
            notification_type=data.filters.type,
            channel=data.filters.channel,
            status=data.filters.status,
            start=start,
            end=end,
            limit=BULK_RESEND_LIMIT,
        )
        log_ids = [log.id for log in logs]
    else:
        raise HTTPException(status_code=400, detail="Either ids or filters must be provided")

    logger.info(f"🔄 Bulk resend of {len(log_ids)} notifications")
    return await service.bulk_resend(log_ids)


@router.get("/logs/{log_id}", response_model=NotificationLogResponse)
async def get_log(log_id: str, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    log = repo.get_log(db, log_id)
    if not log:
        raise HTTPException(status_code=404, detail="Notification not found")
    return log


@router.post("/logs/{log_id}/resend")
async def resend_log(
    log_id: str,
    _: User = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
):
    result = await service.resend(log_id)
    if not result["success"] and result["error"] == "Notification not found":
        raise HTTPException(status_code=404, detail="Notification not found")
    return result


# ============================================================================
# TEMPLATES
# ============================================================================


@router.get("/templates", response_model=list[NotificationTemplateResponse])
async def list_templates(
    type: Optional[str] = Query(None),
    channel: Optional[str] = Query(None),
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return repo.list_templates(db, type, channel)


@router.get("/templates/{template_id}", response_model=NotificationTemplateResponse)
async def get_template(template_id: str, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    template = repo.get_template_by_id(db, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.put("/templates/{template_id}", response_model=NotificationTemplateResponse)
async def update_template(
    template_id: str,
    data: NotificationTemplateUpdate,
    current_user: User = Depends(require_admin),
    service: TemplateService = Depends(get_template_service),
):
    """Update a template; every saved change bumps the version and keeps the old one in history"""
    return service.update_template(template_id, data, current_user)


@router.get("/templates/{template_id}/history", response_model=list[TemplateHistoryResponse])
async def template_history(
    template_id: str,
    _: User = Depends(require_admin),
    service: TemplateService = Depends(get_template_service),
):
    return service.get_history(template_id)


@router.post("/templates/{template_id}/rollback", response_model=NotificationTemplateResponse)
async def rollback_template(
    template_id: str,
    data: TemplateRollbackRequest,
    current_user: User = Depends(require_admin),
    service: TemplateService = Depends(get_template_service),
):
    return service.rollback(template_id, data, current_user)


@router.post("/templates/{template_id}/test")
async def send_test_notification(
    template_id: str,
    data: TemplateTestRequest,
    _: User = Depends(require_admin),
    service: TemplateService = Depends(get_template_service),
):
    return await service.send_test(template_id, data)


@router.post("/templates/{template_id}/preview")
async def preview_template(
    template_id: str,
    data: TemplatePreviewRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    template = repo.get_template_by_id(db, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")

    rendered = render_with_metadata(
        template.text_template or "",
        data.sample_data,
        subject_template=template.subject_template,
        html_template=template.html_template,
    )
    body = template.html_template if template.channel == "email" else template.text_template
    check = validate_template(body or "", template.variables or [])
    rendered["warnings"] = rendered["warnings"] + check["warnings"] + check["errors"]
    return rendered


# ============================================================================
# SETTINGS
# ============================================================================


@router.get("/settings", response_model=list[NotificationSettingResponse])
async def list_settings(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    return repo.list_settings(db)


@router.put("/settings/{notification_type}", response_model=NotificationSettingResponse)
async def update_setting(
    notification_type: str,
    data: NotificationSettingUpdate,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    setting = repo.get_setting(db, notification_type)
    if not setting:
        raise HTTPException(status_code=404, detail="Notification type not found")

    for key, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(setting, key, value)
    db.commit()
    db.refresh(setting)
    logger.info(f"✅ Notification settings updated for {notification_type}")
    return setting


@router.get("/stats")
async def notification_stats(
    days: int = Query(30, ge=1, le=365), _: User = Depends(require_admin), db: Session = Depends(get_db)
):
    return repo.get_stats(db, utcnow() - timedelta(days=days))


# ============================================================================
# JOBS (manual runs of the scheduled reminder jobs)
# ============================================================================


async def _run_job(name: str, job, db: Session, service: NotificationService) -> dict:
    started = time.monotonic()
    logger.info(f"🚀 Manual {name} run requested")
    try:
        stats = await job(db, service=service)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Manual {name} run failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to run {name} job")
    return {
        "success": True,
        "timestamp": utcnow().isoformat() + "Z",
        **stats,
        "duration_ms": int((time.monotonic() - started) * 1000),
    }


@router.post("/jobs/reminders/trigger")
async def trigger_appointment_reminders(
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
):
    return await _run_job("appointment reminders", send_appointment_reminders, db, service)


@router.post("/jobs/retention/trigger")
async def trigger_retention_reminders(
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
):
    return await _run_job("retention reminders", send_retention_reminders, db, service)


# ============================================================================
# CUSTOMER PREFERENCES
# ============================================================================


@customer_router.get("/preferences")
async def get_preferences(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_notification_preferences(db, current_user.id)


@customer_router.put("/preferences")
async def put_preferences(
    data: NotificationPreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = update_notification_preferences(db, current_user.id, data.model_dump(exclude_none=True))
    if not result["success"]:
        raise HTTPException(status_code=404, detail=result["error"])
    return result["preferences"]


# ============================================================================
# UNSUBSCRIBE (public, linked from emails)
# ============================================================================


@public_router.get("/unsubscribe")
async def unsubscribe(token: Optional[str] = Query(None), db: Session = Depends(get_db)):
    result = process_unsubscribe(db, token)
    if result["success"]:
        return RedirectResponse(
            f"/unsubscribe/success?type={result['notification_type']}&channel={result['channel']}"
        )
    return RedirectResponse(f"/unsubscribe/error?reason={result['reason']}")

