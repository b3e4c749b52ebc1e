"""Campaign router - admin marketing campaign endpoints"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ...shared.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, paginated
from .schemas import AudiencePreviewRequest, CampaignCreate, CampaignResponse, CampaignUpdate
from .service import CampaignService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/campaigns", tags=["Campaigns"])


def get_campaign_service(db: Session = Depends(get_db)) -> CampaignService:
    """Dependency injection for CampaignService"""
    return CampaignService(db)


def _campaign(campaign) -> dict:
    return CampaignResponse.model_validate(campaign).model_dump()


@router.get("")
async def list_campaigns(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort_by: str = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    _: User = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    campaigns, total = service.list_campaigns(status, page, limit, sort_by, sort_order)
    return paginated([_campaign(c) for c in campaigns], page, limit, total)


@router.post("", status_code=201)
async def create_campaign(
    data: CampaignCreate,
    staff: User = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"data": _campaign(service.create_campaign(data, staff))}


@router.post("/audience-preview")
async def preview_audience(
    data: AudiencePreviewRequest,
    _: User = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"data": service.preview_audience(data.segment_criteria)}


@router.get("/{campaign_id}")
async def get_campaign(
    campaign_id: str,
    _: User = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"data": _campaign(service.get_campaign(campaign_id))}


@router.put("/{campaign_id}")
async def update_campaign(
    campaign_id: str,
    data: CampaignUpdate,
    _: User = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"data": _campaign(service.update_campaign(campaign_id, data))}


@router.post("/{campaign_id}/send")
async def send_campaign(
    campaign_id: str,
    _: User = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"data": await service.send_campaign(campaign_id)}


@router.post("/{campaign_id}/cancel")
async def cancel_campaign(
    campaign_id: str,
    _: User = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
):
    return {"data": _campaign(service.cancel_campaign(campaign_id))}
